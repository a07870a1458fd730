"""File-system backed artifact store."""

import shutil
from pathlib import Path
from typing import List

from fleet_report.core.interfaces import ArtifactStore
from fleet_report.error_handling.exceptions import ArtifactError


class FileSystemArtifactStore(ArtifactStore):
    """Artifact store writing straight to the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def ensure_dir(self, path: Path) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactError(
                f"Could not create directory: {exc}", path=path, operation="mkdir", cause=exc
            ) from exc

    def copy_file(self, source: Path, destination: Path) -> None:
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as exc:
            raise ArtifactError(
                f"Could not copy {source}: {exc}", path=destination, operation="copy", cause=exc
            ) from exc

    def read_text(self, path: Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ArtifactError(
                f"Could not read file: {exc}", path=path, operation="read", cause=exc
            ) from exc

    def write_text(self, path: Path, content: str) -> None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ArtifactError(
                f"Could not write file: {exc}", path=path, operation="write", cause=exc
            ) from exc

    def remove(self, path: Path) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            raise ArtifactError(
                f"Could not delete file: {exc}", path=path, operation="delete", cause=exc
            ) from exc

    def list_files(self, directory: Path) -> List[Path]:
        directory = Path(directory)
        if not directory.is_dir():
            return []
        try:
            return sorted(child for child in directory.iterdir() if child.is_file())
        except OSError as exc:
            raise ArtifactError(
                f"Could not list directory: {exc}", path=directory, operation="list", cause=exc
            ) from exc
