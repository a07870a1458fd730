"""
Core interfaces and abstract base classes for the fleet reporter.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class ArtifactStore(ABC):
    """File-system capabilities used by the record builder, renderer and master store.

    Implementations raise ``ArtifactError`` when an operation fails.
    """

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Return whether a file exists at path."""
        pass

    @abstractmethod
    def ensure_dir(self, path: Path) -> None:
        """Create directory (and parents) if missing."""
        pass

    @abstractmethod
    def copy_file(self, source: Path, destination: Path) -> None:
        """Copy source to destination, creating the destination directory."""
        pass

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """Read a UTF-8 text file."""
        pass

    @abstractmethod
    def write_text(self, path: Path, content: str) -> None:
        """Write a UTF-8 text file, replacing any existing content."""
        pass

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Delete a file; a missing file is not an error."""
        pass

    @abstractmethod
    def list_files(self, directory: Path) -> List[Path]:
        """List the files directly inside directory."""
        pass

    def clear_prefixed(self, directory: Path, prefix: str) -> List[Path]:
        """
        Delete every file in directory whose name starts with prefix.

        Args:
            directory: Directory to clean
            prefix: File name prefix to match

        Returns:
            Paths that were removed
        """
        removed = []
        for path in self.list_files(directory):
            if path.name.startswith(prefix):
                self.remove(path)
                removed.append(path)
        return removed
