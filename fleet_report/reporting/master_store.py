"""
Durable, file-backed table of every record across runs.

Merging works at file granularity: a file exercised in the current run has
all of its historical records replaced, a file that was not exercised keeps
its records untouched.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import MasterData, TestResultRecord
from fleet_report.error_handling.exceptions import ArtifactError, MasterStoreError
from fleet_report.monitoring.logger import get_logger

logger = get_logger(__name__)


class MasterStore:
    """JSON-backed master table."""

    def __init__(self, store: ArtifactStore, path: Path) -> None:
        self.store = store
        self.path = Path(path)

    def load(self) -> List[TestResultRecord]:
        """Load historical records; anything unreadable counts as no history."""
        if not self.store.exists(self.path):
            logger.info("No existing master data found, starting fresh")
            return []

        try:
            raw = self.store.read_text(self.path)
            data = MasterData.model_validate_json(raw)
        except (ArtifactError, ValidationError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable master data at %s: %s", self.path, exc,
                extra={"artifact": str(self.path)},
            )
            return []

        return list(data.tests)

    @staticmethod
    def merge(
        history: Iterable[TestResultRecord],
        current: Iterable[TestResultRecord],
    ) -> List[TestResultRecord]:
        """
        Merge the current run into the historical records.

        Args:
            history: Records loaded from the master table
            current: Records produced by the current run

        Returns:
            Merged records sorted by file base name, then case number
        """
        current = list(current)
        touched = {record.origin.file_base_name for record in current}

        merged = [
            record for record in history
            if record.origin.file_base_name not in touched
        ]
        merged.extend(current)
        merged.sort(key=lambda r: (r.origin.file_base_name, r.case_number))
        return merged

    def persist(
        self,
        records: List[TestResultRecord],
        now: Optional[datetime] = None,
    ) -> None:
        """Overwrite the master table; raises MasterStoreError on failure."""
        document = MasterData(
            last_updated=now or datetime.now(timezone.utc),
            tests=records,
        )
        payload = document.model_dump_json(by_alias=True, indent=2)
        try:
            self.store.write_text(self.path, payload)
        except ArtifactError as exc:
            raise MasterStoreError(
                f"Could not write master data: {exc.message}",
                path=self.path,
                cause=exc,
            ) from exc

    def merge_and_persist(self, current: Iterable[TestResultRecord]) -> List[TestResultRecord]:
        """Load, merge in the current run and write back. Returns the merged set."""
        merged = self.merge(self.load(), current)
        self.persist(merged)
        return merged

    def clear(self) -> bool:
        """Delete the master table. Returns whether a table existed."""
        existed = self.store.exists(self.path)
        if existed:
            self.store.remove(self.path)
        return existed
