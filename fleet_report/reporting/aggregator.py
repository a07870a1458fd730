"""Per-file grouping of the current run's records."""

from typing import Dict, List, Set

from fleet_report.core.types import TestResultRecord


class PerFileAggregator:
    """Records of the current run, grouped by test file base name in arrival order."""

    def __init__(self) -> None:
        self._by_file: Dict[str, List[TestResultRecord]] = {}

    def record_completed(self, record: TestResultRecord) -> None:
        self._by_file.setdefault(record.origin.file_base_name, []).append(record)

    def case_numbers_for(self, file_base_name: str) -> Set[str]:
        return {record.case_number for record in self._by_file.get(file_base_name, [])}

    def file_names(self) -> List[str]:
        return list(self._by_file)

    def records_for(self, file_base_name: str) -> List[TestResultRecord]:
        return list(self._by_file.get(file_base_name, []))

    def all_records(self) -> List[TestResultRecord]:
        return [record for records in self._by_file.values() for record in records]

    def __len__(self) -> int:
        return sum(len(records) for records in self._by_file.values())
