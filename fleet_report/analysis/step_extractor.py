"""Turn a test's captured stdout into an ordered list of execution steps."""

import re
from typing import Iterable, List, Optional, Union

from fleet_report.core.types import StepEntry, StepKind, StepStatus

# Framed "=== Title ===" lines, bare rules, or any long "==========" run
_BANNER = re.compile(r"^={3,}(?:.*={3,})?$|={10,}")
_DIVIDER = re.compile(r"-{3,}")

PASS_MARKERS = ("[PASS]", "PASSED")
FAIL_MARKERS = ("[FAIL]", "failed", "Error")
WARN_MARKERS = ("[WARN]", "warning", "Warning")
INFO_MARKERS = ("PURPOSE:", "STEP:")
MIN_LOG_LENGTH = 5


def _contains_any(line: str, markers: Iterable[str]) -> bool:
    return any(marker in line for marker in markers)


def iter_lines(stdout_chunks: Iterable[Union[str, bytes]]) -> Iterable[str]:
    """Yield trimmed, non-blank lines across all chunks."""
    for chunk in stdout_chunks:
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        for line in str(chunk).split("\n"):
            line = line.strip()
            if line:
                yield line


def classify_line(line: str, next_ordinal: int) -> Optional[StepEntry]:
    """
    Classify a single trimmed line.

    Args:
        line: Trimmed, non-blank output line
        next_ordinal: Ordinal to give the line if it is a step

    Returns:
        StepEntry, or None when the line is noise
    """
    if _BANNER.search(line):
        return StepEntry(
            text=line.replace("=", "").strip(),
            status=StepStatus.SECTION,
            kind=StepKind.SECTION,
        )

    if _contains_any(line, PASS_MARKERS):
        text = line.replace("[PASS]", "", 1).replace("PASSED", "", 1).strip()
        return StepEntry(
            ordinal=next_ordinal, text=text, status=StepStatus.PASSED, kind=StepKind.STEP
        )

    if _contains_any(line, FAIL_MARKERS):
        return StepEntry(
            ordinal=next_ordinal, text=line, status=StepStatus.FAILED, kind=StepKind.STEP
        )

    if _contains_any(line, WARN_MARKERS):
        return StepEntry(
            ordinal=next_ordinal, text=line, status=StepStatus.WARNING, kind=StepKind.STEP
        )

    if _contains_any(line, INFO_MARKERS):
        return StepEntry(text=line, status=StepStatus.INFO, kind=StepKind.INFO)

    if "---" in line:
        return StepEntry(
            text=_DIVIDER.sub("", line).strip(),
            status=StepStatus.INFO,
            kind=StepKind.SUBSECTION,
        )

    # Stack frames ("at foo (file:1:2)") are dropped
    if len(line) > MIN_LOG_LENGTH and not line.startswith("at "):
        return StepEntry(text=line, status=StepStatus.INFO, kind=StepKind.LOG)

    return None


def extract_steps(stdout_chunks: Iterable[Union[str, bytes]]) -> List[StepEntry]:
    """Parse captured output into steps, numbering kind=step entries from 1."""
    steps: List[StepEntry] = []
    ordinal = 1
    for line in iter_lines(stdout_chunks):
        entry = classify_line(line, ordinal)
        if entry is None:
            continue
        if entry.kind is StepKind.STEP:
            ordinal += 1
        steps.append(entry)
    return steps
