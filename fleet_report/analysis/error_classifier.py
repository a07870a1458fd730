"""
Failure classification for finished tests.

A raw assertion or interaction error is turned into a ``Diagnosis`` in two
phases. The first phase walks ``DIAGNOSIS_RULES`` in order and the first rule
whose keywords appear in the cleaned message fixes the kind and the canned
expected/actual/suggestion texts. The second phase runs regardless of the kind
and pulls the locator, the timeout and explicit ``Expected:``/``Received:``
values out of the message.

The rule order is significant: messages that mention several keywords (for
example ``toBeVisible`` together with ``Timeout``) classify by the earliest
rule, so reordering the table changes results for existing reports.
"""

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from fleet_report.core.types import Diagnosis, DiagnosisKind, TestErrorInfo

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")
_ANSI_REMNANT = re.compile(r"\[2m|\[22m|\[31m|\[39m|\[1m|\[0m")

_LOCATOR = re.compile(
    r"""locator\(['"]([^'"]+)['"]\)|locator\(([^)]+)\)|Locator:\s*([^\n]+)""",
    re.IGNORECASE,
)
_TIMEOUT = re.compile(r"timeout[:\s]*(\d+)ms", re.IGNORECASE)
_EXPECTED = re.compile(r"Expected:\s*([^\n]+)", re.IGNORECASE)
_ACTUAL = re.compile(r"Received:\s*([^\n]+)|Actual:\s*([^\n]+)", re.IGNORECASE)

UNKNOWN_SUGGESTION = "Review the full error message and stack trace for the root cause"


@dataclass(frozen=True)
class DiagnosisRule:
    """One row of the classification table."""

    kind: DiagnosisKind
    keywords: Tuple[str, ...]
    expected: str
    actual: str
    suggestion: str
    require_all: bool = False

    def matches(self, message: str) -> bool:
        if self.require_all:
            return all(keyword in message for keyword in self.keywords)
        return any(keyword in message for keyword in self.keywords)


DIAGNOSIS_RULES: Tuple[DiagnosisRule, ...] = (
    DiagnosisRule(
        DiagnosisKind.ELEMENT_NOT_VISIBLE,
        ("toBeVisible",),
        "Element should be visible on page",
        "Element was not found or not visible",
        "Check if the page loaded correctly, or if the selector has changed",
    ),
    DiagnosisRule(
        DiagnosisKind.ELEMENT_NOT_HIDDEN,
        ("toBeHidden",),
        "Element should be hidden",
        "Element is still visible",
        "Check if a modal/overlay was supposed to close",
    ),
    DiagnosisRule(
        DiagnosisKind.TEXT_MISMATCH,
        ("toHaveText",),
        "Element should contain specific text",
        "Text content did not match",
        "Verify the expected text value or check for dynamic content",
    ),
    DiagnosisRule(
        DiagnosisKind.ELEMENT_NOT_ENABLED,
        ("toBeEnabled",),
        "Element should be enabled/clickable",
        "Element is disabled",
        "Check if form validation is blocking the element",
    ),
    DiagnosisRule(
        DiagnosisKind.ELEMENT_NOT_DISABLED,
        ("toBeDisabled",),
        "Element should be disabled",
        "Element is enabled",
        "Check the application logic for disable conditions",
    ),
    DiagnosisRule(
        DiagnosisKind.VALUE_MISMATCH,
        ("toHaveValue",),
        "Input should have specific value",
        "Value did not match",
        "Check if the input was properly filled",
    ),
    DiagnosisRule(
        DiagnosisKind.COUNT_MISMATCH,
        ("toHaveCount",),
        "Expected specific number of elements",
        "Found different number of elements",
        "Check if data loaded correctly or filter conditions",
    ),
    DiagnosisRule(
        DiagnosisKind.ASSERTION_FAILED,
        ("toEqual", "toBe"),
        "Values should be equal",
        "Values did not match",
        "Check the expected vs actual values in the assertion",
    ),
    DiagnosisRule(
        DiagnosisKind.COMPARISON_FAILED,
        ("toBeGreaterThan", "toBeLessThan"),
        "Value comparison should pass",
        "Comparison condition not met",
        "Check the numeric values being compared",
    ),
    DiagnosisRule(
        DiagnosisKind.TIMEOUT_ERROR,
        ("Timeout", "timeout"),
        "Operation should complete within time limit",
        "Operation took too long",
        "Page may be slow to load, or element never appeared. Check network/server status",
    ),
    DiagnosisRule(
        DiagnosisKind.CLICK_INTERCEPTED,
        ("click", "intercept"),
        "Element should be clickable",
        "Another element is covering the target",
        "Close any popups/modals, or scroll element into view",
        require_all=True,
    ),
    DiagnosisRule(
        DiagnosisKind.NAVIGATION_ERROR,
        ("navigation",),
        "Page should navigate successfully",
        "Navigation failed or timed out",
        "Check URL, network connectivity, or server availability",
    ),
    DiagnosisRule(
        DiagnosisKind.MULTIPLE_ELEMENTS_FOUND,
        ("strict mode violation",),
        "Selector should match exactly one element",
        "Selector matched multiple elements",
        "Make selector more specific (add :first, :nth-child, or more specific attributes)",
    ),
    DiagnosisRule(
        DiagnosisKind.REFERENCE_ERROR,
        ("Cannot read", "undefined"),
        "Variable/property should be defined",
        "Variable/property is undefined or null",
        "Check if the element or data exists before accessing its properties",
    ),
    DiagnosisRule(
        DiagnosisKind.NETWORK_ERROR,
        ("Network", "fetch"),
        "Network request should succeed",
        "Network request failed",
        "Check network connectivity and API availability",
    ),
)


def strip_ansi(text: Optional[str]) -> str:
    """Remove terminal color sequences (and their bare remnants) from text."""
    if not text:
        return ""
    return _ANSI_REMNANT.sub("", _ANSI_ESCAPE.sub("", text))


def first_line(text: str) -> str:
    return text.split("\n", 1)[0]


def match_rule(message: str) -> Optional[DiagnosisRule]:
    """Return the first rule matching message, or None."""
    for rule in DIAGNOSIS_RULES:
        if rule.matches(message):
            return rule
    return None


def extract_locator(message: str) -> Optional[str]:
    match = _LOCATOR.search(message)
    if not match:
        return None
    element = (match.group(1) or match.group(2) or match.group(3) or "").strip()
    if element.startswith("locator("):
        element = element[len("locator("):]
    if element.endswith(")"):
        element = element[:-1]
    return element or None


def format_timeout(milliseconds: int) -> str:
    """Render a millisecond count as seconds, e.g. 30000 -> '30s', 1500 -> '1.5s'."""
    seconds = milliseconds / 1000
    if seconds.is_integer():
        return f"{int(seconds)}s"
    return f"{seconds}s"


def extract_timeout(message: str) -> Optional[str]:
    match = _TIMEOUT.search(message)
    if not match:
        return None
    return format_timeout(int(match.group(1)))


def classify_error(
    error: Optional[TestErrorInfo],
    source_file: Optional[str] = None,
    source_line: Optional[int] = None,
) -> Optional[Diagnosis]:
    """
    Build a best-effort diagnosis for a test failure.

    Args:
        error: Message and stack of the failure, or None
        source_file: Path of the file defining the test
        source_line: Line defining the test

    Returns:
        Diagnosis, or None when no error was supplied
    """
    if error is None:
        return None

    message = strip_ansi(error.message)
    stack = strip_ansi(error.stack)

    rule = match_rule(message)
    if rule is not None:
        kind = rule.kind
        expected: Optional[str] = rule.expected
        actual: Optional[str] = rule.actual
        suggestion = rule.suggestion
    else:
        kind = DiagnosisKind.UNKNOWN
        expected = None
        actual = None
        suggestion = UNKNOWN_SUGGESTION

    expected_match = _EXPECTED.search(message)
    if expected_match:
        expected = expected_match.group(1).strip()

    actual_match = _ACTUAL.search(message)
    if actual_match:
        actual = (actual_match.group(1) or actual_match.group(2)).strip()

    return Diagnosis(
        kind=kind,
        expected_description=expected,
        actual_description=actual,
        element_locator=extract_locator(message),
        timeout_value=extract_timeout(message),
        suggestion=suggestion,
        clean_message=first_line(message),
        full_message=message,
        stack_trace=stack,
        source_file=os.path.basename(source_file) if source_file else "Unknown",
        source_line=source_line,
    )
