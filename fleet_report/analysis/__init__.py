"""
Failure classification and step extraction.
"""

from fleet_report.analysis.error_classifier import (
    DIAGNOSIS_RULES,
    DiagnosisRule,
    classify_error,
    strip_ansi,
)
from fleet_report.analysis.step_extractor import extract_steps

__all__ = [
    "DIAGNOSIS_RULES",
    "DiagnosisRule",
    "classify_error",
    "strip_ansi",
    "extract_steps",
]
