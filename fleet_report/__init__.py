"""
Fleet Report - per-file and accumulated test reports for pytest runs.
"""

__version__ = "0.1.0"
