"""
Run lifecycle orchestration.
"""

from fleet_report.orchestration.run_orchestrator import RunOrchestrator

__all__ = ["RunOrchestrator"]
