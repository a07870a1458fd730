"""
Run orchestrator for the fleet reporter.

Drives one test run: builds a record per finished test, and at run end writes
the per-file reports, merges the master table and writes the master report.
Nothing raised in here is allowed to reach the host test framework.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from fleet_report.config.settings import Settings, get_settings
from fleet_report.core.artifacts import FileSystemArtifactStore
from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import (
    ReportCounts,
    RunEndEvent,
    RunStartEvent,
    RunSummary,
    TestCompletionEvent,
    TestResultRecord,
    TestStatus,
)
from fleet_report.error_handling.exceptions import FleetReportError, MasterStoreError
from fleet_report.monitoring.logger import get_logger
from fleet_report.reporting.aggregator import PerFileAggregator
from fleet_report.reporting.master_store import MasterStore
from fleet_report.reporting.record_builder import RecordBuilder, folder_name
from fleet_report.reporting.renderer import ReportRenderer, summarize

logger = get_logger(__name__)

RULE = "=" * 60
STATUS_TAGS = {
    TestStatus.PASSED: "[green][PASS][/green]",
    TestStatus.FAILED: "[red][FAIL][/red]",
    TestStatus.SKIPPED: "[yellow][SKIP][/yellow]",
}
FAILURE_REASON_PREVIEW = 100


class RunOrchestrator:
    """
    Lifecycle hooks of one reporting run.

    The host framework calls the hooks sequentially from a single thread, so
    the aggregator needs no locking.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[ArtifactStore] = None,
        console: Optional[Console] = None,
        renderer: Optional[ReportRenderer] = None,
        output_dir: Optional[Path] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            settings: Reporter settings (defaults to the cached settings)
            store: Artifact store for every file operation
            console: Rich console for progress and summaries
            renderer: Report renderer
            output_dir: Overrides the configured base output directory
        """
        self.settings = (settings or get_settings()).with_output_dir(output_dir)
        self.store = store or FileSystemArtifactStore()
        self.console = console or Console()
        self.renderer = renderer or ReportRenderer(self.settings.project_name)
        self.output_dir = self.settings.output_dir

        self.aggregator = PerFileAggregator()
        self.builder = RecordBuilder(self.store, self.settings)
        self.master_store = MasterStore(self.store, self.settings.master_data_path)

        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

    # Lifecycle hooks

    def on_run_start(self, event: Optional[RunStartEvent] = None) -> None:
        event = event or RunStartEvent()
        self.started_at = event.started_at

        try:
            self.store.ensure_dir(self.output_dir)
        except FleetReportError as exc:
            logger.warning("Could not create output directory: %s", exc.message)

        self.console.print(f"\n{RULE}")
        self.console.print("   [bold]Fleet Report:[/bold] Starting test run")
        self.console.print(f"   Time: {self.started_at.astimezone():%Y-%m-%d %H:%M:%S}")
        if event.total_tests is not None:
            self.console.print(f"   Total tests: {event.total_tests}")
        self.console.print(f"{RULE}\n")

    def note_total_tests(self, total: int) -> None:
        self.console.print(f"   Total tests: [cyan]{total}[/cyan]")

    def on_test_start(self, title: str) -> None:
        self.console.print(f">> Starting: {escape(title)}")

    def on_test_end(self, event: TestCompletionEvent) -> Optional[TestResultRecord]:
        """Print the result line, then build and record the test's record."""
        tag = STATUS_TAGS.get(event.status, "[dim][????][/dim]")
        self.console.print(
            f"{tag} {escape(event.title)} ({event.duration_ms / 1000:.2f}s)"
        )

        try:
            base_name = self.builder.base_name_for(event.location.file)
            record = self.builder.build(event, self.aggregator.case_numbers_for(base_name))
        except Exception:
            logger.exception("Could not build result record for %s", event.title)
            return None

        self.aggregator.record_completed(record)
        return record

    def on_run_end(self, event: Optional[RunEndEvent] = None) -> RunSummary:
        """
        Write every report of the run and print the summaries.

        Args:
            event: Run end event carrying the overall status

        Returns:
            RunSummary with current and accumulated counts
        """
        event = event or RunEndEvent()
        self.ended_at = event.ended_at
        started_at = self.started_at or self.ended_at
        duration = (self.ended_at - started_at).total_seconds()

        self.console.print(f"\n{RULE}")
        self.console.print("   [bold]Fleet Report:[/bold] Test run completed")
        self.console.print(f"   Duration: {duration:.2f}s")
        self.console.print(f"   Status: {escape(event.status)}")
        self.console.print(RULE)

        current = self.aggregator.all_records()
        report_paths: List[Path] = []

        for base_name in self.aggregator.file_names():
            report_paths.extend(self._write_file_report(base_name))

        accumulated, persisted = self._update_master(current)
        report_paths.extend(self._write_master_report(accumulated))

        summary = RunSummary(
            current=summarize(current),
            accumulated=summarize(accumulated),
            failed_tests=[r for r in current if r.status is TestStatus.FAILED],
            report_paths=report_paths,
            master_persisted=persisted,
        )
        try:
            self._print_summary(summary, accumulated)
        except Exception:
            logger.exception("Could not print run summary")
        return summary

    # Run end steps

    def _write_file_report(self, base_name: str) -> List[Path]:
        records = self.aggregator.records_for(base_name)
        folder = self.output_dir / folder_name(base_name)
        prefix = self.settings.report_file_prefix

        try:
            self.store.ensure_dir(folder)
            self.store.clear_prefixed(folder, prefix)
        except FleetReportError as exc:
            logger.warning(
                "Could not prepare report folder %s: %s", folder, exc.message,
                extra={"test_file": base_name},
            )

        try:
            rendered = self.renderer.render(
                records,
                records[0].module if records else base_name,
                master=False,
                run_started_at=self.started_at,
                run_ended_at=self.ended_at,
                generated_at=self.ended_at,
            )
            written = self.renderer.write(rendered, folder, self.store, prefix)
        except Exception:
            logger.exception("Could not generate report for %s", base_name)
            return []

        for path in written:
            self.console.print(f"   {path.suffix[1:].upper()} Report: {path}")
        return written

    def _update_master(self, current: List[TestResultRecord]) -> Tuple[List[TestResultRecord], bool]:
        try:
            return self.master_store.merge_and_persist(current), True
        except MasterStoreError as exc:
            logger.warning("%s", exc.message, extra={"artifact": exc.path})
        except Exception:
            logger.exception("Could not update master data")

        try:
            return MasterStore.merge(self.master_store.load(), current), False
        except Exception:
            logger.exception("Could not merge master data")
            return list(current), False

    def _write_master_report(self, records: List[TestResultRecord]) -> List[Path]:
        try:
            rendered = self.renderer.render(
                records,
                "All Modules",
                master=True,
                run_started_at=self.started_at,
                run_ended_at=self.ended_at,
                generated_at=self.ended_at,
            )
            written = self.renderer.write(
                rendered,
                self.output_dir,
                self.store,
                self.settings.report_file_prefix,
                formats=("html", "csv"),
            )
        except Exception:
            logger.exception("Could not generate master report")
            return []

        for path in written:
            self.console.print(f"   Master {path.suffix[1:].upper()} Report: {path}")
        return written

    # Console output

    def _print_counts(self, heading: str, counts: ReportCounts) -> None:
        self.console.print(f"\n{RULE}")
        self.console.print(f"[bold]{heading:^60}[/bold]")
        self.console.print(RULE)
        self.console.print(f"  Passed:    [green]{counts.passed}[/green]")
        self.console.print(f"  Failed:    [red]{counts.failed}[/red]")
        self.console.print(f"  Skipped:   [yellow]{counts.skipped}[/yellow]")
        self.console.print(f"  Total:     {counts.total}")
        self.console.print(f"  Pass Rate: [cyan]{counts.pass_rate}%[/cyan]")

    def _print_summary(self, summary: RunSummary, accumulated: List[TestResultRecord]) -> None:
        self._print_counts("CURRENT RUN SUMMARY", summary.current)
        self.console.print(RULE)

        self._print_counts("OVERALL ACCUMULATED SUMMARY", summary.accumulated)
        modules = sorted({r.module for r in accumulated})
        shown = ", ".join(modules[:5]) + ("..." if len(modules) > 5 else "")
        self.console.print(f"  Modules:   {len(modules)} ({escape(shown)})")
        self.console.print(RULE)

        if summary.failed_tests:
            self.console.print("\n[bold red]FAILED TESTS (Current Run):[/bold red]")
            for record in summary.failed_tests:
                self.console.print(f"   * {record.case_number} - {escape(record.description)}")
                if record.failure_reason:
                    preview = record.failure_reason[:FAILURE_REASON_PREVIEW]
                    self.console.print(f"     Error: {escape(preview)}...")

        self.console.print(f"\nReports saved to: {self.output_dir}/")
        self.console.print(
            f"   {self.settings.report_file_prefix}.html "
            f"(MASTER - All {summary.accumulated.total} tests)"
        )
        for base_name in self.aggregator.file_names():
            self.console.print(f"   {folder_name(base_name)}/")
        self.console.print()
