"""
fleet-report - command line for the accumulated master report.
Re-renders the master HTML/CSV from master-data.json or resets it.
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console

from fleet_report import __version__
from fleet_report.config.settings import get_settings
from fleet_report.core.artifacts import FileSystemArtifactStore
from fleet_report.error_handling import FleetReportError
from fleet_report.monitoring.logger import get_logger, setup_logging
from fleet_report.reporting.master_store import MasterStore
from fleet_report.reporting.renderer import ReportRenderer, summarize

console = Console()
logger = get_logger("main")


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="fleet-report",
        description="Fleet Report - accumulated test report tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Re-render the master report from master-data.json
  fleet-report

  # Start the accumulated history over
  fleet-report --reset

  # Use a different report directory
  fleet-report -o build/test-reports
        """,
    )

    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument(
        "--reset",
        action="store_true",
        help="Delete the accumulated master data",
    )
    action_group.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Base report directory (default: test-reports/custom)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log output format",
    )

    return parser


def show_version() -> int:
    console.print(f"[bold]fleet-report[/bold] version [cyan]{__version__}[/cyan]")
    return 0


def reset_master(store: MasterStore) -> int:
    if store.clear():
        console.print(f"[green]Master data removed:[/green] {store.path}")
    else:
        console.print(f"[yellow]No master data at {store.path}[/yellow]")
    return 0


def render_master(
    master_store: MasterStore,
    renderer: ReportRenderer,
    output_dir: Path,
    prefix: str,
) -> int:
    """Render the master HTML/CSV from the persisted table."""
    if not master_store.store.exists(master_store.path):
        console.print(f"[red]Error: No master data found at {master_store.path}[/red]")
        return 1

    records = master_store.load()
    now = datetime.now(timezone.utc)
    rendered = renderer.render(
        records,
        "All Modules",
        master=True,
        run_started_at=now,
        run_ended_at=now,
        generated_at=now,
    )
    written = renderer.write(
        rendered, output_dir, master_store.store, prefix, formats=("html", "csv")
    )

    counts = summarize(records)
    console.print(
        f"Tests: [cyan]{counts.total}[/cyan]  "
        f"Passed: [green]{counts.passed}[/green]  "
        f"Failed: [red]{counts.failed}[/red]  "
        f"Skipped: [yellow]{counts.skipped}[/yellow]  "
        f"Pass Rate: [cyan]{counts.pass_rate}%[/cyan]"
    )
    for path in written:
        console.print(f"[green]Report saved to:[/green] {path}")

    return 0 if len(written) == 2 else 1


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for fleet-report.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.version:
        return show_version()

    settings = get_settings().with_output_dir(parsed_args.output)
    setup_logging(
        log_level=parsed_args.log_level or settings.log_level,
        log_format=parsed_args.log_format or settings.log_format,
        log_file=settings.log_file,
    )

    store = FileSystemArtifactStore()
    master_store = MasterStore(store, settings.master_data_path)

    try:
        if parsed_args.reset:
            return reset_master(master_store)
        return render_master(
            master_store,
            ReportRenderer(settings.project_name),
            settings.output_dir,
            settings.report_file_prefix,
        )
    except FleetReportError as e:
        logger.error("fleet-report failed: %s", e.message, extra={"artifact": e.details.get("path")})
        console.print(f"[red]Error: {e.message}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
