"""
Report rendering for per-file and master reports.

``ReportRenderer.render`` is a pure function of its inputs: the same records,
title and timestamps always produce the same HTML, CSV and JSON text. Only
``ReportRenderer.write`` touches storage.
"""

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import Environment

from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import (
    ReportCounts,
    StepEntry,
    StepKind,
    TestResultRecord,
    TestStatus,
)
from fleet_report.error_handling.exceptions import ArtifactError
from fleet_report.monitoring.logger import get_logger

logger = get_logger(__name__)

CSV_HEADERS = [
    "Test Case No",
    "Module",
    "Test Case Description",
    "Status",
    "Duration (s)",
    "Failure Reason",
    "Video Identifier",
    "File",
    "Line",
]

STEP_ICONS = {
    StepKind.SECTION: ">",
    StepKind.SUBSECTION: "-",
    StepKind.INFO: "i",
}

ALL_FORMATS = ("html", "csv", "json")


@dataclass(frozen=True)
class RenderedReport:
    """The three text artifacts of one report."""

    html: str
    csv: str
    json: str

    def content(self, report_format: str) -> str:
        return getattr(self, report_format)


def summarize(records: Sequence[TestResultRecord]) -> ReportCounts:
    """Count statuses and compute the pass rate ('0' for an empty set)."""
    total = len(records)
    passed = sum(1 for r in records if r.status is TestStatus.PASSED)
    failed = sum(1 for r in records if r.status is TestStatus.FAILED)
    skipped = sum(1 for r in records if r.status is TestStatus.SKIPPED)
    pass_rate = f"{passed / total * 100:.1f}" if total > 0 else "0"
    return ReportCounts(
        total=total, passed=passed, failed=failed, skipped=skipped, pass_rate=pass_rate
    )


def step_icon(step: StepEntry) -> str:
    return STEP_ICONS.get(step.kind, "*")


def _csv_file_column(record: TestResultRecord, master: bool) -> str:
    if master:
        return record.origin.file_base_name
    return Path(record.origin.file_path).name


class ReportRenderer:
    """Renders records into HTML, CSV and JSON text."""

    def __init__(self, project_name: str = "Fleet GPS Tracking Platform") -> None:
        self.project_name = project_name
        self._environment = Environment(autoescape=True)
        self._environment.filters["step_icon"] = step_icon
        self._template = self._environment.from_string(HTML_REPORT_TEMPLATE)

    def render(
        self,
        records: Sequence[TestResultRecord],
        title: str,
        *,
        master: bool = False,
        run_started_at: Optional[datetime] = None,
        run_ended_at: Optional[datetime] = None,
        generated_at: Optional[datetime] = None,
    ) -> RenderedReport:
        """
        Render records into the three report formats.

        Args:
            records: Ordered records to include
            title: Display title (module name for per-file reports)
            master: Whether this is the accumulated master report
            run_started_at: Start of the current run
            run_ended_at: End of the current run
            generated_at: Timestamp printed in the report header

        Returns:
            RenderedReport with html, csv and json text
        """
        records = list(records)
        counts = summarize(records)
        generated_at = generated_at or run_ended_at
        duration_seconds = 0.0
        if run_started_at and run_ended_at:
            duration_seconds = (run_ended_at - run_started_at).total_seconds()

        return RenderedReport(
            html=self.render_html(
                records, title, counts,
                master=master,
                duration_seconds=duration_seconds,
                generated_at=generated_at,
            ),
            csv=self.render_csv(records, master=master),
            json=self.render_json(records, counts, run_started_at, run_ended_at),
        )

    def render_html(
        self,
        records: List[TestResultRecord],
        title: str,
        counts: ReportCounts,
        *,
        master: bool,
        duration_seconds: float,
        generated_at: Optional[datetime],
    ) -> str:
        modules = sorted({r.module for r in records}) if master else []
        # Per-file reports sit one folder below the videos directory
        link_prefix = "" if master else "../"
        generated_label = generated_at.strftime("%Y-%m-%d %H:%M:%S") if generated_at else ""
        date_label = generated_at.strftime("%Y-%m-%d") if generated_at else ""

        return self._template.render(
            title=title,
            master=master,
            project_name=self.project_name,
            link_prefix=link_prefix,
            counts=counts,
            modules=modules,
            records=records,
            duration=f"{duration_seconds:.2f}",
            generated_at=generated_label,
            export_file_name=f"{'master-' if master else ''}test-report-{date_label}.csv",
            export_rows=[self._export_row(r) for r in records],
            csv_headers=CSV_HEADERS[:7],
        )

    @staticmethod
    def _export_row(record: TestResultRecord) -> Dict[str, Any]:
        return {
            "testCaseNo": record.case_number,
            "module": record.module,
            "description": record.description,
            "status": record.status.value.upper(),
            "duration": f"{record.duration_seconds:.2f}s",
            "failureReason": record.failure_reason or "",
            "videoIdentifier": record.video_identifier,
        }

    def render_csv(self, records: Sequence[TestResultRecord], master: bool = False) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for record in records:
            writer.writerow([
                record.case_number,
                record.module,
                record.description,
                record.status.value.upper(),
                f"{record.duration_seconds:.2f}",
                record.failure_reason or "",
                record.video_identifier,
                _csv_file_column(record, master),
                "" if record.origin.line_number is None else record.origin.line_number,
            ])
        return buffer.getvalue()

    def render_json(
        self,
        records: Sequence[TestResultRecord],
        counts: ReportCounts,
        run_started_at: Optional[datetime],
        run_ended_at: Optional[datetime],
    ) -> str:
        duration_ms = 0
        if run_started_at and run_ended_at:
            duration_ms = int((run_ended_at - run_started_at).total_seconds() * 1000)

        report = {
            "summary": {
                "total": counts.total,
                "passed": counts.passed,
                "failed": counts.failed,
                "skipped": counts.skipped,
                "durationMs": duration_ms,
                "startedAt": run_started_at.isoformat() if run_started_at else None,
                "endedAt": run_ended_at.isoformat() if run_ended_at else None,
            },
            "tests": [record.model_dump(mode="json") for record in records],
        }
        return json.dumps(report, indent=2)

    def write(
        self,
        rendered: RenderedReport,
        output_dir: Path,
        store: ArtifactStore,
        prefix: str = "test-report",
        formats: Sequence[str] = ALL_FORMATS,
    ) -> List[Path]:
        """
        Write the requested formats; a failed write is logged and skipped.

        Returns:
            Paths that were written
        """
        written: List[Path] = []
        for report_format in formats:
            path = Path(output_dir) / f"{prefix}.{report_format}"
            try:
                store.write_text(path, rendered.content(report_format))
            except ArtifactError as exc:
                logger.warning(
                    "Could not write %s report: %s", report_format.upper(), exc.message,
                    extra={"artifact": str(path)},
                )
                continue
            written.append(path)
        return written


HTML_REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{% if master %}Master Test Report - All Modules{% else %}Test Report - {{ title }}{% endif %} - {{ generated_at }}</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background: #f0f2f5; color: #333; line-height: 1.6; }
        .container { max-width: 1600px; margin: 0 auto; padding: 20px; }

        /* Header */
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 12px; margin-bottom: 25px; }
        .header h1 { font-size: 28px; margin-bottom: 8px; }
        .header .module-name { font-size: 18px; opacity: 0.9; margin-bottom: 10px; }
        .header .subtitle { opacity: 0.8; font-size: 13px; }

        /* Summary Cards */
        .summary { display: grid; grid-template-columns: repeat(5, 1fr); gap: 20px; margin-bottom: 25px; }
        .card { background: white; padding: 25px; border-radius: 12px; box-shadow: 0 2px 12px rgba(0,0,0,0.08); text-align: center; }
        .card .number { font-size: 48px; font-weight: 700; margin-bottom: 5px; }
        .card .label { color: #666; font-size: 12px; text-transform: uppercase; letter-spacing: 1.5px; font-weight: 600; }
        .card.passed .number { color: #10b981; }
        .card.failed .number { color: #ef4444; }
        .card.skipped .number { color: #f59e0b; }
        .card.total .number { color: #6366f1; }
        .card.rate .number { color: #8b5cf6; }

        /* Filters */
        .filters { background: white; padding: 20px; border-radius: 12px; margin-bottom: 25px; box-shadow: 0 2px 12px rgba(0,0,0,0.08); display: flex; align-items: center; gap: 15px; flex-wrap: wrap; }
        .filters input[type="text"] { padding: 10px 16px; border: 2px solid #e2e8f0; border-radius: 8px; width: 300px; font-size: 14px; }
        .filters select { padding: 10px 16px; border: 2px solid #e2e8f0; border-radius: 8px; font-size: 14px; cursor: pointer; }
        .export-btn { background: linear-gradient(135deg, #10b981 0%, #059669 100%); color: white; border: none; padding: 12px 24px; border-radius: 8px; cursor: pointer; font-weight: 600; font-size: 14px; }

        /* Table */
        .table-container { background: white; border-radius: 12px; box-shadow: 0 2px 12px rgba(0,0,0,0.08); overflow: hidden; }
        table { width: 100%; border-collapse: collapse; }
        th { background: #f8fafc; padding: 16px 20px; text-align: left; font-weight: 600; color: #475569; border-bottom: 2px solid #e2e8f0; font-size: 13px; text-transform: uppercase; letter-spacing: 0.5px; }
        td { padding: 16px 20px; border-bottom: 1px solid #e2e8f0; vertical-align: top; }
        tr:hover { background: #f8fafc; }
        .test-case-no { background: #6366f1; color: white; padding: 6px 12px; border-radius: 6px; font-weight: 700; font-size: 13px; display: inline-block; }

        /* Status Badges */
        .status { padding: 6px 14px; border-radius: 20px; font-size: 11px; font-weight: 700; text-transform: uppercase; letter-spacing: 0.5px; }
        .status.passed { background: #d1fae5; color: #065f46; }
        .status.failed { background: #fee2e2; color: #991b1b; }
        .status.skipped { background: #fef3c7; color: #92400e; }
        .status.other { background: #e5e7eb; color: #374151; }

        /* Test Steps */
        .steps-container { margin-top: 15px; }
        .steps-toggle, .error-toggle { color: white; border: none; padding: 8px 16px; border-radius: 8px; cursor: pointer; font-weight: 600; font-size: 12px; display: inline-flex; align-items: center; gap: 8px; margin-top: 10px; }
        .steps-toggle { background: linear-gradient(135deg, #6366f1 0%, #4f46e5 100%); }
        .error-toggle { background: linear-gradient(135deg, #ef4444 0%, #dc2626 100%); }
        .steps-toggle .arrow, .error-toggle .arrow { transition: transform 0.3s; font-size: 10px; }
        .steps-toggle.open .arrow, .error-toggle.open .arrow { transform: rotate(180deg); }
        .steps-panel, .error-panel { display: none; margin-top: 15px; }
        .steps-panel.show, .error-panel.show { display: block; }
        .steps-panel { background: #f8fafc; border-radius: 10px; border: 2px solid #e2e8f0; overflow: hidden; }
        .steps-header { background: #e2e8f0; padding: 12px 16px; font-weight: 600; color: #475569; font-size: 13px; }
        .steps-list { max-height: 400px; overflow-y: auto; }
        .step-item { padding: 12px 16px; border-bottom: 1px solid #e2e8f0; display: flex; align-items: flex-start; gap: 12px; font-size: 14px; }
        .step-number { background: #6366f1; color: white; min-width: 28px; height: 28px; border-radius: 50%; display: flex; align-items: center; justify-content: center; font-weight: 700; font-size: 12px; flex-shrink: 0; }
        .step-text { flex: 1; line-height: 1.5; }
        .step-icon { font-size: 18px; flex-shrink: 0; }
        .step-item.passed { background: #f0fdf4; }
        .step-item.passed .step-number { background: #10b981; }
        .step-item.failed { background: #fef2f2; }
        .step-item.failed .step-number { background: #ef4444; }
        .step-item.failed .step-text { color: #991b1b; font-weight: 500; }
        .step-item.section { background: #6366f1; color: white; font-weight: 700; }
        .step-item.subsection { background: #e0e7ff; }
        .step-item.subsection .step-text { color: #4338ca; font-weight: 600; }
        .step-item.info { background: #eff6ff; }
        .step-item.warning { background: #fffbeb; }
        .step-item.warning .step-number { background: #f59e0b; }

        /* Failure details */
        .failure-reason { background: #fee2e2; color: #991b1b; padding: 14px 18px; border-radius: 8px; font-size: 13px; margin-top: 12px; border-left: 4px solid #ef4444; }
        .error-details { background: #fff; border: 2px solid #ef4444; border-radius: 10px; overflow: hidden; }
        .error-details-header { background: linear-gradient(135deg, #ef4444 0%, #dc2626 100%); color: white; padding: 12px 16px; font-weight: 600; }
        .error-type-badge { background: rgba(255,255,255,0.2); padding: 4px 12px; border-radius: 20px; font-size: 12px; text-transform: uppercase; }
        .error-details-body { padding: 16px; }
        .error-row { display: flex; padding: 8px 0; border-bottom: 1px solid #f3f4f6; }
        .error-label { font-weight: 600; color: #4b5563; min-width: 120px; flex-shrink: 0; }
        .error-value { color: #1f2937; flex: 1; word-break: break-word; }
        .error-value.element-selector { font-family: 'Consolas', 'Monaco', monospace; background: #f3f4f6; padding: 4px 8px; border-radius: 4px; font-size: 12px; color: #7c3aed; }
        .error-value.error-actual { color: #dc2626; font-weight: 500; }
        .error-row.suggestion { background: #fef3c7; }
        .error-row.full-error { flex-direction: column; }
        .error-row.full-error pre { background: #1f2937; color: #f3f4f6; padding: 12px; border-radius: 6px; font-size: 11px; margin-top: 8px; white-space: pre-wrap; word-wrap: break-word; }

        /* Video */
        .video-link { color: #6366f1; text-decoration: none; font-size: 13px; font-weight: 500; }
        .no-video { color: #9ca3af; font-size: 13px; }

        .footer { text-align: center; padding: 25px; color: #666; font-size: 12px; }

        @media (max-width: 1200px) { .summary { grid-template-columns: repeat(3, 1fr); } }
        @media (max-width: 768px) {
            .summary { grid-template-columns: repeat(2, 1fr); }
            .filters { flex-direction: column; }
            .filters input[type="text"] { width: 100%; }
        }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{% if master %}Master Test Execution Report{% else %}Test Execution Report{% endif %}</h1>
            <div class="module-name">{% if master %}All Modules ({{ modules|length }} modules, {{ counts.total }} tests){% else %}Module: {{ title }}{% endif %}</div>
            <div class="subtitle">
                Generated: {{ generated_at }} |
                Duration: {{ duration }}s |
                Project: {{ project_name }}
            </div>
        </div>

        <div class="summary">
            <div class="card total"><div class="number">{{ counts.total }}</div><div class="label">Total Tests</div></div>
            <div class="card passed"><div class="number">{{ counts.passed }}</div><div class="label">Passed</div></div>
            <div class="card failed"><div class="number">{{ counts.failed }}</div><div class="label">Failed</div></div>
            <div class="card skipped"><div class="number">{{ counts.skipped }}</div><div class="label">Skipped</div></div>
            <div class="card rate"><div class="number">{{ counts.pass_rate }}%</div><div class="label">Pass Rate</div></div>
        </div>

        <div class="filters">
            <input type="text" id="searchInput" placeholder="Search tests..." onkeyup="filterTests()">
            <select id="statusFilter" onchange="filterTests()">
                <option value="">All Status</option>
                <option value="passed">Passed</option>
                <option value="failed">Failed</option>
                <option value="skipped">Skipped</option>
            </select>
            {% if master %}
            <select id="moduleFilter" onchange="filterTests()">
                <option value="">All Modules</option>
                {% for module in modules %}
                <option value="{{ module }}">{{ module }}</option>
                {% endfor %}
            </select>
            {% endif %}
            <button class="export-btn" onclick="exportToExcel()">Export to Excel</button>
        </div>

        <div class="table-container">
            <table id="testTable">
                <thead>
                    <tr>
                        <th style="width: 100px;">Test Case No</th>
                        <th style="width: 150px;">Module</th>
                        <th>Test Case Description</th>
                        <th style="width: 100px;">Status</th>
                        <th style="width: 90px;">Duration</th>
                        <th style="width: 140px;">Video</th>
                    </tr>
                </thead>
                <tbody>
                    {% for r in records %}
                    {% set index = loop.index0 %}
                    <tr data-index="{{ index }}" data-status="{{ r.status.value }}" data-module="{{ r.module }}">
                        <td><span class="test-case-no">{{ r.case_number }}</span></td>
                        <td>{{ r.module }}</td>
                        <td>
                            <strong>{{ r.description }}</strong>
                            {% if r.status.value == 'failed' and r.diagnosis %}
                            {% set d = r.diagnosis %}
                            <button class="error-toggle" onclick="togglePanel('error-{{ index }}')">
                                View Error Details <span class="arrow">&#9660;</span>
                            </button>
                            <div id="error-{{ index }}" class="error-panel">
                                <div class="error-details">
                                    <div class="error-details-header"><span class="error-type-badge">{{ d.kind.label }}</span></div>
                                    <div class="error-details-body">
                                        <div class="error-row"><span class="error-label">File:</span><span class="error-value">{{ d.source_file }}</span></div>
                                        <div class="error-row"><span class="error-label">Line:</span><span class="error-value">{{ d.source_line if d.source_line is not none else 'Unknown' }}</span></div>
                                        {% if d.element_locator %}
                                        <div class="error-row"><span class="error-label">Element:</span><span class="error-value element-selector">{{ d.element_locator }}</span></div>
                                        {% endif %}
                                        {% if d.timeout_value %}
                                        <div class="error-row"><span class="error-label">Timeout:</span><span class="error-value">{{ d.timeout_value }}</span></div>
                                        {% endif %}
                                        <div class="error-row"><span class="error-label">Expected:</span><span class="error-value">{{ d.expected_description or 'N/A' }}</span></div>
                                        <div class="error-row"><span class="error-label">Actual:</span><span class="error-value error-actual">{{ d.actual_description or 'N/A' }}</span></div>
                                        {% if d.suggestion %}
                                        <div class="error-row suggestion"><span class="error-label">Suggestion:</span><span class="error-value">{{ d.suggestion }}</span></div>
                                        {% endif %}
                                        <div class="error-row full-error"><span class="error-label">Full Error:</span><span class="error-value"><pre>{{ d.full_message or 'N/A' }}</pre></span></div>
                                    </div>
                                </div>
                            </div>
                            {% elif r.status.value == 'failed' %}
                            <div class="failure-reason"><strong>Error:</strong> {{ r.failure_reason or '' }}</div>
                            {% endif %}
                            <div class="steps-container">
                                <button class="steps-toggle" onclick="togglePanel('steps-{{ index }}')">
                                    <span>View Test Steps ({{ r.steps|length }})</span> <span class="arrow">&#9660;</span>
                                </button>
                                <div id="steps-{{ index }}" class="steps-panel">
                                    <div class="steps-header">Test Execution Steps</div>
                                    <div class="steps-list">
                                        {% for s in r.steps %}
                                        <div class="step-item {{ s.status.value }} {{ s.kind.value }}">
                                            {% if s.ordinal %}<span class="step-number">{{ s.ordinal }}</span>{% else %}<span class="step-icon">{{ s|step_icon }}</span>{% endif %}
                                            <span class="step-text">{{ s.text }}</span>
                                        </div>
                                        {% else %}
                                        <div class="step-item info"><span class="step-text">No detailed steps captured for this test</span></div>
                                        {% endfor %}
                                    </div>
                                </div>
                            </div>
                        </td>
                        <td><span class="status {{ r.status.value }}">{{ r.status.value|upper }}</span></td>
                        <td><strong>{{ '%.2f'|format(r.duration_seconds) }}s</strong></td>
                        <td>
                            {% if r.video_ref and r.video_ref.relative_path %}
                            <a href="{{ link_prefix }}{{ r.video_ref.relative_path }}" class="video-link" target="_blank">Video: {{ r.video_ref.identifier }}</a>
                            {% else %}
                            <span class="no-video">No video</span>
                            {% endif %}
                        </td>
                    </tr>
                    {% endfor %}
                </tbody>
            </table>
        </div>

        <div class="footer">
            <p>Generated by Fleet Report | {{ project_name }} Test Suite</p>
            {% if master %}
            <p style="margin-top: 5px; font-size: 11px; color: #999;">This is an accumulated report. Run tests to add more results. Run <code>fleet-report --reset</code> (or delete master-data.json) to reset.</p>
            {% endif %}
        </div>
    </div>

    <script>
        const reportRows = {{ export_rows|tojson }};
        const csvHeaders = {{ csv_headers|tojson }};

        function filterTests() {
            const searchText = document.getElementById('searchInput').value.toLowerCase();
            const statusFilter = document.getElementById('statusFilter').value;
            const moduleSelect = document.getElementById('moduleFilter');
            const moduleFilter = moduleSelect ? moduleSelect.value : '';

            document.querySelectorAll('#testTable tbody tr').forEach(row => {
                const matchesSearch = row.textContent.toLowerCase().includes(searchText);
                const matchesStatus = !statusFilter || row.dataset.status === statusFilter;
                const matchesModule = !moduleFilter || row.dataset.module === moduleFilter;
                row.style.display = matchesSearch && matchesStatus && matchesModule ? '' : 'none';
            });
        }

        function togglePanel(id) {
            const panel = document.getElementById(id);
            panel.classList.toggle('show');
            panel.previousElementSibling.classList.toggle('open');
        }

        function csvCell(value) {
            return '"' + String(value).replace(/"/g, '""') + '"';
        }

        function exportToExcel() {
            const lines = [csvHeaders.map(csvCell).join(',')];
            document.querySelectorAll('#testTable tbody tr').forEach(row => {
                if (row.style.display === 'none') return;
                const r = reportRows[Number(row.dataset.index)];
                lines.push([r.testCaseNo, r.module, r.description, r.status, r.duration, r.failureReason, r.videoIdentifier].map(csvCell).join(','));
            });

            const blob = new Blob([lines.join('\\n')], { type: 'text/csv;charset=utf-8;' });
            const link = document.createElement('a');
            link.href = URL.createObjectURL(blob);
            link.download = {{ export_file_name|tojson }};
            link.click();
        }
    </script>
</body>
</html>
"""
