from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from cronfetch.core.outcome import FetchOutcome, JobReport, Success


class ReportSink(Protocol):
    def emit(self, report: JobReport) -> None: ...


def format_timestamp(ts: datetime, tz: str = "Asia/Kolkata") -> str:
    """Render a timestamp in the display timezone, e.g. `2026-10-18 02:30:00 PM IST`."""
    return ts.astimezone(ZoneInfo(tz)).strftime("%Y-%m-%d %I:%M:%S %p %Z")


def _outcome_entry(label: str, o: FetchOutcome) -> tuple[int, str]:
    if isinstance(o.result, Success):
        line = f"{label} OK url={o.target.url} status={o.result.status_code} {o.result.status_text} elapsed_ms={o.elapsed_ms}"
        return logging.INFO, line
    line = f"{label} FAIL url={o.target.url} kind={o.result.kind.value} detail={o.result.detail} elapsed_ms={o.elapsed_ms}"
    return logging.WARNING, line


def render_report_entries(report: JobReport, tz: str = "Asia/Kolkata") -> list[tuple[int, str]]:
    """Report as (log level, line) pairs; failed outcomes carry WARNING."""
    entries = [
        (
            logging.INFO,
            f"[{format_timestamp(report.started_at, tz)}] --- fetch job starting run_id={report.run_id} trigger={report.trigger} ---",
        )
    ]
    for idx, o in enumerate(report.outcomes, start=1):
        entries.append(_outcome_entry(f"target[{idx}]", o))
    if report.self_ping_outcome is not None:
        entries.append(_outcome_entry("self_ping", report.self_ping_outcome))
    entries.append(
        (
            logging.INFO,
            f"totals targets={len(report.outcomes)} ok={report.succeeded} failed={report.failed} duration_ms={report.duration_ms}",
        )
    )
    entries.append((logging.INFO, f"[{format_timestamp(report.finished_at, tz)}] --- fetch job finished run_id={report.run_id} ---"))
    return entries


def render_report_lines(report: JobReport, tz: str = "Asia/Kolkata") -> list[str]:
    return [line for _, line in render_report_entries(report, tz)]


class LoggingReportSink:
    """Writes each report to the log; failed outcomes go out at WARNING."""

    def __init__(self, *, display_timezone: str = "Asia/Kolkata", logger: logging.Logger | None = None) -> None:
        self.display_timezone = display_timezone
        self._logger = logger or logging.getLogger("cronfetch.report")

    def emit(self, report: JobReport) -> None:
        for level, line in render_report_entries(report, self.display_timezone):
            self._logger.log(level, "%s", line)
