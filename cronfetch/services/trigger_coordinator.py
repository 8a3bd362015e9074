from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from cronfetch.core.outcome import JobReport
from cronfetch.services.job_runner import JobRunner
from cronfetch.services.report_sink import ReportSink

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class TriggerResult:
    status: str
    trigger: str
    report: JobReport | None = None

    @property
    def skipped(self) -> bool:
        return self.status == STATUS_SKIPPED


class TriggerCoordinator:
    """
    Single-slot guard in front of the JobRunner.

    Scheduled and manual triggers both call `trigger_run`. If a run is already
    in flight the new trigger is skipped, not queued, and the caller gets a
    skipped TriggerResult back. Only the Idle->Running and Running->Idle
    transitions happen under the lock; the run itself does not hold it.
    """

    def __init__(self, runner: JobRunner, sink: ReportSink) -> None:
        self.runner = runner
        self.sink = sink
        self._lock = threading.Lock()
        self._running = False
        self._last_finished_at: datetime | None = None

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def last_run_at(self) -> datetime | None:
        with self._lock:
            return self._last_finished_at

    def trigger_run(self, trigger: str = "manual") -> TriggerResult:
        with self._lock:
            if self._running:
                logger.info("job_skipped_running trigger=%s", trigger)
                return TriggerResult(status=STATUS_SKIPPED, trigger=trigger)
            self._running = True

        report: JobReport | None = None
        try:
            report = self.runner.run(trigger=trigger)
            try:
                self.sink.emit(report)
            except Exception:
                logger.exception("report_sink_failed run_id=%s", report.run_id)
        finally:
            with self._lock:
                self._running = False
                if report is not None:
                    self._last_finished_at = report.finished_at
        logger.info(
            "job_done trigger=%s run_id=%s ok=%d failed=%d",
            trigger,
            report.run_id,
            report.succeeded,
            report.failed,
        )
        return TriggerResult(status=STATUS_COMPLETED, trigger=trigger, report=report)
