from __future__ import annotations

"""
Process entrypoint: scheduler + status/manual-trigger HTTP server.

  URL_TO_FETCH=https://a.example,https://b.example CRON_SCHEDULE="*/5 * * * *" python -m cronfetch.server
"""

import logging
from dataclasses import dataclass

from cronfetch.config import Settings, configure_logging, load_settings
from cronfetch.errors import ConfigurationError
from cronfetch.services.fetch_executor import FetchExecutor
from cronfetch.services.job_runner import JobRunner
from cronfetch.services.report_sink import LoggingReportSink
from cronfetch.services.trigger_coordinator import TriggerCoordinator
from cronfetch.web.status_api import create_app, run_server
from cronfetch.workers.scheduler_worker import SchedulerWorker

logger = logging.getLogger("cronfetch.server")


@dataclass(frozen=True)
class Service:
    settings: Settings
    runner: JobRunner
    coordinator: TriggerCoordinator


def build_service(settings: Settings) -> Service:
    executor = FetchExecutor(timeout_seconds=settings.fetch_timeout_seconds, user_agent=settings.user_agent)
    runner = JobRunner(settings.targets, executor, self_ping_url=settings.self_ping_url)
    sink = LoggingReportSink(display_timezone=settings.display_timezone)
    return Service(settings=settings, runner=runner, coordinator=TriggerCoordinator(runner, sink))


def serve(settings: Settings) -> None:
    service = build_service(settings)
    worker = SchedulerWorker(service.coordinator, settings.cron_schedule, timezone=settings.cron_timezone)
    app = create_app(settings, service.coordinator, worker)
    logger.info(
        "start targets=%d self_ping=%s cron=%r tz=%s",
        len(settings.targets),
        bool(settings.self_ping_url),
        settings.cron_schedule,
        settings.cron_timezone,
    )
    worker.start()
    try:
        run_server(settings, app)
    finally:
        worker.shutdown()


def main() -> None:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging()
        logger.error("startup aborted error_code=%s error=%s", e.err.code, e)
        raise SystemExit(1)
    configure_logging(settings.log_level)
    serve(settings)


if __name__ == "__main__":
    main()
