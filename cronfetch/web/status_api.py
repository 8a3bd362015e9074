from __future__ import annotations

import html
import logging
import time
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel

from cronfetch.config import Settings
from cronfetch.services.report_sink import format_timestamp
from cronfetch.services.trigger_coordinator import TriggerCoordinator
from cronfetch.workers.scheduler_worker import SchedulerWorker

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("cronfetch.http")

MANUAL_DONE_TEXT = "Manual fetch job executed. Check server logs for details."
MANUAL_SKIPPED_TEXT = "A fetch job is already running; manual trigger skipped. Check server logs for details."


class HealthPayload(BaseModel):
    ok: bool
    service: str
    targets: int
    running: bool
    next_run_time: str | None = None
    last_run_at: str | None = None
    ts: str


def create_app(
    settings: Settings,
    coordinator: TriggerCoordinator,
    scheduler: SchedulerWorker | None = None,
) -> FastAPI:
    app = FastAPI(title="Cron Fetch Server", version="1.0.0")

    @app.middleware("http")
    async def _access_log(request: Request, call_next):  # type: ignore[no-untyped-def]
        t0 = time.perf_counter()
        response = await call_next(request)
        access_logger.info(
            "%s %s %d %.1f ms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - t0) * 1000,
        )
        return response

    def _next_run() -> datetime | None:
        return scheduler.next_run_time() if scheduler else None

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        urls = settings.targets.urls()
        items = "".join(f"<li>{html.escape(u)}</li>" for u in urls)
        nrt = _next_run()
        next_line = format_timestamp(nrt, settings.display_timezone) if nrt else "not scheduled"
        state = "running" if coordinator.is_running() else "idle"
        return (
            "<h2>✅ Cron job server is running correctly.</h2>"
            "<p>The job is scheduled and will run automatically. No need to visit any other endpoint.</p>"
            f"<p>Schedule: <code>{html.escape(settings.cron_schedule)}</code> ({html.escape(settings.cron_timezone)})"
            f" | next run: {html.escape(next_line)} | job: {state}</p>"
            f"<p>Targets ({len(urls)}):</p><ul>{items}</ul>"
        )

    @app.get("/run-manually", response_class=PlainTextResponse)
    def run_manually() -> str:
        logger.info("manual trigger of fetch job requested")
        result = coordinator.trigger_run("manual")
        return MANUAL_SKIPPED_TEXT if result.skipped else MANUAL_DONE_TEXT

    @app.get("/healthz", response_model=HealthPayload)
    def healthz() -> HealthPayload:
        nrt = _next_run()
        last = coordinator.last_run_at()
        return HealthPayload(
            ok=True,
            service="cron-fetch-server",
            targets=len(settings.targets),
            running=coordinator.is_running(),
            next_run_time=nrt.isoformat() if nrt else None,
            last_run_at=last.isoformat() if last else None,
            ts=datetime.now(timezone.utc).isoformat(),
        )

    return app


def run_server(settings: Settings, app: FastAPI) -> None:
    logger.info("server listening on port %d; visit http://localhost:%d to check server status", settings.port, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower(), access_log=False)
