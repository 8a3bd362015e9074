from __future__ import annotations

import logging
import uuid
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable

from cronfetch.core.outcome import FetchOutcome, JobReport, request_setup_error
from cronfetch.core.targets import Target, TargetList
from cronfetch.services.fetch_executor import FetchExecutor

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_run_id(now: datetime) -> str:
    return f"fetch-{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4().hex[:6]}"


def _settled(fut: Future, target: Target) -> FetchOutcome:
    try:
        return fut.result()
    except Exception as e:  # pragma: no cover - defensive
        return FetchOutcome(target=target, result=request_setup_error(f"{type(e).__name__}: {e}"))


class JobRunner:
    """
    Runs one fan-out pass over every target.

    All fetches (plus the optional self-ping) are submitted at once and the
    run waits for every one of them; a failing target never cancels the rest.
    Outcomes come back in target order, not completion order.
    """

    def __init__(
        self,
        targets: TargetList,
        executor: FetchExecutor,
        *,
        self_ping_url: str | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.targets = targets
        self.executor = executor
        self.self_ping = Target(self_ping_url) if self_ping_url else None
        self._clock = clock

    def run(self, trigger: str = "manual") -> JobReport:
        started_at = self._clock()
        run_id = _new_run_id(started_at)
        logger.debug("job_fanout run_id=%s targets=%d self_ping=%s", run_id, len(self.targets), bool(self.self_ping))

        workers = len(self.targets) + (1 if self.self_ping else 0)
        with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="fetch") as ex:
            futures = [ex.submit(self.executor.fetch, t) for t in self.targets]
            ping_future = ex.submit(self.executor.fetch, self.self_ping) if self.self_ping else None
            wait(futures + ([ping_future] if ping_future else []), return_when=ALL_COMPLETED)

        outcomes = tuple(_settled(f, t) for f, t in zip(futures, self.targets))
        self_ping_outcome = _settled(ping_future, self.self_ping) if ping_future and self.self_ping else None
        finished_at = self._clock()
        return JobReport(
            run_id=run_id,
            trigger=trigger,
            started_at=started_at,
            finished_at=finished_at,
            outcomes=outcomes,
            self_ping_outcome=self_ping_outcome,
            target_count=len(self.targets),
        )
