from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from cronfetch.errors import CONFIG_004_SCHEDULE_INVALID, ConfigurationError

if TYPE_CHECKING:
    from cronfetch.services.trigger_coordinator import TriggerCoordinator

logger = logging.getLogger(__name__)

JOB_ID = "fetch-job"

# crontab numbering: 0 and 7 are Sunday. APScheduler numbers Monday as 0, so
# the field is rewritten with day names before it reaches CronTrigger.
_DOW_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def _dow_value(token: str) -> int:
    t = token.strip().lower()
    if t in _DOW_NAMES:
        return _DOW_NAMES.index(t)
    if not t.isdigit() or int(t) > 7:
        raise ValueError(f"invalid day-of-week value {token!r}")
    return int(t)


def translate_day_of_week(field: str) -> str:
    """Rewrite a crontab day-of-week field (0/7 = Sunday) into day names."""
    days: set[int] = set()
    for item in field.split(","):
        base, _, step_raw = item.partition("/")
        step = 1
        if step_raw:
            if not step_raw.isdigit() or int(step_raw) < 1:
                raise ValueError(f"invalid day-of-week step {item!r}")
            step = int(step_raw)
        if base == "*":
            if not step_raw:
                return "*"
            lo, hi = 0, 6
        elif "-" in base:
            lo_raw, hi_raw = base.split("-", 1)
            lo, hi = _dow_value(lo_raw), _dow_value(hi_raw)
            if lo > hi:
                raise ValueError(f"invalid day-of-week range {item!r}")
        else:
            lo = _dow_value(base)
            hi = 7 if step_raw else lo
        days.update(d % 7 for d in range(lo, hi + 1, step))
    if len(days) == 7:
        return "*"
    return ",".join(_DOW_NAMES[d] for d in sorted(days))


def build_cron_trigger(expr: str, timezone: str = "Etc/UTC") -> CronTrigger:
    """
    Build a CronTrigger from a 5-field crontab or a 6-field expression with a
    leading seconds field (`*/30 * * * * *`). Day-of-week follows crontab
    numbering.
    """
    fields = str(expr or "").split()
    try:
        if len(fields) == 5:
            fields[4] = translate_day_of_week(fields[4])
            return CronTrigger.from_crontab(" ".join(fields), timezone=timezone)
        if len(fields) == 6:
            second, minute, hour, day, month, day_of_week = fields
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=translate_day_of_week(day_of_week),
                timezone=timezone,
            )
    except ValueError as e:
        raise ConfigurationError(CONFIG_004_SCHEDULE_INVALID, f"expr={expr!r} error={e}") from e
    raise ConfigurationError(CONFIG_004_SCHEDULE_INVALID, f"expr={expr!r} expected 5 or 6 fields, got {len(fields)}")


class SchedulerWorker:
    """Fires TriggerCoordinator.trigger_run("schedule") on the cron schedule."""

    def __init__(
        self,
        coordinator: "TriggerCoordinator",
        cron_schedule: str,
        *,
        timezone: str = "Etc/UTC",
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.cron_schedule = cron_schedule
        self.timezone = timezone
        self.trigger = build_cron_trigger(cron_schedule, timezone)
        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": 60,
            },
            timezone=timezone,
        )

    def _run_job(self) -> None:
        result = self.coordinator.trigger_run("schedule")
        if result.skipped:
            logger.info("scheduled_run_skipped reason=already_running")

    def start(self) -> None:
        self.scheduler.add_job(self._run_job, trigger=self.trigger, id=JOB_ID, replace_existing=True)
        self.scheduler.start()
        logger.info("scheduled_job cron=%r tz=%s next_run=%s", self.cron_schedule, self.timezone, self.next_run_time())

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler stopped")

    def next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(JOB_ID)
        if job is None:
            return None
        return getattr(job, "next_run_time", None)
