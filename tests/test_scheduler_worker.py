from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from apscheduler.triggers.cron import CronTrigger

from cronfetch.errors import CONFIG_004_SCHEDULE_INVALID, ConfigurationError
from cronfetch.services.trigger_coordinator import STATUS_SKIPPED, TriggerResult
from cronfetch.workers.scheduler_worker import (
    JOB_ID,
    SchedulerWorker,
    build_cron_trigger,
    translate_day_of_week,
)


class CronTriggerTests(unittest.TestCase):
    def test_five_field_crontab(self) -> None:
        trig = build_cron_trigger("*/5 * * * *", "Etc/UTC")
        self.assertIsInstance(trig, CronTrigger)
        now = datetime(2026, 1, 1, 0, 1, 0, tzinfo=timezone.utc)
        nxt = trig.get_next_fire_time(None, now)
        self.assertEqual((nxt.hour, nxt.minute, nxt.second), (0, 5, 0))

    def test_six_field_with_seconds(self) -> None:
        trig = build_cron_trigger("*/30 * * * * *", "Etc/UTC")
        now = datetime(2026, 1, 1, 0, 0, 10, tzinfo=timezone.utc)
        nxt = trig.get_next_fire_time(None, now)
        self.assertEqual((nxt.minute, nxt.second), (0, 30))

    def test_day_of_week_zero_is_sunday(self) -> None:
        trig = build_cron_trigger("0 9 * * 0", "Etc/UTC")
        now = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)
        nxt = trig.get_next_fire_time(None, now)
        self.assertEqual(nxt.weekday(), 6)
        self.assertEqual((nxt.year, nxt.month, nxt.day, nxt.hour), (2026, 10, 25, 9))

    def test_day_of_week_seven_is_sunday(self) -> None:
        trig = build_cron_trigger("0 9 * * 7", "Etc/UTC")
        nxt = trig.get_next_fire_time(None, datetime(2026, 10, 19, tzinfo=timezone.utc))
        self.assertEqual(nxt.weekday(), 6)
        build_cron_trigger("* * * * 7")

    def test_six_field_day_of_week_uses_crontab_numbering(self) -> None:
        trig = build_cron_trigger("0 0 9 * * 1", "Etc/UTC")
        nxt = trig.get_next_fire_time(None, datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(nxt.weekday(), 0)

    def test_translate_day_of_week(self) -> None:
        self.assertEqual(translate_day_of_week("*"), "*")
        self.assertEqual(translate_day_of_week("1-5"), "mon,tue,wed,thu,fri")
        self.assertEqual(translate_day_of_week("5-7"), "sun,fri,sat")
        self.assertEqual(translate_day_of_week("*/2"), "sun,tue,thu,sat")
        self.assertEqual(translate_day_of_week("0,3"), "sun,wed")
        self.assertEqual(translate_day_of_week("MON-wed"), "mon,tue,wed")
        self.assertEqual(translate_day_of_week("0-7"), "*")
        for bad in ("8", "5-1", "1,,2", "*/0", "funday"):
            with self.assertRaises(ValueError, msg=bad):
                translate_day_of_week(bad)

    def test_invalid_expressions_rejected(self) -> None:
        for expr in ("", "* * *", "61 * * * *", "not a cron", "* * * * * * *", "0 9 * * 8"):
            with self.assertRaises(ConfigurationError, msg=expr) as ctx:
                build_cron_trigger(expr)
            self.assertEqual(ctx.exception.err, CONFIG_004_SCHEDULE_INVALID)


class SchedulerWorkerTests(unittest.TestCase):
    def test_start_registers_single_job(self) -> None:
        coord = MagicMock()
        worker = SchedulerWorker(coord, "0 * * * *", timezone="Etc/UTC")
        worker.start()
        try:
            jobs = worker.scheduler.get_jobs()
            self.assertEqual([j.id for j in jobs], [JOB_ID])
            self.assertIsNotNone(worker.next_run_time())
        finally:
            worker.shutdown()
        self.assertFalse(worker.scheduler.running)

    def test_next_run_time_none_before_start(self) -> None:
        worker = SchedulerWorker(MagicMock(), "0 * * * *")
        self.assertIsNone(worker.next_run_time())

    def test_job_calls_coordinator_with_schedule_trigger(self) -> None:
        coord = MagicMock()
        coord.trigger_run.return_value = TriggerResult(status=STATUS_SKIPPED, trigger="schedule")
        worker = SchedulerWorker(coord, "0 * * * *")
        worker._run_job()
        coord.trigger_run.assert_called_once_with("schedule")

    def test_invalid_schedule_fails_before_scheduler_exists(self) -> None:
        with self.assertRaises(ConfigurationError):
            SchedulerWorker(MagicMock(), "bogus")


if __name__ == "__main__":
    unittest.main()
