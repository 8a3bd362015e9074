from __future__ import annotations

import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from cronfetch.config import load_settings
from cronfetch.core.outcome import FetchOutcome, JobReport, no_response
from cronfetch.core.targets import Target
from cronfetch.services.trigger_coordinator import TriggerCoordinator
from cronfetch.web.status_api import MANUAL_DONE_TEXT, MANUAL_SKIPPED_TEXT, create_app


class _FailingRunner:
    def __init__(self) -> None:
        self.runs: list[str] = []

    def run(self, trigger: str = "manual") -> JobReport:
        self.runs.append(trigger)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        return JobReport(
            run_id="fetch-x",
            trigger=trigger,
            started_at=now,
            finished_at=now,
            outcomes=(FetchOutcome(Target("https://a.example"), no_response()),),
            target_count=1,
        )


class StatusApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = load_settings(
            {"URL_TO_FETCH": "https://a.example,https://b.example?x=<1>", "CRON_SCHEDULE": "*/5 * * * *"}
        )
        self.runner = _FailingRunner()
        self.sink = MagicMock()
        self.coord = TriggerCoordinator(self.runner, self.sink)  # type: ignore[arg-type]
        self.scheduler = MagicMock()
        self.scheduler.next_run_time.return_value = datetime(2026, 1, 1, 0, 5, tzinfo=timezone.utc)
        self.client = TestClient(create_app(self.settings, self.coord, self.scheduler))

    def test_index_lists_targets(self) -> None:
        r = self.client.get("/")
        self.assertEqual(r.status_code, 200)
        self.assertIn("text/html", r.headers["content-type"])
        self.assertIn("Cron job server is running correctly", r.text)
        self.assertIn("Targets (2)", r.text)
        self.assertIn("https://a.example", r.text)
        self.assertIn("x=&lt;1&gt;", r.text)
        self.assertIn("job: idle", r.text)

    def test_run_manually_runs_job_and_returns_200_even_on_failures(self) -> None:
        r = self.client.get("/run-manually")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.text, MANUAL_DONE_TEXT)
        self.assertEqual(self.runner.runs, ["manual"])
        self.sink.emit.assert_called_once()
        self.assertNotIn("no_response", r.text)

    def test_run_manually_while_running_is_skipped_with_200(self) -> None:
        release = threading.Event()
        started = threading.Event()

        class _Blocking(_FailingRunner):
            def run(self, trigger: str = "manual") -> JobReport:
                started.set()
                release.wait(5)
                return super().run(trigger)

        runner = _Blocking()
        coord = TriggerCoordinator(runner, MagicMock())  # type: ignore[arg-type]
        client = TestClient(create_app(self.settings, coord, None))
        t = threading.Thread(target=coord.trigger_run, args=("schedule",))
        t.start()
        try:
            self.assertTrue(started.wait(5))
            r = client.get("/run-manually")
            self.assertEqual(r.status_code, 200)
            self.assertEqual(r.text, MANUAL_SKIPPED_TEXT)
        finally:
            release.set()
            t.join(5)
        self.assertEqual(runner.runs, ["schedule"])

    def test_healthz(self) -> None:
        self.client.get("/run-manually")
        body = self.client.get("/healthz").json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["targets"], 2)
        self.assertFalse(body["running"])
        self.assertEqual(body["next_run_time"], "2026-01-01T00:05:00+00:00")
        self.assertEqual(body["last_run_at"], "2026-01-01T00:00:00+00:00")

    def test_requests_are_logged(self) -> None:
        with self.assertLogs("cronfetch.http", level="INFO") as logs:
            self.client.get("/healthz")
        self.assertTrue(any("GET /healthz 200" in r.getMessage() for r in logs.records))


if __name__ == "__main__":
    unittest.main()
