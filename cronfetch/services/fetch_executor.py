from __future__ import annotations

import http.client
import logging
import time
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from cronfetch.core.outcome import FetchOutcome, Success, no_response, remote_error, request_setup_error
from cronfetch.core.targets import Target

logger = logging.getLogger(__name__)

Opener = Callable[..., Any]

# Upper bound on body bytes read per fetch.
DRAIN_LIMIT_BYTES = 64 * 1024


class FetchExecutor:
    """
    Issues one GET per target and folds every transport result into a FetchOutcome.

    Classification:
    - a 2xx/3xx response that urllib hands back -> Success
    - HTTPError (a response arrived with an error status) -> RemoteError "<code>/<reason>"
    - request sent but nothing came back (refused, DNS, timeout) -> NoResponse
    - request could not be built or sent -> RequestSetupError with the message

    No retries. `fetch` never raises.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = 30.0,
        user_agent: str = "cron-fetch-server/1.0",
        opener: Opener | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._opener = opener or urlopen

    def _open(self, req: Request) -> Any:
        if self.timeout_seconds is None:
            return self._opener(req)
        return self._opener(req, timeout=self.timeout_seconds)

    def _drain(self, r: Any, target: Target) -> None:
        try:
            r.read(DRAIN_LIMIT_BYTES)
        except (OSError, http.client.HTTPException) as e:
            logger.debug("fetch_body_read_failed url=%s error=%s: %s", target.url, type(e).__name__, e)

    def fetch(self, target: Target) -> FetchOutcome:
        t0 = time.perf_counter()
        try:
            req = Request(target.url, headers={"User-Agent": self.user_agent}, method="GET")
            with self._open(req) as r:
                status = int(getattr(r, "status", 200))
                reason = str(getattr(r, "reason", "") or http.client.responses.get(status, ""))
                self._drain(r, target)
            result = Success(status, reason)
        except HTTPError as e:
            code = int(getattr(e, "code", 0) or 0)
            reason = str(getattr(e, "reason", "") or http.client.responses.get(code, ""))
            e.close()
            result = remote_error(code, reason)
        except URLError as e:
            logger.debug("fetch_no_response url=%s reason=%s", target.url, getattr(e, "reason", e))
            result = no_response()
        except http.client.InvalidURL as e:
            result = request_setup_error(str(e) or type(e).__name__)
        except (TimeoutError, OSError, http.client.HTTPException) as e:
            logger.debug("fetch_no_response url=%s error=%s: %s", target.url, type(e).__name__, e)
            result = no_response()
        except Exception as e:
            result = request_setup_error(str(e) or type(e).__name__)
        elapsed_ms = int((time.perf_counter() - t0) * 1000)
        return FetchOutcome(target=target, result=result, elapsed_ms=elapsed_ms)
