from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from cronfetch.core.targets import Target

NO_RESPONSE_DETAIL = "no response received"


class FailureKind(str, Enum):
    REMOTE_ERROR = "remote_error"
    NO_RESPONSE = "no_response"
    REQUEST_SETUP_ERROR = "request_setup_error"


@dataclass(frozen=True)
class Success:
    status_code: int
    status_text: str


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    detail: str


FetchResult = Union[Success, Failure]


@dataclass(frozen=True)
class FetchOutcome:
    target: Target
    result: FetchResult
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return isinstance(self.result, Success)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"url": self.target.url, "ok": self.ok, "elapsed_ms": self.elapsed_ms}
        if isinstance(self.result, Success):
            out["status_code"] = self.result.status_code
            out["status_text"] = self.result.status_text
        else:
            out["failure_kind"] = self.result.kind.value
            out["detail"] = self.result.detail
        return out


def remote_error(status_code: int, status_text: str) -> Failure:
    return Failure(FailureKind.REMOTE_ERROR, f"{status_code}/{status_text}")


def no_response() -> Failure:
    return Failure(FailureKind.NO_RESPONSE, NO_RESPONSE_DETAIL)


def request_setup_error(message: str) -> Failure:
    return Failure(FailureKind.REQUEST_SETUP_ERROR, message)


@dataclass(frozen=True)
class JobReport:
    """
    Result of one job run: one outcome per target, in target order.

    `self_ping_outcome` is only set when a self-ping URL is configured.
    """

    run_id: str
    trigger: str
    started_at: datetime
    finished_at: datetime
    outcomes: tuple[FetchOutcome, ...]
    self_ping_outcome: FetchOutcome | None = None
    target_count: int = field(default=-1)

    def __post_init__(self) -> None:
        if self.target_count >= 0 and len(self.outcomes) != self.target_count:
            raise ValueError(
                f"report outcome count mismatch: outcomes={len(self.outcomes)} targets={self.target_count}"
            )

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trigger": self.trigger,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "counts": {"targets": len(self.outcomes), "ok": self.succeeded, "failed": self.failed},
            "outcomes": [o.to_dict() for o in self.outcomes],
            "self_ping": self.self_ping_outcome.to_dict() if self.self_ping_outcome else None,
        }
