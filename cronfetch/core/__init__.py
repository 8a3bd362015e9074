from cronfetch.core.outcome import (
    NO_RESPONSE_DETAIL,
    Failure,
    FailureKind,
    FetchOutcome,
    JobReport,
    Success,
)
from cronfetch.core.targets import Target, TargetList, is_valid_url, parse_targets

__all__ = [
    "NO_RESPONSE_DETAIL",
    "Failure",
    "FailureKind",
    "FetchOutcome",
    "JobReport",
    "Success",
    "Target",
    "TargetList",
    "is_valid_url",
    "parse_targets",
]
