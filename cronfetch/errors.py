from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    code: str
    message: str


CONFIG_001_TARGETS_MISSING = ErrorCode(
    "CONFIG_001_TARGETS_MISSING",
    "No fetch targets configured (URL_TO_FETCH).",
)
CONFIG_002_TARGET_INVALID = ErrorCode(
    "CONFIG_002_TARGET_INVALID",
    "A fetch target is not a valid absolute http(s) URL.",
)
CONFIG_003_SCHEDULE_MISSING = ErrorCode(
    "CONFIG_003_SCHEDULE_MISSING",
    "No cron schedule configured (CRON_SCHEDULE).",
)
CONFIG_004_SCHEDULE_INVALID = ErrorCode(
    "CONFIG_004_SCHEDULE_INVALID",
    "Cron schedule expression is invalid.",
)
CONFIG_005_VALUE_INVALID = ErrorCode(
    "CONFIG_005_VALUE_INVALID",
    "Configuration value is invalid.",
)
CONFIG_006_FILE_INVALID = ErrorCode(
    "CONFIG_006_FILE_INVALID",
    "Configuration file could not be read.",
)


class ConfigurationError(RuntimeError):
    def __init__(self, err: ErrorCode, detail: str = "") -> None:
        suffix = f" detail={detail}" if detail else ""
        super().__init__(f"{err.code}: {err.message}{suffix}")
        self.err = err
        self.detail = detail
