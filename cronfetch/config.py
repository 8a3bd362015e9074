from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo

import yaml
from dotenv import load_dotenv

from cronfetch.core.targets import TargetList, is_valid_url, parse_targets
from cronfetch.errors import (
    CONFIG_002_TARGET_INVALID,
    CONFIG_003_SCHEDULE_MISSING,
    CONFIG_005_VALUE_INVALID,
    CONFIG_006_FILE_INVALID,
    ConfigurationError,
)
from cronfetch.workers.scheduler_worker import build_cron_trigger


DEFAULT_PORT = 3002
DEFAULT_HOST = "0.0.0.0"
DEFAULT_CRON_TIMEZONE = "Etc/UTC"
DEFAULT_DISPLAY_TIMEZONE = "Asia/Kolkata"
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "cron-fetch-server/1.0"
DEFAULT_LOG_LEVEL = "INFO"

# env var -> yaml key
_ENV_KEYS = {
    "URL_TO_FETCH": "targets",
    "CRON_SCHEDULE": "cron_schedule",
    "FETCH_OWN": "self_ping_url",
    "PORT": "port",
    "HOST": "host",
    "CRON_TIMEZONE": "cron_timezone",
    "DISPLAY_TIMEZONE": "display_timezone",
    "FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
    "FETCH_USER_AGENT": "user_agent",
    "LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    targets: TargetList
    cron_schedule: str
    self_ping_url: str | None = None
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    cron_timezone: str = DEFAULT_CRON_TIMEZONE
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE
    # None means no client-side timeout.
    fetch_timeout_seconds: float | None = DEFAULT_FETCH_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = DEFAULT_LOG_LEVEL

    def to_dict(self) -> dict[str, Any]:
        return {
            "targets": self.targets.urls(),
            "cron_schedule": self.cron_schedule,
            "self_ping_url": self.self_ping_url,
            "port": self.port,
            "host": self.host,
            "cron_timezone": self.cron_timezone,
            "display_timezone": self.display_timezone,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "user_agent": self.user_agent,
            "log_level": self.log_level,
        }


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(CONFIG_006_FILE_INVALID, f"path={path} error={e}") from e
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigurationError(CONFIG_006_FILE_INVALID, f"path={path} error=top-level value must be a mapping")
    return obj


def _str_or_none(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _parse_port(v: Any) -> int:
    if v is None or str(v).strip() == "":
        return DEFAULT_PORT
    try:
        port = int(str(v).strip())
    except ValueError as e:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"PORT={v!r}") from e
    if not 0 < port < 65536:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"PORT={v!r}")
    return port


def _parse_timeout(v: Any) -> float | None:
    if v is None or str(v).strip() == "":
        return DEFAULT_FETCH_TIMEOUT_SECONDS
    try:
        timeout = float(str(v).strip())
    except ValueError as e:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"FETCH_TIMEOUT_SECONDS={v!r}") from e
    if timeout < 0:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"FETCH_TIMEOUT_SECONDS={v!r}")
    return timeout or None


def _parse_timezone(name: str, key: str) -> str:
    try:
        ZoneInfo(name)
    except (KeyError, ValueError) as e:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"{key}={name!r}") from e
    return name


def _parse_log_level(v: Any) -> str:
    level = (_str_or_none(v) or DEFAULT_LOG_LEVEL).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError(CONFIG_005_VALUE_INVALID, f"LOG_LEVEL={v!r}")
    return level


def _merged_values(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    cfg_path = _str_or_none(env.get("CRON_FETCH_CONFIG"))
    if cfg_path:
        values.update(_load_yaml(Path(cfg_path)))
    for env_key, key in _ENV_KEYS.items():
        raw = env.get(env_key)
        if raw is not None and str(raw).strip() != "":
            values[key] = raw
    return values


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Resolve and validate settings. Raises ConfigurationError on anything that
    should stop the process from starting.

    With env=None the process environment is used, after merging `.env`.
    """
    if env is None:
        load_dotenv(override=False)
        env = os.environ
    values = _merged_values(env)

    targets = parse_targets(values.get("targets"))

    cron_schedule = _str_or_none(values.get("cron_schedule"))
    if not cron_schedule:
        raise ConfigurationError(CONFIG_003_SCHEDULE_MISSING)
    cron_timezone = _parse_timezone(_str_or_none(values.get("cron_timezone")) or DEFAULT_CRON_TIMEZONE, "CRON_TIMEZONE")
    # Raises CONFIG_004 on a bad expression.
    build_cron_trigger(cron_schedule, cron_timezone)

    self_ping_url = _str_or_none(values.get("self_ping_url"))
    if self_ping_url and not is_valid_url(self_ping_url):
        raise ConfigurationError(CONFIG_002_TARGET_INVALID, f"FETCH_OWN={self_ping_url!r}")

    return Settings(
        targets=targets,
        cron_schedule=cron_schedule,
        self_ping_url=self_ping_url,
        port=_parse_port(values.get("port")),
        host=_str_or_none(values.get("host")) or DEFAULT_HOST,
        cron_timezone=cron_timezone,
        display_timezone=_parse_timezone(
            _str_or_none(values.get("display_timezone")) or DEFAULT_DISPLAY_TIMEZONE, "DISPLAY_TIMEZONE"
        ),
        fetch_timeout_seconds=_parse_timeout(values.get("fetch_timeout_seconds")),
        user_agent=_str_or_none(values.get("user_agent")) or DEFAULT_USER_AGENT,
        log_level=_parse_log_level(values.get("log_level")),
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
