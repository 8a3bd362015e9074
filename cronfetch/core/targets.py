from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator
from urllib.parse import urlparse

from cronfetch.errors import CONFIG_001_TARGETS_MISSING, CONFIG_002_TARGET_INVALID, ConfigurationError

_CONTROL_OR_SPACE = re.compile(r"[\x00-\x20\x7f]")


def is_valid_url(url: str) -> bool:
    if _CONTROL_OR_SPACE.search(url):
        return False
    try:
        p = urlparse(url)
        return bool(p.scheme in ("http", "https") and p.netloc)
    except Exception:
        return False


@dataclass(frozen=True)
class Target:
    url: str


@dataclass(frozen=True)
class TargetList:
    """
    Ordered, immutable set of fetch targets.

    Order follows the configuration value; duplicates are kept and fetched
    independently.
    """

    targets: tuple[Target, ...]

    @classmethod
    def from_urls(cls, urls: Iterable[str]) -> "TargetList":
        return cls(tuple(Target(u) for u in urls))

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def __getitem__(self, idx: int) -> Target:
        return self.targets[idx]

    def urls(self) -> list[str]:
        return [t.url for t in self.targets]


def parse_targets(raw: Any) -> TargetList:
    """
    Parse `URL_TO_FETCH` (one URL or a comma-delimited list) into a TargetList.

    A list value (from the YAML config file) is treated as already split.
    """
    if raw is None:
        raise ConfigurationError(CONFIG_001_TARGETS_MISSING)
    if isinstance(raw, str):
        if not raw.strip():
            raise ConfigurationError(CONFIG_001_TARGETS_MISSING)
        segments = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        segments = [str(x) for x in raw]
        if not segments:
            raise ConfigurationError(CONFIG_001_TARGETS_MISSING)
    else:
        raise ConfigurationError(
            CONFIG_002_TARGET_INVALID,
            f"expected a string or a list of URLs, got {type(raw).__name__}",
        )

    urls: list[str] = []
    for idx, seg in enumerate(segments):
        u = seg.strip()
        if not u:
            raise ConfigurationError(CONFIG_002_TARGET_INVALID, f"empty entry at position {idx}")
        if not is_valid_url(u):
            raise ConfigurationError(CONFIG_002_TARGET_INVALID, f"url={u!r}")
        urls.append(u)
    return TargetList.from_urls(urls)
