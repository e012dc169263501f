"""Tunables and environment-driven settings."""

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping

MAX_RANGE_LIMIT = 100_000               # hard ceiling on bytes served per read
MAX_RANGE = MAX_RANGE_LIMIT
DEFAULT_LENGTH = 1000
DEFAULT_KEY = "pi-billion.txt"
CACHE_CONTROL = "public, max-age=86400"
RANGE_FALLBACK_MAX = 10 * 1024 * 1024   # 10 MB

# client side
DEFAULT_CHUNK_SIZE = 500
DEFAULT_CONCURRENCY = 4
DEFAULT_LOOKAHEAD = 4
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.05

ENV_PREFIX = "DIGITSTREAM_"


def check_max_range(max_range: int) -> int:
    if not 0 < max_range <= MAX_RANGE_LIMIT:
        raise ValueError(f"max_range must be in 1..{MAX_RANGE_LIMIT}, got {max_range}")
    return max_range


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


@dataclass(slots=True)
class Settings:
    source: str = "."
    key: str = DEFAULT_KEY
    max_range: int = MAX_RANGE
    default_length: int = DEFAULT_LENGTH
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        check_max_range(self.max_range)
        if not 0 < self.default_length <= self.max_range:
            raise ValueError(f"default_length must be in 1..{self.max_range}, got {self.default_length}")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from DIGITSTREAM_* variables, falling back to defaults."""
        env = os.environ if env is None else env
        return cls(
            source=env.get(ENV_PREFIX + "SOURCE") or ".",
            key=env.get(ENV_PREFIX + "KEY") or DEFAULT_KEY,
            max_range=_int(env, "MAX_RANGE", MAX_RANGE),
            default_length=_int(env, "DEFAULT_LENGTH", DEFAULT_LENGTH),
            host=env.get(ENV_PREFIX + "HOST") or "127.0.0.1",
            port=_int(env, "PORT", 8000),
        )
