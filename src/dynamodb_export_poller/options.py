"""
dynamodb_export_poller.options — Poller configuration.

All durations are in seconds.  Zero max_attempts means retry forever; zero
timeout means no overall deadline.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from dynamodb_export_poller.exceptions import ConfigError

DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_DELAY = 10.0
DEFAULT_MAX_ATTEMPTS = 0
DEFAULT_TIMEOUT = 0.0

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def default_concurrency() -> int:
    return os.cpu_count() or 1


def parse_duration(text: str) -> float:
    """Parse a duration such as "1s", "500ms", "1m30s" or "2.5" into seconds.

    A bare number is read as seconds.  Negative durations are rejected here;
    range checks against other options happen in PollerOptions.validate().
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")
    try:
        seconds = float(value)
    except ValueError:
        pos = 0
        seconds = 0.0
        while pos < len(value):
            match = _DURATION_PART.match(value, pos)
            if match is None:
                raise ValueError(f"invalid duration: {text!r}") from None
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {text!r}")
    return seconds


@dataclass(frozen=True)
class PollerOptions:
    """Options shared by every export polled in one call.

    concurrency:   max number of exports described at the same time.
    initial_delay: first backoff interval.
    max_delay:     upper bound for the backoff interval.
    max_attempts:  describe calls per export; 0 means unbounded.
    timeout:       overall deadline for a poll call; 0 means none.
    """

    concurrency: int = field(default_factory=default_concurrency)
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    timeout: float = DEFAULT_TIMEOUT

    def problems(self) -> list[str]:
        reasons: list[str] = []
        if self.concurrency <= 0:
            reasons.append("concurrency must be greater than 0")
        if self.initial_delay < 0:
            reasons.append("initial delay must not be negative")
        if self.max_delay < self.initial_delay:
            reasons.append("max delay must not be less than initial delay")
        if self.max_attempts < 0:
            reasons.append("max attempts must not be negative")
        if self.timeout < 0:
            reasons.append("timeout must not be negative")
        return reasons

    def validate(self) -> None:
        """Raise ConfigError listing every violated rule, or return None."""
        reasons = self.problems()
        if reasons:
            raise ConfigError(reasons)
