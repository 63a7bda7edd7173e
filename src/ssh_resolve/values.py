"""
Primitive value codecs for config options.

Provides:
- Duration: whole-second durations (ConnectTimeout, ServerAliveInterval)
- parse_bool / format_bool: tri-state yes/no options

Both read the config-file spelling ("yes", "1m30s") and the interchange
spelling ("true", 90).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

_TIME_UNITS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

_TIME_PART = re.compile(r"(\d+)([smhdw]?)", re.IGNORECASE)

TRUE_VALUES = frozenset({"yes", "true", "on", "1", "ask", "accept-new"})
FALSE_VALUES = frozenset({"no", "false", "off", "0"})


@dataclass(frozen=True, order=True)
class Duration:
    """A non-negative duration with one-second resolution."""
    seconds: int

    def __post_init__(self) -> None:
        assert isinstance(self.seconds, int) and not isinstance(self.seconds, bool), (
            f"Duration seconds must be an int, got {self.seconds!r}"
        )
        if self.seconds < 0:
            raise ValueError(f"Duration must not be negative, got {self.seconds}")

    @classmethod
    def parse(cls, text: str) -> "Duration":
        """
        Parse a duration in OpenSSH time format.

        Accepts a bare number of seconds ("30") or a sequence of
        number/unit pairs ("1h30m", "90s"). Units: s, m, h, d, w.

        Raises:
            ValueError: If text is not a valid duration
        """
        text = text.strip()
        if not text:
            raise ValueError("empty duration")

        total = 0
        pos = 0
        while pos < len(text):
            match = _TIME_PART.match(text, pos)
            if match is None:
                raise ValueError(f"invalid duration: {text!r}")
            total += int(match.group(1)) * _TIME_UNITS[match.group(2).lower()]
            pos = match.end()
        return cls(total)

    @classmethod
    def from_interchange(cls, value: Any) -> "Duration":
        """Decode from the interchange form (integer seconds, or a string)."""
        if isinstance(value, Duration):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid duration: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f"invalid duration: {value!r}")

    def to_interchange(self) -> int:
        return self.seconds

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    def __int__(self) -> int:
        return self.seconds

    def __str__(self) -> str:
        return str(self.seconds)


def parse_bool(value: Any) -> bool:
    """
    Parse a yes/no option value.

    "ask" and "accept-new" (StrictHostKeyChecking) count as true since
    checking stays enabled for them.

    Raises:
        ValueError: If value is not a recognised boolean spelling
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise ValueError(f"invalid boolean: {value!r}")


def format_bool(value: bool) -> str:
    """Format a boolean for the interchange encoding."""
    return "true" if value else "false"


def format_yes_no(value: bool) -> str:
    """Format a boolean for config-file text."""
    return "yes" if value else "no"
