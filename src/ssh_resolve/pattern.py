"""
Host pattern compilation and matching.

Host patterns use the ssh_config glob syntax:
- * matches any sequence of characters (including none)
- ? matches exactly one character
- everything else matches itself

Patterns are anchored: they must match the whole address, so
"*.example.com" matches "db.example.com" but not "example.com" or
"db.example.com.evil". Matching is case-sensitive over the address
exactly as given.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from ssh_resolve.errors import PatternError


def glob_to_regex(glob: str) -> str:
    """Translate a glob token into an anchored regular expression."""
    parts = []
    for char in glob:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


@dataclass(frozen=True)
class HostPattern:
    """A single compiled Host pattern."""
    glob: str
    regex: re.Pattern[str]

    def match(self, address: str) -> bool:
        return self.regex.fullmatch(address) is not None

    @property
    def is_literal(self) -> bool:
        """True for patterns without wildcards (a concrete host alias)."""
        return "*" not in self.glob and "?" not in self.glob

    def __str__(self) -> str:
        return self.glob


def compile_pattern(
    glob: str,
    lineno: int | None = None,
    source: str | None = None,
    line: str | None = None,
) -> HostPattern:
    """
    Compile one glob token.

    line is the raw config line the token came from, for error reports.

    Raises:
        PatternError: If the token is empty or does not compile
    """
    token = glob.strip()
    if not token:
        raise PatternError("empty host pattern", lineno=lineno, line=line, source=source)
    try:
        regex = re.compile(glob_to_regex(token), re.DOTALL)
    except re.error as e:
        raise PatternError(
            f"invalid host pattern ({e})",
            lineno=lineno,
            line=line if line is not None else token,
            source=source,
        ) from e
    return HostPattern(glob=token, regex=regex)


@dataclass(frozen=True)
class PatternSet:
    """
    One or more patterns sharing an option block.

    An address matches the set if it matches any member.
    """
    patterns: tuple[HostPattern, ...]

    def __post_init__(self) -> None:
        # Invariant: every Host entry has at least one pattern
        assert self.patterns, "PatternSet requires at least one pattern"

    @classmethod
    def match_all(cls) -> "PatternSet":
        """The implicit set used for the global block."""
        return cls((compile_pattern("*"),))

    def match(self, address: str) -> bool:
        return any(pattern.match(address) for pattern in self.patterns)

    @property
    def globs(self) -> list[str]:
        return [pattern.glob for pattern in self.patterns]

    def __str__(self) -> str:
        return " ".join(self.globs)


def parse_patterns(
    text: str,
    lineno: int | None = None,
    source: str | None = None,
    line: str | None = None,
) -> PatternSet:
    """
    Compile the whitespace-separated pattern list following "Host".

    Raises:
        PatternError: If the list is empty or a token is invalid
    """
    tokens = text.split()
    if not tokens:
        raise PatternError(
            "Host directive without patterns",
            lineno=lineno,
            line=line,
            source=source,
        )
    return PatternSet(
        tuple(compile_pattern(t, lineno=lineno, source=source, line=line) for t in tokens)
    )
