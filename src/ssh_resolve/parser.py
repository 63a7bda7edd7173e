"""
ssh_config file parsing.

Grammar:

    Key value                  # global option, before the first Host line
    Host pattern [pattern...]
        Key value              # indented, scoped to the Host line above

Parsing is a single pass with two states. Before the first Host line only
unindented options are allowed; after it only indented ones. Comments and
blank lines are ignored anywhere. Option values are converted as they are
read, so a bad value is reported at its own line.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, TextIO

from ssh_resolve.errors import ParseError
from ssh_resolve.options import OptionBlock, apply_option, split_kv
from ssh_resolve.pattern import PatternSet, parse_patterns

logger = logging.getLogger(__name__)


class _State(Enum):
    GLOBAL = "global"
    IN_HOST = "in_host"


@dataclass(frozen=True)
class HostEntry:
    """One Host section: its patterns, its options and where it started."""
    patterns: PatternSet
    options: OptionBlock
    lineno: int | None = None

    def match(self, address: str) -> bool:
        return self.patterns.match(address)


@dataclass(frozen=True)
class ConfigFile:
    """
    A parsed config source.

    Entries are kept in file order, which is lookup precedence: the first
    matching entry wins. The global block holds options declared before
    the first Host line and is merged underneath whichever entry matches.
    """
    global_options: OptionBlock = field(default_factory=OptionBlock)
    entries: tuple[HostEntry, ...] = ()
    source: str = "<string>"

    @property
    def has_global_fallback(self) -> bool:
        """
        True when the global block answers addresses no entry matches.

        Only a source without Host sections acts as a catch-all; a source
        with Host sections reports not-found for unmatched addresses so a
        chain can fall through to the next source.
        """
        return not self.entries

    def find_entry(self, address: str) -> HostEntry | None:
        for entry in self.entries:
            if entry.match(address):
                return entry
        return None

    def lookup(self, address: str) -> OptionBlock | None:
        """
        Merge the first matching entry over the global block.

        Returns:
            The merged block, or None if nothing applies to address
        """
        entry = self.find_entry(address)
        if entry is not None:
            return self.global_options.merge(entry.options)
        if self.has_global_fallback:
            return self.global_options.clone()
        return None

    def combine(self, other: "ConfigFile") -> "ConfigFile":
        """
        Concatenate two sources; this one's entries take precedence.

        Global blocks are merged field by field with other's global block
        superseding this one's wherever it sets a value.
        """
        return ConfigFile(
            global_options=self.global_options.merge(other.global_options),
            entries=self.entries + other.entries,
            source=f"{self.source}+{other.source}",
        )

    def hosts(self) -> list[tuple[str, OptionBlock]]:
        """List each entry's patterns with its options merged over the global block."""
        return [
            (str(entry.patterns), self.global_options.merge(entry.options))
            for entry in self.entries
        ]

    def host_aliases(self) -> list[str]:
        """Concrete (wildcard-free) host names, in file order, without duplicates."""
        aliases: list[str] = []
        for entry in self.entries:
            for pattern in entry.patterns.patterns:
                if pattern.is_literal and pattern.glob not in aliases:
                    aliases.append(pattern.glob)
        return aliases

    def dump(self) -> str:
        """Render back to config text that parse_config accepts."""
        lines = list(self.global_options.to_lines())
        for entry in self.entries:
            if lines:
                lines.append("")
            lines.append(f"Host {entry.patterns}")
            lines.extend(f"    {line}" for line in entry.options.to_lines())
        return "\n".join(lines) + "\n" if lines else ""

    def to_dict(self) -> dict:
        """Interchange form, mainly for diagnostics."""
        return {
            "source": self.source,
            "global": self.global_options.to_dict(),
            "hosts": [
                {"host": entry.patterns.globs, "config": entry.options.to_dict()}
                for entry in self.entries
            ],
        }


def _host_directive(stripped: str) -> str | None:
    """Return the pattern text if stripped is a Host line, else None."""
    parts = stripped.split(None, 1)
    head = parts[0]
    if head.lower() == "host":
        return parts[1] if len(parts) > 1 else ""
    if "=" in head and head.split("=", 1)[0].lower() == "host":
        return stripped.split("=", 1)[1]
    return None


def _apply_line(
    block: OptionBlock,
    text: str,
    lineno: int,
    line: str,
    source: str,
) -> None:
    try:
        key, value = split_kv(text)
    except ValueError as e:
        raise ParseError(str(e), lineno=lineno, line=line, source=source) from e
    apply_option(block, key, value, lineno=lineno, line=line, source=source)


def parse_lines(lines: Iterable[str], source: str = "<string>") -> ConfigFile:
    """
    Parse config lines into a ConfigFile.

    Raises:
        ParseError: On indentation before the first Host line, an
            unindented option inside a Host section, a line without a
            delimiter, an invalid pattern or an invalid value
    """
    state = _State.GLOBAL
    global_options = OptionBlock()
    entries: list[HostEntry] = []
    patterns: PatternSet | None = None
    current: OptionBlock | None = None
    host_lineno: int | None = None

    for lineno, raw in enumerate(lines, 1):
        line = raw.rstrip("\r\n")
        stripped = line.strip()

        if not stripped or stripped.startswith("#"):
            continue

        if line[0] in (" ", "\t"):
            if state is _State.GLOBAL:
                raise ParseError("unexpected indentation", lineno=lineno, line=line, source=source)
            assert current is not None
            _apply_line(current, stripped, lineno, line, source)
            continue

        host_patterns = _host_directive(stripped)
        if host_patterns is not None:
            if state is _State.IN_HOST:
                assert patterns is not None and current is not None
                entries.append(HostEntry(patterns, current, host_lineno))
            patterns = parse_patterns(host_patterns, lineno=lineno, source=source, line=line)
            current = OptionBlock()
            host_lineno = lineno
            state = _State.IN_HOST
            continue

        if state is _State.IN_HOST:
            raise ParseError("unexpected line", lineno=lineno, line=line, source=source)
        _apply_line(global_options, stripped, lineno, line, source)

    if state is _State.IN_HOST:
        assert patterns is not None and current is not None
        entries.append(HostEntry(patterns, current, host_lineno))

    logger.debug(f"Parsed {source}: {len(entries)} host entries")
    return ConfigFile(global_options=global_options, entries=tuple(entries), source=source)


def parse_config(text: str | TextIO, source: str = "<string>") -> ConfigFile:
    """Parse config text or a text stream."""
    stream = io.StringIO(text) if isinstance(text, str) else text
    return parse_lines(stream, source=source)


def parse_config_file(path: Path | str) -> ConfigFile:
    """
    Read and parse a config file.

    Raises:
        OSError: If the file cannot be read (FileNotFoundError and
            PermissionError included, for callers to tolerate)
        ParseError: If the content is malformed
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return parse_lines(f, source=str(path))
