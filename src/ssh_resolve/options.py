"""
Option blocks and the layer merge engine.

Provides:
- OptionBlock: one scope's recognised connection options
- split_kv: the "Key value" / "Key=value" splitting rule
- parse_options: -o style option strings into one block

Every field is None when unset. Merging copies only set fields, so an
explicit "Port 0" or "TcpKeepAlive no" is never mistaken for "unset".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Iterable, Mapping

from ssh_resolve.errors import MergeError, ParseError
from ssh_resolve.values import Duration, format_bool, format_yes_no, parse_bool

logger = logging.getLogger(__name__)


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid integer: {value!r}")
    number = int(value) if isinstance(value, int) else int(str(value).strip(), 10)
    if number < 0:
        raise ValueError(f"must not be negative: {value!r}")
    return number


def _parse_port(value: Any) -> int:
    port = _parse_int(value)
    if port > 65535:
        raise ValueError(f"port out of range: {value!r}")
    return port


def _parse_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


# kind -> (decode, encode for interchange, encode for config text)
_CODECS: dict[str, tuple[Callable[[Any], Any], Callable[[Any], Any], Callable[[Any], str]]] = {
    "port": (_parse_port, str, str),
    "int": (_parse_int, str, str),
    "bool": (parse_bool, format_bool, format_yes_no),
    "duration": (Duration.from_interchange, Duration.to_interchange, str),
    "str": (_parse_str, str, str),
}


def _option(name: str, kind: str) -> Any:
    return field(default=None, metadata={"name": name, "kind": kind})


@dataclass
class OptionBlock:
    """
    Connection options for one scope (global block or one Host entry).

    Field metadata carries the ssh_config option name and its value kind.
    """
    port: int | None = _option("Port", "port")
    strict_host_key_checking: bool | None = _option("StrictHostKeyChecking", "bool")
    global_known_hosts_file: str | None = _option("GlobalKnownHostsFile", "str")
    user_known_hosts_file: str | None = _option("UserKnownHostsFile", "str")
    tcp_keep_alive: bool | None = _option("TcpKeepAlive", "bool")
    connect_timeout: Duration | None = _option("ConnectTimeout", "duration")
    connection_attempts: int | None = _option("ConnectionAttempts", "int")
    server_alive_interval: Duration | None = _option("ServerAliveInterval", "duration")
    server_alive_count_max: int | None = _option("ServerAliveCountMax", "int")
    hostname: str | None = _option("Hostname", "str")
    user: str | None = _option("User", "str")
    identity_file: str | None = _option("IdentityFile", "str")

    @classmethod
    def keys(cls) -> dict[str, str]:
        """Map lower-cased option keys to field names."""
        return {f.metadata["name"].lower(): f.name for f in fields(cls)}

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def clone(self) -> "OptionBlock":
        # All field values are immutable, so a shallow copy shares no state
        return replace(self)

    def merge(self, overlay: "OptionBlock") -> "OptionBlock":
        """
        Return a new block with overlay's set fields on top of this one.

        Unset (None) fields of overlay leave this block's values untouched.
        """
        if not isinstance(overlay, OptionBlock):
            raise MergeError(f"cannot merge {type(overlay).__name__} into OptionBlock")
        merged = self.clone()
        for f in fields(self):
            value = getattr(overlay, f.name)
            if value is not None:
                setattr(merged, f.name, value)
        return merged

    def set_option(self, key: str, value: Any) -> None:
        """
        Set an option by its (case-insensitive) ssh_config name.

        Raises:
            KeyError: If the option is not recognised
            ValueError: If the value does not convert to the option's type
        """
        name = self.keys()[key.lower()]
        kind = _field_kind(name)
        setattr(self, name, _CODECS[kind][0](value))

    def to_dict(self) -> dict[str, Any]:
        """
        Encode to the interchange form.

        Keys are lower-cased option names; unset fields are omitted.
        """
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[f.metadata["name"].lower()] = _CODECS[f.metadata["kind"]][1](value)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptionBlock":
        """
        Decode from the interchange form. Unknown keys are ignored.

        Raises:
            MergeError: If data is not a mapping or a value does not decode
        """
        if not isinstance(data, Mapping):
            raise MergeError(f"expected a mapping, got {type(data).__name__}")
        block = cls()
        known = cls.keys()
        for key, value in data.items():
            if not isinstance(key, str) or key.lower() not in known:
                continue
            if value is None:
                continue
            try:
                block.set_option(key, value)
            except ValueError as e:
                raise MergeError(f"cannot decode {key!r}: {e}") from e
        return block

    def to_lines(self) -> list[str]:
        """
        Render set options as config-file lines that split_kv reads back.

        Lines are "Key value", or "Key=value" when the value is empty or
        starts with "=", which the blank-delimited form would lose.
        """
        lines = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            text = _CODECS[f.metadata["kind"]][2](value)
            delimiter = "=" if not text or text.startswith("=") else " "
            lines.append(f"{f.metadata['name']}{delimiter}{text}")
        return lines


def _field_kind(name: str) -> str:
    for f in fields(OptionBlock):
        if f.name == name:
            return f.metadata["kind"]
    raise KeyError(name)


def merge_blocks(*blocks: OptionBlock) -> OptionBlock:
    """Fold blocks left to right; later blocks take precedence."""
    merged = OptionBlock()
    for block in blocks:
        merged = merged.merge(block)
    return merged


def split_kv(line: str) -> tuple[str, str]:
    """
    Split a "Key value" or "Key=value" line.

    The key ends at the first blank or "=", whichever comes first. A
    blank-delimited value may still carry the "=" ("Port = 22").

    Raises:
        ValueError: If the line contains neither delimiter
    """
    candidates = [i for i in (line.find(" "), line.find("\t"), line.find("=")) if i >= 0]
    if not candidates:
        raise ValueError("delimiter not found")
    i = min(candidates)
    key, value = line[:i].strip(), line[i + 1:].strip()
    if line[i] != "=" and value.startswith("="):
        value = value[1:].strip()
    return key, value


def apply_option(
    block: OptionBlock,
    key: str,
    value: str,
    lineno: int | None = None,
    line: str | None = None,
    source: str | None = None,
) -> None:
    """
    Convert and store one key/value pair, skipping unknown keys.

    Raises:
        ParseError: If the value does not convert
    """
    if key.lower() not in OptionBlock.keys():
        logger.debug(f"Ignoring unsupported option {key!r} (line {lineno})")
        return
    try:
        block.set_option(key, value)
    except ValueError as e:
        raise ParseError(
            f"invalid value for {key} ({e})",
            lineno=lineno,
            line=line,
            source=source,
        ) from e


def parse_options(options: Iterable[str]) -> OptionBlock:
    """
    Parse -o style option strings ("Port=2022", "User alice").

    Each string is split like a config line; later strings win.

    Raises:
        ParseError: If a string has no delimiter or a bad value
    """
    block = OptionBlock()
    for index, option in enumerate(options, 1):
        text = option.strip()
        try:
            key, value = split_kv(text)
        except ValueError as e:
            raise ParseError(
                f"invalid option ({e})",
                lineno=index,
                line=option,
                source="<options>",
            ) from e
        apply_option(block, key, value, lineno=index, line=option, source="<options>")
    return block
