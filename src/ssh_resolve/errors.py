"""
Error taxonomy for SSH config resolution, with structured data for logging.

Error hierarchy:
- SSHConfigError (base)
  - ParseError (malformed config line, option string or value)
    - PatternError (Host pattern that does not compile)
  - MergeError (structural encode/decode failure, a programming error)
  - KnownHostsError (unparseable known_hosts file)
  - ConfigNotFound (no Host entry matched; chain fall-through signal)
  - AuthenticationError
    - NoAuthMethods (no usable identity file)
    - KeyLoadError (a single private key file failed to load)
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any


@dataclass
class ErrorContext:
    """
    Structured context for config errors.

    Carries the source file, line and address involved so that a caller
    can report exactly which source failed.
    """
    source: str | None = None
    lineno: int | None = None
    line: str | None = None
    address: str | None = None
    key_path: str | None = None
    original_error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Invariant: line numbers are 1-indexed
        if self.lineno is not None:
            assert isinstance(self.lineno, int) and self.lineno >= 1, (
                f"lineno must be a positive integer, got {self.lineno!r}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is None:
                continue
            if key == "extra":
                field_names = {f.name for f in fields(self)} - {"extra"}
                collisions = field_names & value.keys()
                assert not collisions, (
                    f"Extra keys collision with dataclass field names: {collisions}"
                )
                result.update(value)
            else:
                result[key] = value
        return result


class SSHConfigError(Exception):
    """
    Base exception for all config resolution errors.

    All errors carry structured context for logging and debugging.
    """

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        assert isinstance(message, str) and message.strip(), (
            f"SSHConfigError message must be a non-empty string, got {message!r}"
        )
        super().__init__(message)
        self.context = context or ErrorContext()

    @property
    def error_type(self) -> str:
        """Return the error type name for logging."""
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSONL logging."""
        return {
            "error_type": self.error_type,
            "message": str(self),
            **self.context.to_dict(),
        }


# ---------------------------------------------------------------------------
# Parse Errors
# ---------------------------------------------------------------------------

class ParseError(SSHConfigError):
    """
    Malformed configuration input.

    Raised for:
    - Indented line before the first Host directive
    - Top-level line inside a Host section
    - Key-value line without a delimiter
    - Option value of the wrong type
    """

    def __init__(
        self,
        reason: str,
        lineno: int | None = None,
        line: str | None = None,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        if context is None:
            context = ErrorContext()
        context.source = source
        context.lineno = lineno
        context.line = line
        self.reason = reason

        message = reason
        if lineno is not None:
            message = f"{reason} at line {lineno}"
        if line is not None:
            message = f"{message}: {line!r}"
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message, context)

    @property
    def lineno(self) -> int | None:
        return self.context.lineno

    @property
    def line(self) -> str | None:
        return self.context.line

    @property
    def source(self) -> str | None:
        return self.context.source


class PatternError(ParseError):
    """A Host pattern token is not a valid pattern."""
    pass


class MergeError(SSHConfigError):
    """
    Structural failure while encoding or decoding an option block.

    This indicates a programming error (wrong document shape), not bad
    user input: values from config text are validated by the parser.
    """
    pass


class ConfigNotFound(SSHConfigError):
    """
    No Host entry matched the requested address.

    Used as a control signal between chained sources; only surfaced when
    every source has been exhausted.
    """

    def __init__(self, address: str, context: ErrorContext | None = None) -> None:
        if context is None:
            context = ErrorContext()
        context.address = address
        super().__init__(f"config not found for {address!r}", context)


# ---------------------------------------------------------------------------
# Authentication Errors
# ---------------------------------------------------------------------------

class AuthenticationError(SSHConfigError):
    """Base class for credential-source errors."""
    pass


class NoAuthMethods(AuthenticationError):
    """
    None of the given identity files could be loaded.

    Recoverable: callers may proceed without key-based authentication.
    """

    def __init__(
        self,
        paths: list[str],
        failures: list[KeyLoadError] | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        if context is None:
            context = ErrorContext()
        context.extra["paths"] = list(paths)
        self.failures = list(failures or [])
        if paths:
            message = f"no auth methods could be loaded from {', '.join(paths)}"
        else:
            message = "no identity files given"
        super().__init__(message, context)


class KeyLoadError(AuthenticationError):
    """
    Failed to load a private key.

    This is raised when:
    - Key file does not exist
    - Key file is not readable
    - Key file format is invalid or passphrase protected
    """

    def __init__(
        self,
        message: str,
        key_path: str | None = None,
        reason: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        assert key_path is None or (isinstance(key_path, str) and key_path.strip()), (
            f"key_path must be None or a non-empty string, got {key_path!r}"
        )
        if context is None:
            context = ErrorContext()
        context.key_path = key_path
        if reason:
            context.extra["reason"] = reason
        self.reason = reason
        super().__init__(message, context)


class KnownHostsError(SSHConfigError):
    """A known_hosts file exists but could not be parsed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        if context is None:
            context = ErrorContext()
        context.source = path
        super().__init__(message, context)
