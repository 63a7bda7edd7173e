"""
Per-address resolvers and resolver chains.

A Resolver maps (network, address) to a Resolution: found (with an
EffectiveConfig), not found, or failed (with the error). Chains try
resolvers in order: the first found result wins, not-found falls through,
and a failure stops the chain.

Resolvers hold only parsed, immutable configuration, so resolve() is safe
to call from several threads or tasks at once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, Sequence, runtime_checkable

from ssh_resolve.config import EffectiveConfig, build_effective_config
from ssh_resolve.errors import ConfigNotFound, SSHConfigError
from ssh_resolve.events import ClientTrace, RunOnce
from ssh_resolve.options import OptionBlock
from ssh_resolve.parser import ConfigFile

logger = logging.getLogger(__name__)


class ResolutionStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Resolution:
    """Tagged outcome of a single lookup."""
    status: ResolutionStatus
    address: str
    config: EffectiveConfig | None = None
    error: Exception | None = None

    @classmethod
    def found(cls, address: str, config: EffectiveConfig) -> "Resolution":
        return cls(ResolutionStatus.FOUND, address, config=config)

    @classmethod
    def not_found(cls, address: str) -> "Resolution":
        return cls(ResolutionStatus.NOT_FOUND, address)

    @classmethod
    def failed(cls, address: str, error: Exception) -> "Resolution":
        return cls(ResolutionStatus.FAILED, address, error=error)

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    def unwrap(self) -> EffectiveConfig:
        """
        Return the config or raise.

        Raises:
            ConfigNotFound: For a not-found result
            Exception: The stored error for a failed result
        """
        if self.status is ResolutionStatus.FOUND:
            assert self.config is not None
            return self.config
        if self.status is ResolutionStatus.NOT_FOUND:
            raise ConfigNotFound(self.address)
        assert self.error is not None
        raise self.error


@runtime_checkable
class Resolver(Protocol):
    """Anything that can resolve a target address."""

    def resolve(self, network: str, address: str) -> Resolution:
        ...


# Errors that turn into a failed Resolution instead of propagating
RESOLVE_ERRORS = (SSHConfigError, OSError)


class FileResolver:
    """
    Resolves addresses against one parsed config source.

    The first Host entry matching the address is merged over the global
    block, then the overlay (inline -o options) on top of that.
    """

    def __init__(self, config_file: ConfigFile, overlay: OptionBlock | None = None) -> None:
        self._config_file = config_file
        self._overlay = overlay.clone() if overlay is not None else None

    @property
    def config_file(self) -> ConfigFile:
        return self._config_file

    def resolve(self, network: str, address: str) -> Resolution:
        block = self._config_file.lookup(address)
        if block is None:
            logger.debug(f"{self._config_file.source}: no entry for {address!r}")
            return Resolution.not_found(address)

        if self._overlay is not None:
            block = block.merge(self._overlay)

        try:
            config = build_effective_config(block, address, network=network)
        except RESOLVE_ERRORS as e:
            return Resolution.failed(address, e)
        return Resolution.found(address, config)


class ChainResolver:
    """Tries resolvers in order; first found result wins."""

    def __init__(self, resolvers: Sequence[Resolver]) -> None:
        self._resolvers = tuple(resolvers)

    def resolve(self, network: str, address: str) -> Resolution:
        return _resolve_chain(iter(self._resolvers), network, address)


class LazyChainResolver:
    """
    Like ChainResolver, but builds each resolver only when it is reached.

    Factories run per lookup, so a source is re-read only when every
    earlier source reported not-found. A factory that raises is treated
    as a failed source.
    """

    def __init__(self, factories: Sequence[Callable[[], Resolver]]) -> None:
        self._factories = tuple(factories)

    def resolve(self, network: str, address: str) -> Resolution:
        for factory in self._factories:
            try:
                resolver = factory()
            except RESOLVE_ERRORS as e:
                return Resolution.failed(address, e)
            result = resolver.resolve(network, address)
            if result.status is not ResolutionStatus.NOT_FOUND:
                return result
        return Resolution.not_found(address)


def _resolve_chain(resolvers, network: str, address: str) -> Resolution:
    for resolver in resolvers:
        result = resolver.resolve(network, address)
        if result.status is not ResolutionStatus.NOT_FOUND:
            return result
    return Resolution.not_found(address)


class PatchResolver:
    """
    Post-processes every found config.

    The patch receives the config (owned by this lookup) and may modify
    it in place. Errors it raises turn the result into a failure.
    """

    def __init__(self, inner: Resolver, patch: Callable[[EffectiveConfig], None]) -> None:
        self._inner = inner
        self._patch = patch

    def resolve(self, network: str, address: str) -> Resolution:
        result = self._inner.resolve(network, address)
        if not result.ok:
            return result
        assert result.config is not None
        try:
            self._patch(result.config)
        except RESOLVE_ERRORS as e:
            return Resolution.failed(address, e)
        return result


class TracingResolver:
    """
    Reports resolutions to a ClientTrace.

    The file-level configuration is reported once, on the first found
    result; every found result reports its final config.
    """

    def __init__(
        self,
        inner: Resolver,
        trace: ClientTrace,
        file_config: Callable[[], ConfigFile | None],
    ) -> None:
        self._inner = inner
        self._trace = trace
        self._file_config = file_config
        self._once = RunOnce()

    @property
    def reported_file_config(self) -> bool:
        return self._once.done

    def resolve(self, network: str, address: str) -> Resolution:
        result = self._inner.resolve(network, address)
        if not result.ok:
            return result
        self._once.run(lambda: self._trace.got_file_config(self._file_config()))
        self._trace.got_config(result.config)
        return result
