"""
Client construction from layered config sources.

Sources, highest precedence first:
1. a per-invocation config file (ssh -F)
2. the user config file
3. the system config file
Inline options (ssh -o) are merged on top of whichever source matched.

Usage:
    loader = Loader(SSHDefaults.from_environment(), options=["Port=2022"])
    client = loader.new_client()
    config = client.resolve("db.example.com")
    conn = await asyncssh.connect(**config.connect_options())
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from functools import partial, reduce
from pathlib import Path
from typing import Callable, Sequence

from ssh_resolve.auth import IdentityAuth, identity_auth
from ssh_resolve.config import EffectiveConfig
from ssh_resolve.errors import NoAuthMethods
from ssh_resolve.events import ClientTrace
from ssh_resolve.host_key import HostKeyVerifier, load_known_hosts
from ssh_resolve.options import OptionBlock, parse_options
from ssh_resolve.parser import ConfigFile, parse_config_file
from ssh_resolve.platform import SSHDefaults
from ssh_resolve.resolver import (
    ChainResolver,
    FileResolver,
    LazyChainResolver,
    PatchResolver,
    Resolution,
    Resolver,
    TracingResolver,
)

logger = logging.getLogger(__name__)


def parse_optional_config_file(path: Path | str) -> ConfigFile | None:
    """
    Parse a default config file that may legitimately be absent.

    Returns:
        The parsed file, or None if it does not exist or is not readable

    Raises:
        OSError: For other read failures
        ParseError: If the content is malformed
    """
    try:
        return parse_config_file(path)
    except (FileNotFoundError, PermissionError) as e:
        logger.debug(f"Skipping config file {path}: {e}")
        return None


class Client:
    """
    Resolves target addresses through a resolver chain.

    Safe for concurrent use: the chain holds only immutable parsed config.
    """

    def __init__(
        self,
        resolver: Resolver,
        file_config: Callable[[], ConfigFile | None] | None = None,
    ) -> None:
        self._resolver = resolver
        self._file_config = file_config

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    @property
    def file_config(self) -> ConfigFile | None:
        """
        Combined file configuration.

        Lazy clients report the files read by the most recent lookups, so
        this is None until a lookup has parsed one.
        """
        if self._file_config is None:
            return None
        return self._file_config()

    def lookup(self, address: str, network: str = "tcp") -> Resolution:
        return self._resolver.resolve(network, address)

    def resolve(self, address: str, network: str = "tcp") -> EffectiveConfig:
        """
        Resolve address to its effective config.

        Raises:
            ConfigNotFound: If no source has an entry for address
            SSHConfigError: If a source is corrupt
            OSError: If a referenced file cannot be read
        """
        return self.lookup(address, network).unwrap()


@dataclass
class Loader:
    """
    Builds a Client from default locations plus per-invocation input.

    Attributes:
        defaults: Locations of the user/system files and default keys
        config_file: Per-invocation config file (tried before the user file)
        options: Inline "Key=value" options merged over any match
        identity: Extra identity files offered for every host
        trace: Diagnostic hooks
        lazy: Re-read config files per lookup instead of once. The reported
            file config is then the files those lookups actually read.
    """
    defaults: SSHDefaults
    config_file: Path | str | None = None
    options: Sequence[str] = field(default_factory=tuple)
    identity: Sequence[Path | str] = field(default_factory=tuple)
    trace: ClientTrace | None = None
    lazy: bool = False

    def new_client(self) -> Client:
        """
        Load every source and assemble the resolver chain.

        Raises:
            ParseError: If the options or any config file are malformed
            OSError: If the per-invocation config file cannot be read, or a
                default file fails for a reason other than absence
            KnownHostsError: If a default known_hosts file is malformed
        """
        overlay = parse_options(self.options) if self.options else None

        if self.lazy:
            resolver, file_config = self._lazy_chain(overlay)
        else:
            resolver, file_config = self._eager_chain(overlay)

        auth = self._default_auth()
        if auth is not None:
            resolver = PatchResolver(resolver, _append_auth(auth))

        known = load_known_hosts(
            self.defaults.user_known_hosts,
            self.defaults.system_known_hosts,
            ignore_missing=True,
        )
        if known is not None:
            resolver = PatchResolver(resolver, _default_verifier(known))

        if self.trace is not None:
            resolver = TracingResolver(resolver, self.trace, file_config)

        return Client(resolver, file_config)

    def _eager_chain(
        self, overlay: OptionBlock | None
    ) -> tuple[Resolver, Callable[[], ConfigFile | None]]:
        sources: list[ConfigFile] = []
        if self.config_file is not None:
            sources.append(parse_config_file(self.config_file))
        for path in (self.defaults.user_config, self.defaults.system_config):
            parsed = parse_optional_config_file(path)
            if parsed is not None:
                sources.append(parsed)

        resolver = ChainResolver([FileResolver(source, overlay) for source in sources])
        combined = reduce(ConfigFile.combine, sources) if sources else None
        return resolver, lambda: combined

    def _lazy_chain(
        self, overlay: OptionBlock | None
    ) -> tuple[Resolver, Callable[[], ConfigFile | None]]:
        loaded = _LoadedFiles()
        parsers: list[Callable[[], ConfigFile | None]] = []
        if self.config_file is not None:
            parsers.append(partial(parse_config_file, self.config_file))
        for path in (self.defaults.user_config, self.defaults.system_config):
            parsers.append(partial(parse_optional_config_file, path))
        factories = [
            loaded.factory(index, parse, overlay) for index, parse in enumerate(parsers)
        ]
        return LazyChainResolver(factories), loaded.combined

    def _default_auth(self) -> IdentityAuth | None:
        paths = [*self.identity, *self.defaults.identity]
        if not paths:
            return None
        try:
            return identity_auth(*paths)
        except NoAuthMethods as e:
            logger.debug(f"No default identities: {e}")
            return None


class _LoadedFiles:
    """
    Most recent parse of each lazily read source.

    A source that turns out to be absent drops its earlier parse.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files: dict[int, ConfigFile] = {}

    def factory(
        self,
        index: int,
        parse: Callable[[], ConfigFile | None],
        overlay: OptionBlock | None,
    ) -> Callable[[], Resolver]:
        def build() -> Resolver:
            parsed = parse()
            with self._lock:
                if parsed is None:
                    self._files.pop(index, None)
                else:
                    self._files[index] = parsed
            if parsed is None:
                return ChainResolver([])
            return FileResolver(parsed, overlay)
        return build

    def combined(self) -> ConfigFile | None:
        """Loaded files combined in precedence order, or None if none was read."""
        with self._lock:
            files = [self._files[index] for index in sorted(self._files)]
        return reduce(ConfigFile.combine, files) if files else None


def _append_auth(auth: IdentityAuth) -> Callable[[EffectiveConfig], None]:
    def patch(config: EffectiveConfig) -> None:
        config.auth.append(auth)
    return patch


def _default_verifier(known: HostKeyVerifier) -> Callable[[EffectiveConfig], None]:
    def patch(config: EffectiveConfig) -> None:
        if config.host_key_verifier is None:
            config.host_key_verifier = known
    return patch


def new_client(
    config_file: Path | str | None = None,
    options: Sequence[str] = (),
    defaults: SSHDefaults | None = None,
) -> Client:
    """Build a Client for the current user's default locations."""
    loader = Loader(
        defaults=defaults or SSHDefaults.from_environment(),
        config_file=config_file,
        options=options,
    )
    return loader.new_client()
