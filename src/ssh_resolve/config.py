"""
Effective per-address configuration.

Provides:
- EffectiveConfig: fully merged options for one target plus the derived
  values a transport needs (address, trust store, credentials)
- build_effective_config: apply defaults and build collaborators
- join_host_port: "host:port" with IPv6 brackets
- split_paths: the file list of a known_hosts option
"""
from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from typing import Any

from ssh_resolve.auth import IdentityAuth, identity_auth
from ssh_resolve.errors import KnownHostsError, NoAuthMethods
from ssh_resolve.host_key import (
    HostKeyVerifier,
    insecure_ignore_host_key,
    load_known_hosts,
    no_trusted_keys,
)
from ssh_resolve.options import OptionBlock
from ssh_resolve.values import Duration

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22


def join_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def split_paths(value: str) -> list[str]:
    """
    Split a GlobalKnownHostsFile/UserKnownHostsFile value into paths.

    Paths are blank-separated; quoting keeps a path containing blanks whole.

    Raises:
        KnownHostsError: If the quoting is unbalanced
    """
    try:
        return shlex.split(value)
    except ValueError as e:
        raise KnownHostsError(f"invalid known_hosts file list {value!r}: {e}") from e


@dataclass
class EffectiveConfig:
    """
    Resolved configuration for one target address.

    Created per lookup and owned by the caller; resolver patches may
    append to auth or fill in host_key_verifier before it is returned.
    """
    options: OptionBlock
    network: str
    hostname: str
    port: int
    address: str
    user: str | None = None
    connect_timeout: Duration | None = None
    connection_attempts: int | None = None
    keep_alive: bool = True
    server_alive_interval: Duration | None = None
    server_alive_count_max: int | None = None
    strict_host_key_checking: bool = True
    host_key_verifier: HostKeyVerifier | None = None
    auth: list[IdentityAuth] = field(default_factory=list)

    def connect_options(self) -> dict[str, Any]:
        """
        Keyword arguments for asyncssh.connect().

        Options that are unset are left out so asyncssh applies its own
        defaults. ConnectionAttempts has no asyncssh counterpart; callers
        that retry read connection_attempts directly.
        """
        options: dict[str, Any] = {
            "host": self.hostname,
            "port": self.port,
            "config": None,
            "tcp_keepalive": self.keep_alive,
        }
        if self.user:
            options["username"] = self.user
        if self.connect_timeout is not None:
            options["connect_timeout"] = self.connect_timeout.seconds
        if self.server_alive_interval is not None:
            options["keepalive_interval"] = self.server_alive_interval.seconds
        if self.server_alive_count_max is not None:
            options["keepalive_count_max"] = self.server_alive_count_max
        if self.host_key_verifier is not None:
            options["known_hosts"] = self.host_key_verifier.connect_option()
        keys = [key for method in self.auth for key in method.keys]
        if keys:
            options["client_keys"] = keys
        return options

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging (no key material)."""
        return {
            "network": self.network,
            "address": self.address,
            "hostname": self.hostname,
            "port": self.port,
            "user": self.user,
            "keep_alive": self.keep_alive,
            "strict_host_key_checking": self.strict_host_key_checking,
            "host_key_verifier": (
                self.host_key_verifier.to_dict() if self.host_key_verifier else None
            ),
            "auth": [method.to_dict() for method in self.auth],
            "options": self.options.to_dict(),
        }


def build_effective_config(
    options: OptionBlock,
    address: str,
    network: str = "tcp",
) -> EffectiveConfig:
    """
    Apply defaults to a merged block and build its collaborators.

    Defaults: port 22, TCP keep-alive on, strict host key checking on.
    Hostname falls back to the requested address. Configured known_hosts
    files that do not exist (or are not readable) are skipped; if none
    remains, no host key is trusted.

    Raises:
        OSError: If a configured known_hosts file fails to read for another reason
        KnownHostsError: If a configured known_hosts file is malformed
    """
    hostname = options.hostname or address
    port = options.port if options.port is not None else DEFAULT_PORT
    strict = (
        options.strict_host_key_checking
        if options.strict_host_key_checking is not None
        else True
    )

    config = EffectiveConfig(
        options=options.clone(),
        network=network,
        hostname=hostname,
        port=port,
        address=join_host_port(hostname, port),
        user=options.user,
        connect_timeout=options.connect_timeout,
        connection_attempts=options.connection_attempts,
        keep_alive=options.tcp_keep_alive if options.tcp_keep_alive is not None else True,
        server_alive_interval=options.server_alive_interval,
        server_alive_count_max=options.server_alive_count_max,
        strict_host_key_checking=strict,
    )

    if not strict:
        config.host_key_verifier = insecure_ignore_host_key()
    else:
        paths = [
            path
            for value in (options.global_known_hosts_file, options.user_known_hosts_file)
            if value
            for path in split_paths(value)
        ]
        if paths:
            verifier = load_known_hosts(*paths, ignore_missing=True)
            if verifier is None:
                logger.debug(f"No configured known_hosts file exists for {address!r}")
                verifier = no_trusted_keys()
            config.host_key_verifier = verifier

    if options.identity_file:
        try:
            config.auth.append(identity_auth(options.identity_file))
        except NoAuthMethods as e:
            logger.warning(f"IdentityFile for {address!r} not usable: {e}")

    return config
