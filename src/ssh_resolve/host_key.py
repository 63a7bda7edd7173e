"""
Host key trust stores built from known_hosts files.

Provides:
- HostKeyVerifier: the trust store handed to the transport
- load_known_hosts: build a verifier from one or more known_hosts files
- insecure_ignore_host_key: verifier that accepts any host key
- no_trusted_keys: verifier that accepts no host key

Parsing of the known_hosts format itself is left to asyncssh.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import asyncssh

from ssh_resolve.errors import ErrorContext, KnownHostsError
from ssh_resolve.platform import expand_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostKeyVerifier:
    """
    Host key trust store.

    Attributes:
        paths: known_hosts files the store was loaded from
        known_hosts: parsed entries, None for the insecure verifier
        insecure: True if any host key is accepted
    """
    paths: tuple[str, ...] = ()
    known_hosts: asyncssh.SSHKnownHosts | None = None
    insecure: bool = False

    def connect_option(self) -> asyncssh.SSHKnownHosts | None:
        """Value for asyncssh.connect(known_hosts=...); None disables checking."""
        if self.insecure:
            return None
        return self.known_hosts

    def to_dict(self) -> dict[str, Any]:
        if self.insecure:
            return {"insecure": True}
        return {"known_hosts": list(self.paths)}


def insecure_ignore_host_key() -> HostKeyVerifier:
    """Verifier that accepts every host key (StrictHostKeyChecking no)."""
    return HostKeyVerifier(insecure=True)


def no_trusted_keys() -> HostKeyVerifier:
    """Strict verifier with an empty trust store: every host key is rejected."""
    return HostKeyVerifier(known_hosts=asyncssh.import_known_hosts(""))


def load_known_hosts(
    *paths: Path | str,
    ignore_missing: bool = False,
) -> HostKeyVerifier | None:
    """
    Build a trust store from known_hosts files.

    Args:
        paths: known_hosts files, read in order
        ignore_missing: Skip files that do not exist or are not readable

    Returns:
        The verifier, or None if ignore_missing skipped every file

    Raises:
        OSError: If a file cannot be read (unless ignore_missing covers it)
        KnownHostsError: If a file's content cannot be parsed
    """
    loaded: list[str] = []
    chunks: list[str] = []

    for path in paths:
        expanded = expand_path(path)
        try:
            with open(expanded, "r", encoding="utf-8", errors="replace") as f:
                chunks.append(f.read())
        except (FileNotFoundError, PermissionError) as e:
            if not ignore_missing:
                raise
            logger.debug(f"Skipping known_hosts file {expanded}: {e}")
            continue
        loaded.append(str(expanded))

    if not loaded:
        if ignore_missing:
            return None
        raise KnownHostsError("no known_hosts files given")

    data = "\n".join(chunks)
    try:
        known_hosts = asyncssh.import_known_hosts(data)
    except (ValueError, asyncssh.KeyImportError) as e:
        raise KnownHostsError(
            f"failed to parse known_hosts {', '.join(loaded)}: {e}",
            path=loaded[0] if len(loaded) == 1 else None,
            context=ErrorContext(original_error=str(e)),
        ) from e

    return HostKeyVerifier(paths=tuple(loaded), known_hosts=known_hosts)
