"""
Identity-file credential sources.

Provides:
- load_private_key: load one key with classified errors
- IdentityAuth: the set of keys offered for public key authentication
- identity_auth: build an IdentityAuth from several candidate files
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import asyncssh

from ssh_resolve.errors import KeyLoadError, NoAuthMethods
from ssh_resolve.platform import expand_path

logger = logging.getLogger(__name__)


def load_private_key(
    key_path: Path | str,
    passphrase: str | None = None,
) -> asyncssh.SSHKey:
    """
    Load a private key from file.

    Raises:
        KeyLoadError: If key cannot be loaded (file not found, bad format, wrong passphrase)
    """
    key_path = expand_path(key_path)

    if not key_path.exists():
        raise KeyLoadError(
            f"Private key file not found: {key_path}",
            key_path=str(key_path),
            reason="file_not_found",
        )

    if not os.access(key_path, os.R_OK):
        raise KeyLoadError(
            f"Private key file not readable: {key_path}",
            key_path=str(key_path),
            reason="permission_denied",
        )

    try:
        return asyncssh.read_private_key(str(key_path), passphrase=passphrase)
    except asyncssh.KeyImportError as e:
        error_msg = str(e).lower()
        if "passphrase" in error_msg or "decrypt" in error_msg:
            reason = "wrong_passphrase"
        elif "format" in error_msg or "invalid" in error_msg:
            reason = "invalid_format"
        else:
            reason = "import_error"

        raise KeyLoadError(
            f"Failed to load private key {key_path}: {e}",
            key_path=str(key_path),
            reason=reason,
        ) from e
    except (OSError, ValueError) as e:
        raise KeyLoadError(
            f"Unexpected error loading private key {key_path}: {e}",
            key_path=str(key_path),
            reason="unknown",
        ) from e


@dataclass(frozen=True)
class IdentityAuth:
    """
    Public key authentication with one or more loaded keys.

    Attributes:
        paths: Files the keys were loaded from, in load order
        keys: The loaded private keys
    """
    paths: tuple[str, ...]
    keys: tuple[asyncssh.SSHKey, ...]

    def __post_init__(self) -> None:
        assert len(self.paths) == len(self.keys), "paths and keys must pair up"
        assert self.keys, "IdentityAuth requires at least one key"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging (no key material)."""
        return {"method": "publickey", "key_paths": list(self.paths)}


def identity_auth(*paths: Path | str, passphrase: str | None = None) -> IdentityAuth:
    """
    Load every usable key among paths.

    Files that are missing or fail to load are skipped.

    Raises:
        NoAuthMethods: If no key could be loaded
    """
    loaded_paths: list[str] = []
    keys: list[asyncssh.SSHKey] = []
    failures: list[KeyLoadError] = []

    for path in paths:
        try:
            key = load_private_key(path, passphrase=passphrase)
        except KeyLoadError as e:
            logger.debug(f"Skipping identity {path}: {e}")
            failures.append(e)
            continue
        loaded_paths.append(str(expand_path(path)))
        keys.append(key)

    if not keys:
        raise NoAuthMethods([str(p) for p in paths], failures)

    return IdentityAuth(paths=tuple(loaded_paths), keys=tuple(keys))
