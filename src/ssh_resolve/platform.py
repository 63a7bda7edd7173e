"""
Default file locations.

Provides:
- SSHDefaults: explicit set of default config, known_hosts and key paths
- expand_path: ~ and environment variable expansion

Nothing in the parser or resolvers reads these implicitly; a Loader is
given an SSHDefaults when it is constructed, so tests can pass synthetic
paths.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_KEY_NAMES = ("id_dsa", "id_ecdsa", "id_ed25519", "id_rsa")


def is_windows() -> bool:
    """Check if running on Windows."""
    return sys.platform == "win32"


def expand_path(path: str | Path) -> Path:
    """
    Expand a path, handling ~ and environment variables.

    On Windows %VAR% syntax is expanded as well.
    """
    path_str = str(path)
    if is_windows():
        path_str = os.path.expandvars(path_str)
    return Path(path_str).expanduser()


def get_home_dir() -> Path:
    """Current user's home directory (USERPROFILE first on Windows)."""
    if is_windows():
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    return Path.home()


def get_system_ssh_dir() -> Path:
    """Directory holding the system-wide ssh_config and known_hosts."""
    if is_windows():
        program_data = os.environ.get("ProgramData", "C:\\ProgramData")
        return Path(program_data) / "ssh"
    return Path("/etc/ssh")


@dataclass(frozen=True)
class SSHDefaults:
    """
    Default locations consulted when building a client.

    Attributes:
        user_config: Per-user config file (~/.ssh/config)
        system_config: System config file (/etc/ssh/ssh_config)
        user_known_hosts: Per-user known_hosts
        system_known_hosts: System known_hosts (ssh_known_hosts)
        identity: Private keys tried for every host
    """
    user_config: Path
    system_config: Path
    user_known_hosts: Path
    system_known_hosts: Path
    identity: tuple[Path, ...] = field(default_factory=tuple)

    @classmethod
    def for_home(
        cls,
        home: Path | str,
        system_dir: Path | str | None = None,
    ) -> "SSHDefaults":
        """Derive the standard layout from an explicit home directory."""
        ssh_dir = Path(home) / ".ssh"
        system = Path(system_dir) if system_dir is not None else get_system_ssh_dir()
        return cls(
            user_config=ssh_dir / "config",
            system_config=system / "ssh_config",
            user_known_hosts=ssh_dir / "known_hosts",
            system_known_hosts=system / "ssh_known_hosts",
            identity=tuple(ssh_dir / name for name in DEFAULT_KEY_NAMES),
        )

    @classmethod
    def from_environment(cls) -> "SSHDefaults":
        """The standard layout for the current user."""
        return cls.for_home(get_home_dir())

    def with_overrides(self, **changes: object) -> "SSHDefaults":
        """Copy with some locations replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
