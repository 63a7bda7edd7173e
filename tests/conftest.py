"""
Pytest fixtures for ssh-resolve tests.

Provides:
- Generated private keys written to a temporary ~/.ssh
- known_hosts files trusting a generated host key
- SSHDefaults pointing at a temporary home and system directory
"""
from __future__ import annotations

from pathlib import Path

import asyncssh
import pytest

from ssh_resolve.platform import SSHDefaults

EXAMPLE_CONFIG = """\
Port 2222
Host *.corp
    User admin
    IdentityFile /k
"""


def write_key(path: Path, algorithm: str = "ssh-ed25519") -> asyncssh.SSHKey:
    """Generate a private key and write it to path in OpenSSH format."""
    key = asyncssh.generate_private_key(algorithm)
    path.parent.mkdir(parents=True, exist_ok=True)
    key.write_private_key(str(path))
    return key


def known_hosts_line(host: str, key: asyncssh.SSHKey) -> str:
    """known_hosts entry trusting key for host."""
    public = key.export_public_key().decode("ascii").strip()
    return f"{host} {public}\n"


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Empty home directory with a .ssh subdirectory."""
    home = tmp_path / "home"
    (home / ".ssh").mkdir(parents=True)
    return home


@pytest.fixture
def system_dir(tmp_path: Path) -> Path:
    """Empty stand-in for /etc/ssh."""
    system = tmp_path / "etc" / "ssh"
    system.mkdir(parents=True)
    return system


@pytest.fixture
def defaults(home_dir: Path, system_dir: Path) -> SSHDefaults:
    """Default locations rooted in temporary directories."""
    return SSHDefaults.for_home(home_dir, system_dir=system_dir)


@pytest.fixture
def identity_path(tmp_path: Path) -> Path:
    """A freshly generated ed25519 private key file."""
    path = tmp_path / "keys" / "id_ed25519"
    write_key(path)
    return path


@pytest.fixture
def host_key() -> asyncssh.SSHKey:
    """A server host key."""
    return asyncssh.generate_private_key("ssh-ed25519")


@pytest.fixture
def known_hosts_path(tmp_path: Path, host_key: asyncssh.SSHKey) -> Path:
    """known_hosts file trusting host_key for server.example.com."""
    path = tmp_path / "known_hosts"
    path.write_text(known_hosts_line("server.example.com", host_key))
    return path
