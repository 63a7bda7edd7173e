"""ssh-resolve: layered ssh_config resolution for asyncssh clients."""

__version__ = "0.1.0"

from ssh_resolve.auth import IdentityAuth, identity_auth, load_private_key
from ssh_resolve.config import EffectiveConfig, build_effective_config, join_host_port
from ssh_resolve.errors import (
    AuthenticationError,
    ConfigNotFound,
    ErrorContext,
    KeyLoadError,
    KnownHostsError,
    MergeError,
    NoAuthMethods,
    ParseError,
    PatternError,
    SSHConfigError,
)
from ssh_resolve.events import (
    ClientTrace,
    Event,
    EventCollector,
    EventEmitter,
    EventType,
    RunOnce,
)
from ssh_resolve.host_key import (
    HostKeyVerifier,
    insecure_ignore_host_key,
    load_known_hosts,
    no_trusted_keys,
)
from ssh_resolve.loader import Client, Loader, new_client
from ssh_resolve.options import OptionBlock, merge_blocks, parse_options, split_kv
from ssh_resolve.parser import ConfigFile, HostEntry, parse_config, parse_config_file
from ssh_resolve.pattern import HostPattern, PatternSet, compile_pattern, parse_patterns
from ssh_resolve.platform import SSHDefaults, expand_path
from ssh_resolve.resolver import (
    ChainResolver,
    FileResolver,
    LazyChainResolver,
    PatchResolver,
    Resolution,
    ResolutionStatus,
    Resolver,
    TracingResolver,
)
from ssh_resolve.values import Duration, parse_bool

__all__ = [
    # Parsing
    "ConfigFile",
    "HostEntry",
    "parse_config",
    "parse_config_file",
    # Options
    "OptionBlock",
    "merge_blocks",
    "parse_options",
    "split_kv",
    "Duration",
    "parse_bool",
    # Patterns
    "HostPattern",
    "PatternSet",
    "compile_pattern",
    "parse_patterns",
    # Resolution
    "Resolver",
    "Resolution",
    "ResolutionStatus",
    "FileResolver",
    "ChainResolver",
    "LazyChainResolver",
    "PatchResolver",
    "TracingResolver",
    "EffectiveConfig",
    "build_effective_config",
    "join_host_port",
    # Client
    "Client",
    "Loader",
    "new_client",
    "SSHDefaults",
    "expand_path",
    # Collaborators
    "IdentityAuth",
    "identity_auth",
    "load_private_key",
    "HostKeyVerifier",
    "insecure_ignore_host_key",
    "no_trusted_keys",
    "load_known_hosts",
    # Events
    "ClientTrace",
    "Event",
    "EventCollector",
    "EventEmitter",
    "EventType",
    "RunOnce",
    # Errors
    "SSHConfigError",
    "ParseError",
    "PatternError",
    "MergeError",
    "ConfigNotFound",
    "AuthenticationError",
    "NoAuthMethods",
    "KeyLoadError",
    "KnownHostsError",
    "ErrorContext",
]
