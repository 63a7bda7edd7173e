"""
Tests for resolvers and resolver chains.

Tests cover:
- Single-source lookup, found and not found
- Chain fall-through and failure short-circuit
- Lazy chains building sources only when reached
- Patches applied to found configs
- Tracing reports the file config exactly once, even under concurrency
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from conftest import EXAMPLE_CONFIG
from ssh_resolve.config import EffectiveConfig
from ssh_resolve.errors import ConfigNotFound, KnownHostsError, ParseError
from ssh_resolve.events import ClientTrace
from ssh_resolve.options import OptionBlock, parse_options
from ssh_resolve.parser import ConfigFile, parse_config
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


class StaticResolver:
    """Resolver returning a fixed outcome and counting calls."""

    def __init__(self, status: str, options: OptionBlock | None = None,
                 error: Exception | None = None) -> None:
        self.status = status
        self.options = options or OptionBlock()
        self.error = error
        self.calls = 0

    def resolve(self, network: str, address: str) -> Resolution:
        self.calls += 1
        if self.status == "found":
            return FileResolver(ConfigFile(self.options)).resolve(network, address)
        if self.status == "failed":
            assert self.error is not None
            return Resolution.failed(address, self.error)
        return Resolution.not_found(address)


class TestResolution:
    """Test the tagged lookup outcome."""

    def test_not_found_unwrap(self) -> None:
        with pytest.raises(ConfigNotFound) as exc_info:
            Resolution.not_found("db.other").unwrap()
        assert str(exc_info.value) == "config not found for 'db.other'"
        assert exc_info.value.context.address == "db.other"

    def test_failed_unwrap_raises_stored_error(self) -> None:
        error = ParseError("bad", lineno=3)
        with pytest.raises(ParseError) as exc_info:
            Resolution.failed("a", error).unwrap()
        assert exc_info.value is error

    def test_resolvers_satisfy_protocol(self) -> None:
        assert isinstance(FileResolver(ConfigFile()), Resolver)
        assert isinstance(ChainResolver([]), Resolver)
        assert isinstance(LazyChainResolver([]), Resolver)


class TestFileResolver:
    """Test lookups against one source."""

    def test_example_resolves(self) -> None:
        result = FileResolver(parse_config(EXAMPLE_CONFIG)).resolve("tcp", "db.corp")
        assert result.status is ResolutionStatus.FOUND
        config = result.unwrap()
        assert config.options == OptionBlock(user="admin", port=2222, identity_file="/k")
        assert config.user == "admin"
        assert config.port == 2222
        assert config.hostname == "db.corp"
        assert config.address == "db.corp:2222"
        assert config.network == "tcp"

    def test_example_not_found(self) -> None:
        result = FileResolver(parse_config(EXAMPLE_CONFIG)).resolve("tcp", "db.other")
        assert result.status is ResolutionStatus.NOT_FOUND
        with pytest.raises(ConfigNotFound):
            result.unwrap()

    def test_missing_identity_file_is_tolerated(self) -> None:
        """IdentityFile /k does not exist; the config resolves without auth."""
        config = FileResolver(parse_config(EXAMPLE_CONFIG)).resolve("tcp", "x.corp").unwrap()
        assert config.auth == []

    def test_overlay_applied_on_top(self) -> None:
        resolver = FileResolver(
            parse_config(EXAMPLE_CONFIG),
            overlay=parse_options(["Port=2022", "User alice"]),
        )
        config = resolver.resolve("tcp", "db.corp").unwrap()
        assert config.options == OptionBlock(user="alice", port=2022, identity_file="/k")

    def test_overlay_does_not_create_matches(self) -> None:
        resolver = FileResolver(parse_config(EXAMPLE_CONFIG), overlay=OptionBlock(port=1))
        assert resolver.resolve("tcp", "db.other").status is ResolutionStatus.NOT_FOUND

    def test_missing_known_hosts_resolves(self, tmp_path: Path) -> None:
        """Absent known_hosts files, one or several, do not fail the lookup."""
        text = (
            "Host *\n"
            f"    UserKnownHostsFile {tmp_path / 'kh'} {tmp_path / 'kh2'}\n"
        )
        result = FileResolver(parse_config(text)).resolve("tcp", "db")
        assert result.status is ResolutionStatus.FOUND
        assert not result.config.host_key_verifier.insecure

    def test_unreadable_known_hosts_fails(self, tmp_path: Path) -> None:
        text = f"Host a\n    UserKnownHostsFile {tmp_path}\n"
        result = FileResolver(parse_config(text)).resolve("tcp", "a")
        assert result.status is ResolutionStatus.FAILED
        assert isinstance(result.error, IsADirectoryError)

    def test_corrupt_known_hosts_fails(self, tmp_path: Path) -> None:
        bad = tmp_path / "known_hosts"
        bad.write_text("lonely-field-without-key\n")
        text = f"Host a\n    UserKnownHostsFile {bad}\n"
        result = FileResolver(parse_config(text)).resolve("tcp", "a")
        assert result.status is ResolutionStatus.FAILED
        assert isinstance(result.error, KnownHostsError)

    def test_results_are_independent(self) -> None:
        resolver = FileResolver(parse_config(EXAMPLE_CONFIG))
        first = resolver.resolve("tcp", "a.corp").unwrap()
        first.options.user = "changed"
        first.auth.append(object())  # type: ignore[arg-type]
        second = resolver.resolve("tcp", "a.corp").unwrap()
        assert second.options.user == "admin"
        assert second.auth == []


class TestChainResolver:
    """Test ordered fall-through."""

    def test_first_found_wins(self) -> None:
        first = StaticResolver("found", OptionBlock(user="one"))
        second = StaticResolver("found", OptionBlock(user="two"))
        config = ChainResolver([first, second]).resolve("tcp", "h").unwrap()
        assert config.user == "one"
        assert second.calls == 0

    def test_not_found_falls_through(self) -> None:
        first = StaticResolver("not_found")
        second = StaticResolver("found", OptionBlock(user="two"))
        config = ChainResolver([first, second]).resolve("tcp", "h").unwrap()
        assert config.user == "two"
        assert first.calls == 1

    def test_failure_stops_chain(self) -> None:
        error = ParseError("unexpected line", lineno=5, source="user")
        first = StaticResolver("failed", error=error)
        second = StaticResolver("found")
        result = ChainResolver([first, second]).resolve("tcp", "h")
        assert result.status is ResolutionStatus.FAILED
        assert result.error is error
        assert second.calls == 0

    def test_all_not_found(self) -> None:
        result = ChainResolver([StaticResolver("not_found")] * 2).resolve("tcp", "h")
        assert result.status is ResolutionStatus.NOT_FOUND

    def test_empty_chain(self) -> None:
        assert ChainResolver([]).resolve("tcp", "h").status is ResolutionStatus.NOT_FOUND

    def test_file_sources_in_precedence_order(self) -> None:
        custom = parse_config("Host db.corp\n    User custom\n")
        user = parse_config(EXAMPLE_CONFIG)
        chain = ChainResolver([FileResolver(custom), FileResolver(user)])
        assert chain.resolve("tcp", "db.corp").unwrap().user == "custom"
        assert chain.resolve("tcp", "mx.corp").unwrap().user == "admin"


class TestLazyChainResolver:
    """Test deferred source construction."""

    def test_later_factories_not_called_after_match(self) -> None:
        calls: list[str] = []

        def first() -> Resolver:
            calls.append("first")
            return StaticResolver("found")

        def second() -> Resolver:
            calls.append("second")
            return StaticResolver("found")

        LazyChainResolver([first, second]).resolve("tcp", "h").unwrap()
        assert calls == ["first"]

    def test_factories_run_per_lookup(self) -> None:
        calls: list[str] = []

        def factory() -> Resolver:
            calls.append("built")
            return StaticResolver("not_found")

        chain = LazyChainResolver([factory])
        chain.resolve("tcp", "a")
        chain.resolve("tcp", "b")
        assert calls == ["built", "built"]

    def test_factory_error_fails(self) -> None:
        def broken() -> Resolver:
            raise ParseError("unexpected indentation", lineno=1)

        def never() -> Resolver:
            raise AssertionError("should not be reached")

        result = LazyChainResolver([broken, never]).resolve("tcp", "h")
        assert result.status is ResolutionStatus.FAILED
        assert isinstance(result.error, ParseError)

    def test_all_not_found(self) -> None:
        result = LazyChainResolver([lambda: StaticResolver("not_found")]).resolve("tcp", "h")
        assert result.status is ResolutionStatus.NOT_FOUND


class TestPatchResolver:
    """Test post-processing of found configs."""

    def test_patch_applied(self) -> None:
        def patch(config: EffectiveConfig) -> None:
            config.user = "patched"

        resolver = PatchResolver(StaticResolver("found"), patch)
        assert resolver.resolve("tcp", "h").unwrap().user == "patched"

    def test_patch_skipped_when_not_found(self) -> None:
        calls: list[EffectiveConfig] = []
        resolver = PatchResolver(StaticResolver("not_found"), calls.append)
        assert resolver.resolve("tcp", "h").status is ResolutionStatus.NOT_FOUND
        assert calls == []

    def test_patch_error_fails(self) -> None:
        def patch(config: EffectiveConfig) -> None:
            raise KnownHostsError("broken", path="/x")

        result = PatchResolver(StaticResolver("found"), patch).resolve("tcp", "h")
        assert result.status is ResolutionStatus.FAILED
        assert isinstance(result.error, KnownHostsError)


class TestTracingResolver:
    """Test trace hooks."""

    def test_reports_file_config_once(self) -> None:
        file_configs: list[ConfigFile | None] = []
        configs: list[EffectiveConfig] = []
        source = parse_config(EXAMPLE_CONFIG)
        trace = ClientTrace(got_file_config=file_configs.append, got_config=configs.append)
        resolver = TracingResolver(FileResolver(source), trace, lambda: source)

        assert not resolver.reported_file_config
        resolver.resolve("tcp", "a.corp")
        resolver.resolve("tcp", "b.corp")

        assert file_configs == [source]
        assert [c.hostname for c in configs] == ["a.corp", "b.corp"]
        assert resolver.reported_file_config

    def test_not_found_not_reported(self) -> None:
        file_configs: list[ConfigFile | None] = []
        configs: list[EffectiveConfig] = []
        trace = ClientTrace(got_file_config=file_configs.append, got_config=configs.append)
        resolver = TracingResolver(StaticResolver("not_found"), trace, lambda: None)
        resolver.resolve("tcp", "h")
        assert file_configs == []
        assert configs == []
        assert not resolver.reported_file_config

    def test_once_under_concurrency(self) -> None:
        """Many threads resolving at once still report the file config once."""
        lock = threading.Lock()
        counts = {"file": 0, "config": 0}
        barrier = threading.Barrier(8)

        def got_file_config(_: ConfigFile | None) -> None:
            with lock:
                counts["file"] += 1

        def got_config(_: EffectiveConfig) -> None:
            with lock:
                counts["config"] += 1

        source = parse_config(EXAMPLE_CONFIG)
        resolver = TracingResolver(
            FileResolver(source),
            ClientTrace(got_file_config=got_file_config, got_config=got_config),
            lambda: source,
        )

        def resolve(i: int) -> EffectiveConfig:
            barrier.wait()
            return resolver.resolve("tcp", f"host{i}.corp").unwrap()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(resolve, range(8)))

        assert len(results) == 8
        assert counts == {"file": 1, "config": 8}
