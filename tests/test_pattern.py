"""
Tests for Host pattern compilation and matching.
"""
from __future__ import annotations

import pytest

from ssh_resolve.errors import ParseError, PatternError
from ssh_resolve.pattern import (
    PatternSet,
    compile_pattern,
    glob_to_regex,
    parse_patterns,
)


class TestCompilePattern:
    """Test single glob tokens."""

    @pytest.mark.parametrize("address", ["a", "host", "db.example.com", "10.0.0.1"])
    def test_star_matches_everything(self, address: str) -> None:
        """* matches every non-empty address."""
        assert compile_pattern("*").match(address)

    @pytest.mark.parametrize("middle", ["X", "1", ".", "-"])
    def test_question_matches_one_character(self, middle: str) -> None:
        """a?b matches any single character between a and b."""
        assert compile_pattern("a?b").match(f"a{middle}b")

    @pytest.mark.parametrize("address", ["ab", "aXXb", "aXbc", "zaXb"])
    def test_question_rejects_other_lengths(self, address: str) -> None:
        assert not compile_pattern("a?b").match(address)

    def test_subdomain_wildcard(self) -> None:
        """*.example.com needs a subdomain."""
        pattern = compile_pattern("*.example.com")
        assert pattern.match("host.example.com")
        assert pattern.match("a.b.example.com")
        assert not pattern.match("example.com")

    def test_anchored_to_whole_address(self) -> None:
        """Patterns do not match substrings."""
        pattern = compile_pattern("*.corp")
        assert not pattern.match("db.corp.example.com")
        assert not compile_pattern("db").match("db1")

    def test_dot_is_literal(self) -> None:
        assert not compile_pattern("db.corp").match("dbXcorp")

    def test_regex_metacharacters_are_literal(self) -> None:
        """Characters special to regular expressions match themselves."""
        pattern = compile_pattern("host+[1]")
        assert pattern.match("host+[1]")
        assert not pattern.match("hostt1")

    def test_case_sensitive(self) -> None:
        """Addresses are compared exactly as given."""
        assert not compile_pattern("DB.corp").match("db.corp")
        assert not compile_pattern("*.Example.COM").match("db.example.com")
        assert compile_pattern("DB.corp").match("DB.corp")

    @pytest.mark.parametrize(
        "glob, address",
        [("db", "db\n"), ("*.corp", "x.corp\n"), ("db?", "db1\n")],
    )
    def test_trailing_newline_not_matched(self, glob: str, address: str) -> None:
        """A trailing newline is part of the address, not the end of it."""
        assert compile_pattern(glob).match(address.rstrip("\n"))
        assert not compile_pattern(glob).match(address)

    def test_literal_detection(self) -> None:
        assert compile_pattern("db.corp").is_literal
        assert not compile_pattern("db?").is_literal
        assert not compile_pattern("*.corp").is_literal

    def test_empty_token_is_error(self) -> None:
        with pytest.raises(PatternError):
            compile_pattern("   ", lineno=4)

    def test_pattern_error_is_parse_error(self) -> None:
        assert issubclass(PatternError, ParseError)

    def test_glob_to_regex(self) -> None:
        assert glob_to_regex("*.a?") == r"^.*\.a.$"


class TestPatternSet:
    """Test pattern lists from Host lines."""

    def test_any_member_matches(self) -> None:
        patterns = parse_patterns("web? db.corp")
        assert patterns.match("web1")
        assert patterns.match("db.corp")
        assert not patterns.match("mail.corp")

    def test_globs_preserved_in_order(self) -> None:
        patterns = parse_patterns("  b   a  ")
        assert patterns.globs == ["b", "a"]
        assert str(patterns) == "b a"

    def test_empty_list_is_error(self) -> None:
        """A Host line needs at least one pattern."""
        with pytest.raises(PatternError) as exc_info:
            parse_patterns("", lineno=7, line="Host")
        assert exc_info.value.lineno == 7
        assert exc_info.value.line == "Host"

    def test_match_all(self) -> None:
        assert PatternSet.match_all().match("anything.at.all")
