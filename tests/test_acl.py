import pytest

from chanbot.shared.acl import PatternACL
from chanbot.shared.exceptions import ConfigurationError, PatternError


def test_returns_lowest_matching_index() -> None:
    acl = PatternACL([r"^nomatch@", r"^alice@", r"example\.org$"])

    assert acl.match("alice@host.example.org") == (1, r"^alice@")


def test_unanchored_rule_matches_anywhere() -> None:
    acl = PatternACL([r"example\.org"])

    assert acl.match("bob@shell.example.org") == (0, r"example\.org")


def test_no_match_and_empty_acl() -> None:
    assert PatternACL([r"^alice@"]).match("bob@example.org") is None
    assert PatternACL([]).match("anything") is None


def test_rules_keep_declaration_order() -> None:
    rules = [r"^c@", r"^a@", r"^b@"]
    acl = PatternACL(rules)

    assert acl.rules == tuple(rules)
    assert len(acl) == 3


def test_invalid_rule_raises_pattern_error() -> None:
    with pytest.raises(PatternError) as excinfo:
        PatternACL([r"^ok@", r"(unclosed"])

    assert isinstance(excinfo.value, ConfigurationError)
    assert "#1" in str(excinfo.value)
