"""Tests for match parsing and offsets."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from proofpad.matches import (
    Match, MatchSet, Severity, classify_issue_type,
    parse_match, parse_matches, python_index, utf16_offset,
)


def _raw(offset, length, **extra):
    raw = {
        "offset": offset,
        "length": length,
        "message": "Possible spelling mistake found.",
        "shortMessage": "Spelling mistake",
        "replacements": [{"value": "bad"}, {"value": "bade"}],
        "rule": {"id": "MORFOLOGIK_RULE_EN_US", "issueType": "misspelling",
                 "category": {"id": "TYPOS", "name": "Possible Typo"}},
    }
    raw.update(extra)
    return raw


def test_parse_full_match():
    m = parse_match(_raw(9, 3))
    assert m.offset == 9
    assert m.length == 3
    assert m.end == 12
    assert m.replacements == ("bad", "bade")
    assert m.rule_id == "MORFOLOGIK_RULE_EN_US"
    assert m.category == "Possible Typo"
    assert m.issue_type == "misspelling"
    assert m.title == "Spelling mistake"


def test_parse_minimal_match():
    m = parse_match({"offset": 0, "length": 4, "message": "Agreement error"})
    assert m is not None
    assert m.replacements == ()
    assert m.issue_type == ""
    assert m.title == "Agreement error"
    assert m.severity is Severity.INFO


def test_parse_drops_malformed():
    payload = {"matches": [
        _raw(0, 4),
        _raw("3", 2),
        _raw(2, 0),
        _raw(-1, 2),
        _raw(True, 2),
        {"message": "no offsets"},
        "not a dict",
        _raw(5, 3),
    ]}
    matches = parse_matches(payload)
    assert [(m.offset, m.length) for m in matches] == [(0, 4), (5, 3)]


def test_parse_matches_requires_list():
    with pytest.raises(ValueError):
        parse_matches({"software": {}})
    with pytest.raises(ValueError):
        parse_matches([])
    assert parse_matches({"matches": []}) == []


def test_severity_mapping():
    assert classify_issue_type("misspelling") is Severity.CRITICAL
    assert classify_issue_type("grammar") is Severity.CRITICAL
    assert classify_issue_type("style") is Severity.WARNING
    assert classify_issue_type("typographical") is Severity.INFO
    assert classify_issue_type("") is Severity.INFO
    assert classify_issue_type(None) is Severity.INFO
    assert Severity.WARNING.label == "Style"


def test_utf16_offsets():
    text = "a😀b"
    assert utf16_offset(text, 0) == 0
    assert utf16_offset(text, 1) == 1
    assert utf16_offset(text, 2) == 3
    assert utf16_offset(text, 3) == 4
    assert python_index(text, 3) == 2
    assert python_index(text, 4) == 3
    # inside the surrogate pair
    assert python_index(text, 2) == 1


def test_parse_converts_utf16():
    text = "😀 teh cat"
    # 'teh' is at UTF-16 offset 3, code-point index 2
    m = parse_match(_raw(3, 3), text)
    assert m.offset == 2
    assert text[m.offset:m.end] == "teh"


def test_match_fits_and_shift():
    m = Match(offset=2, length=3, message="x")
    assert m.fits("abcdef")
    assert not m.fits("abcd")
    assert m.shifted(2).offset == 4
    assert m.shifted(2).length == 3


def test_match_set_identity():
    a = Match(0, 1, "a")
    twin = Match(0, 1, "a")
    ms = MatchSet(generation=1, matches=(a,))
    assert len(ms) == 1
    assert ms[0] is a
    assert ms.index_of(a) == 0
    assert ms.index_of(twin) is None
