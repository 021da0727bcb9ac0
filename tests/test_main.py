"""Tests for the headless --check mode."""
import sys
import os
import io
import json
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from proofpad import config as config_module
from proofpad.config import Config
from proofpad.main import EXIT_CLEAN, EXIT_FAILED, EXIT_MATCHES, line_col, main, run_check


def make_config(tmp_path):
    config = Config(path=tmp_path / "config.json", environ={})
    config.override("fallback_spelling", False)
    return config


def write(tmp_path, text):
    path = tmp_path / "input.txt"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_line_col():
    text = "one\ntwo three"
    assert line_col(text, 0) == (1, 1)
    assert line_col(text, 4) == (2, 1)
    assert line_col(text, 8) == (2, 5)


def test_offline_check_text(tmp_path):
    out = io.StringIO()
    path = write(tmp_path, "Hello.\nThis are bad sentence.")
    code = run_check(path, make_config(tmp_path), offline=True, out=out)

    assert code == EXIT_MATCHES
    lines = out.getvalue().splitlines()
    assert lines[0].startswith("2:6 Critical:")
    assert "'are'" in lines[0]
    assert lines[-1] == "1 issue(s) found"


def test_offline_check_json(tmp_path):
    out = io.StringIO()
    path = write(tmp_path, "I has a pen.")
    code = run_check(path, make_config(tmp_path), offline=True, as_json=True, out=out)

    assert code == EXIT_MATCHES
    data = json.loads(out.getvalue())
    assert data == [{
        "offset": 2, "length": 3, "line": 1, "column": 3, "text": "has",
        "message": "The pronoun 'I' takes a different verb form.",
        "shortMessage": "Agreement error", "severity": "critical",
        "issueType": "grammar", "rule": "I_HAS", "replacements": ["have"],
    }]


def test_clean_text_exits_zero(tmp_path):
    out = io.StringIO()
    path = write(tmp_path, "This is fine.")
    assert run_check(path, make_config(tmp_path), offline=True, out=out) == EXIT_CLEAN
    assert out.getvalue() == "0 issue(s) found\n"


def test_stdin(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("He don't care."))
    out = io.StringIO()
    assert run_check("-", make_config(tmp_path), offline=True, out=out) == EXIT_MATCHES


def test_unusable_service_exits_two(tmp_path):
    config = make_config(tmp_path)
    config.override("api_base_url", "")
    path = write(tmp_path, "This are bad.")
    assert run_check(path, config, out=io.StringIO()) == EXIT_FAILED


def test_main_check_flags(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.json")
    monkeypatch.setattr("proofpad.main.signal.signal", lambda *args: None)
    path = write(tmp_path, "This are bad.")
    with pytest.raises(SystemExit) as exc:
        main(["--check", path, "--offline", "--json", "--language", "en-GB"])
    assert exc.value.code == EXIT_MATCHES
    data = json.loads(capsys.readouterr().out)
    assert any(m["rule"] == "THIS_ARE" for m in data)
