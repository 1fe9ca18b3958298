"""Tests for the deepresearch CLI — offline parts only (no server)."""

import click
from click.testing import CliRunner

from deepresearch.cli.main import format_session_line, main, parse_sse_data


def test_help_lists_commands():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    for cmd in ["serve", "init-db", "register", "login", "sessions", "new", "show", "delete", "stream"]:
        assert cmd in result.output


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_missing_token_exits(monkeypatch):
    monkeypatch.delenv("DEEPRESEARCH_TOKEN", raising=False)
    result = CliRunner().invoke(main, ["sessions"])
    assert result.exit_code == 1
    assert "--token required" in result.output


def test_parse_sse_data():
    assert parse_sse_data('data: {"step": "x", "progress": 20}') == {"step": "x", "progress": 20}
    assert parse_sse_data("data:{\"progress\": 0}") == {"progress": 0}
    assert parse_sse_data("") is None
    assert parse_sse_data(": ping") is None
    assert parse_sse_data("event: message") is None
    assert parse_sse_data("data: not-json") is None
    assert parse_sse_data("data:") is None


def test_format_session_line():
    line = click.unstyle(format_session_line({
        "id": "12345678-aaaa-bbbb-cccc-1234567890ab",
        "status": "completed",
        "title": "Quantum computing",
        "tags": ["physics", "qc"],
    }))
    assert line.startswith("  12345678  completed")
    assert "Quantum computing" in line
    assert line.endswith("[physics,qc]")


def test_format_session_line_no_tags():
    line = click.unstyle(format_session_line({
        "id": "abcdefab-0000-0000-0000-000000000000",
        "status": "pending",
        "title": "Untagged",
        "tags": [],
    }))
    assert line.endswith("[—]")
