# tests/test_cli.py
"""
Tests for the jsonbridge command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `process`, `validate`, `blocks` and `--help`.
2.  **Registry Sources**: `--blocks` files, inline `--block` options and the
    usage error raised when neither yields a block.
3.  **Pipeline Integration**: the processed JSON is written where asked.
4.  **Error Handling**: runtime failures exit with 1, bad arguments with 2.

`typer.testing.CliRunner` invokes the app in-process. Assertions read
`result.output`, since Typer writes usage errors to stderr.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from jsonbridge.cli import app
from jsonbridge.core.settings import load_settings


@pytest.fixture  # type: ignore[misc]
def runner(monkeypatch: Any) -> CliRunner:
    """Fresh runner with no registry coming from the environment."""
    monkeypatch.delenv("JSONBRIDGE_BLOCKS_FILE", raising=False)
    load_settings.cache_clear()
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def blocks_file(tmp_path: Path) -> Path:
    path = tmp_path / "blocks.json"
    path.write_text(json.dumps({"users": "id_user", "contacts": "id_contact"}), encoding="utf-8")
    return path


@pytest.fixture  # type: ignore[misc]
def data_file(tmp_path: Path) -> Path:
    path = tmp_path / "data.json"
    doc = {"users": [{"id_user": 1, "contacts": {"id_contact": 9, "email": "a@b.c"}}]}
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    """Invoking --help should list the commands and exit 0."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    for command in ("process", "validate", "blocks"):
        assert command in result.output


def test_process_fails_on_missing_file(runner: CliRunner, blocks_file: Path) -> None:
    """Typer enforces `exists=True` for the input document."""
    result = runner.invoke(app, ["process", "ghost.json", "--blocks", str(blocks_file)])
    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_process_writes_ordered_output(
    runner: CliRunner, blocks_file: Path, data_file: Path, tmp_path: Path
) -> None:
    """The happy path prints the order and writes the grouped blocks."""
    out = tmp_path / "out.json"
    result = runner.invoke(
        app, ["process", str(data_file), "--blocks", str(blocks_file), "-o", str(out)]
    )
    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert "Insertion order" in result.output

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert list(payload["independent_blocks"]) == ["contacts", "users"]
    assert payload["independent_blocks"]["users"] == [
        {"id_user": 1, "_IB_contacts_id_contact": 9}
    ]
    assert "document" not in payload


def test_process_default_output_and_document(
    runner: CliRunner, data_file: Path
) -> None:
    """Inline blocks work; the default output sits next to the input."""
    result = runner.invoke(
        app,
        [
            "process",
            str(data_file),
            "--block",
            "users=id_user",
            "--block",
            "contacts=id_contact",
            "--with-document",
        ],
    )
    assert result.exit_code == 0, result.output
    target = data_file.with_name("data.processed.json")
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["document"] == {"_IB_users_id_user": [1]}


def test_process_writes_traces(
    runner: CliRunner, blocks_file: Path, data_file: Path, tmp_path: Path
) -> None:
    """`--trace-dir` persists one snapshot per stage."""
    trace_dir = tmp_path / "trace"
    result = runner.invoke(
        app,
        [
            "process",
            str(data_file),
            "-b",
            str(blocks_file),
            "-o",
            str(tmp_path / "o.json"),
            "--trace-dir",
            str(trace_dir),
        ],
    )
    assert result.exit_code == 0, result.output
    assert len(list(trace_dir.glob("*.json"))) == 3


def test_process_cycle_fail_exits_with_1(runner: CliRunner, tmp_path: Path) -> None:
    """A cycle under the `fail` policy is a handled runtime error."""
    src = tmp_path / "cyclic.json"
    src.write_text(json.dumps({"a": {"id": 1, "b": {"id": 2, "a": {"id": 1}}}}), encoding="utf-8")
    result = runner.invoke(
        app,
        ["process", str(src), "-k", "a=id", "-k", "b=id", "--cycle-policy", "fail"],
    )
    assert result.exit_code == 1, result.output
    assert "Processing Error" in result.output


def test_process_rejects_unknown_cycle_policy(
    runner: CliRunner, blocks_file: Path, data_file: Path
) -> None:
    """Only accept, warn and fail are policies."""
    result = runner.invoke(
        app,
        ["process", str(data_file), "-b", str(blocks_file), "--cycle-policy", "ignore"],
    )
    assert result.exit_code == 2


def test_process_without_blocks_is_a_usage_error(runner: CliRunner, data_file: Path) -> None:
    """No registry source at all is rejected before processing."""
    result = runner.invoke(app, ["process", str(data_file)])
    assert result.exit_code == 2


def test_malformed_inline_block_is_a_usage_error(runner: CliRunner, data_file: Path) -> None:
    """`--block` needs the name=key_field form."""
    result = runner.invoke(app, ["validate", str(data_file), "--block", "users"])
    assert result.exit_code == 2


def test_validate_clean_document(
    runner: CliRunner, blocks_file: Path, data_file: Path
) -> None:
    """A valid document exits 0."""
    result = runner.invoke(app, ["validate", str(data_file), "--blocks", str(blocks_file)])
    assert result.exit_code == 0, result.output
    assert "No violations" in result.output


def test_validate_reports_violations(
    runner: CliRunner, blocks_file: Path, tmp_path: Path
) -> None:
    """Violations are listed and the command exits 1."""
    src = tmp_path / "bad.json"
    src.write_text(json.dumps({"users": [{"name": "x"}, {"id_user": None}]}), encoding="utf-8")
    result = runner.invoke(app, ["validate", str(src), "--blocks", str(blocks_file)])
    assert result.exit_code == 1
    assert "2 violation(s)" in result.output


def test_blocks_lists_registry(runner: CliRunner, blocks_file: Path) -> None:
    """`blocks` prints each definition."""
    result = runner.invoke(app, ["blocks", "--blocks", str(blocks_file)])
    assert result.exit_code == 0, result.output
    assert "2 independent block(s)" in result.output
    assert "users" in result.output and "contacts" in result.output


def test_blocks_file_from_environment(
    runner: CliRunner, blocks_file: Path, monkeypatch: Any
) -> None:
    """JSONBRIDGE_BLOCKS_FILE is the fallback registry source."""
    monkeypatch.setenv("JSONBRIDGE_BLOCKS_FILE", str(blocks_file))
    load_settings.cache_clear()
    try:
        result = runner.invoke(app, ["blocks"])
        assert result.exit_code == 0, result.output
        assert "2 independent block(s)" in result.output
    finally:
        monkeypatch.delenv("JSONBRIDGE_BLOCKS_FILE", raising=False)
        load_settings.cache_clear()
