"""Tests for the ispy CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from ispy import __version__
from ispy.cli import cli


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "one.py").write_text("1", encoding="utf-8")
    (root / "two.md").write_text("2", encoding="utf-8")
    return root


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_watch_single_cycle_logs_existing_files(watched_dir: Path):
    result = CliRunner().invoke(cli, ["watch", str(watched_dir), "--cycles", "1", "--polling"])

    assert result.exit_code == 0, result.output
    assert "one.py" in result.output
    assert "two.md" in result.output
    assert "Watch Summary" in result.output


def test_watch_json_output(watched_dir: Path):
    result = CliRunner().invoke(
        cli,
        ["watch", str(watched_dir), "--cycles", "1", "--json", "--pattern", "*.py", "--hash", "--polling"],
    )

    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert len(lines) == 1
    record = lines[0]
    assert record["attribute"] == "transform"
    assert record["value"]["path"].endswith("one.py")
    assert "hash" in record["value"]


def test_invalid_config_is_reported(watched_dir: Path, tmp_path: Path):
    config = tmp_path / "bad.yml"
    config.write_text("poll_interval: -1\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["--config", str(config), "watch", str(watched_dir), "--cycles", "1"])

    assert result.exit_code != 0
    assert "poll_interval" in result.output


def test_watch_rejects_non_positive_interval(watched_dir: Path):
    result = CliRunner().invoke(cli, ["watch", str(watched_dir), "--interval", "0", "--cycles", "1"])
    assert result.exit_code != 0
