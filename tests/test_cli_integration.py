"""Integration tests for the cgm-dashboard CLI.

Tests the CLI by invoking it via subprocess, simulating real usage.
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List

import polars as pl
import pytest

NOW = "2024-01-01T12:00:00Z"


def run_cli_command(args: List[str]) -> subprocess.CompletedProcess:
    """Run CLI command via subprocess.

    Args:
        args: Command arguments (without 'cgm-dashboard')

    Returns:
        CompletedProcess with stdout/stderr/returncode
    """
    # Run as module to avoid installation requirement
    cmd = [sys.executable, "-m", "cgm_dashboard.dashboard_cli"] + args
    env = {**os.environ, "COLUMNS": "200", "NO_COLOR": "1"}
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        cwd=Path(__file__).parent.parent,
        env=env,
    )


@pytest.fixture
def measurements_file(tmp_path: Path) -> Path:
    path = tmp_path / "measurements.json"
    path.write_text(json.dumps([
        {"id": 1, "value": 5.0, "timestamp": 1700000000, "source": "DEVICE_SYNCED"},
        {"id": 2, "value": 15.0, "timestamp": "2024-01-01T00:00:00", "source": "MANUAL_ENTRY"},
        {"id": 3, "value": 2.0, "timestamp": "bad-date", "source": "IMPORTED"},
    ]))
    return path


class TestCLINormalize:

    def test_normalize(self) -> None:
        result = run_cli_command(["normalize", "1700000000", "1700000000000", "2024-01-01T12:00:00"])

        assert result.returncode == 0
        assert result.stdout.count("2023-11-14T22:13:20.000Z") == 2
        assert "2024-01-01T12:00:00.000Z" in result.stdout

    def test_normalize_invalid(self) -> None:
        result = run_cli_command(["normalize", "bad-date"])

        assert result.returncode == 1
        assert "could not be normalized" in result.stdout

    def test_normalize_out_of_range(self) -> None:
        result = run_cli_command(["normalize", "1e17"])

        assert result.returncode == 1
        assert "Traceback" not in result.stderr
        assert "1 of 1 timestamp(s) could not be normalized" in result.stdout


class TestCLIClassify:

    def test_classify(self) -> None:
        result = run_cli_command(["classify", "3.89", "3.9", "10.0"])

        assert result.returncode == 0
        lines = result.stdout.strip().splitlines()
        assert lines == ["3.89 mmol/L: LOW", "3.9 mmol/L: TARGET", "10 mmol/L: HIGH"]

    def test_classify_non_finite(self) -> None:
        result = run_cli_command(["classify", "nan"])
        assert result.returncode == 1


class TestCLIWindow:

    def test_window_ticks(self) -> None:
        result = run_cli_command(["window", "6h", "--now", NOW])

        assert result.returncode == 0
        assert "Ticks (4)" in result.stdout
        assert "Start: 2024-01-01T06:00:00.000Z" in result.stdout
        assert "End:   2024-01-01T12:00:00.000Z" in result.stdout

    def test_unknown_window(self) -> None:
        result = run_cli_command(["window", "1y", "--now", NOW])

        assert result.returncode == 1
        assert "Error" in result.stdout


class TestCLISeries:

    def test_series(self, measurements_file: Path, tmp_path: Path) -> None:
        output = tmp_path / "series.csv"
        result = run_cli_command([
            "series", str(measurements_file),
            "--window", "180d",
            "--now", NOW,
            "--output", str(output),
            "--preview",
        ])

        assert result.returncode == 0, result.stdout
        assert "Built 2 point(s) from 3 record(s)" in result.stdout
        assert "Skipped 1 record(s)" in result.stdout

        frame = pl.read_csv(output)
        assert frame["glucose"].to_list() == [5.0, 15.0]
        assert frame["band"].to_list() == ["TARGET", "HIGH"]

    def test_series_empty_window(self, measurements_file: Path) -> None:
        result = run_cli_command(["series", str(measurements_file), "--window", "6h", "--now", NOW])

        assert result.returncode == 0
        assert "Built 0 point(s)" in result.stdout

    def test_missing_file(self, tmp_path: Path) -> None:
        result = run_cli_command(["series", str(tmp_path / "missing.json")])

        assert result.returncode == 1
        assert "File not found" in result.stdout


class TestCLIInfo:

    def test_info(self, tmp_path: Path) -> None:
        schema_path = tmp_path / "series.schema.json"
        result = run_cli_command(["info", "--schema-out", str(schema_path)])

        assert result.returncode == 0
        assert "180d" in result.stdout
        assert "TARGET" in result.stdout
        assert "20.0" in result.stdout

        schema = json.loads(schema_path.read_text())
        assert [field["name"] for field in schema["fields"]] == [
            "measurement_id", "source", "instant", "datetime", "glucose", "band",
        ]
        assert "primaryKey" not in schema
