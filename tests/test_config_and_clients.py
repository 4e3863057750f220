"""Tests for DashboardConfig and the measurement clients."""

import json
from pathlib import Path

import pytest

from cgm_dashboard import DashboardConfig
from cgm_dashboard.clients import FileMeasurementClient, InMemoryMeasurementClient
from cgm_dashboard.interface.dashboard_interface import (
    ErrorInfo,
    ManualEntry,
    MeasurementSource,
    UnknownWindow,
    WindowToken,
)


class TestDashboardConfig:

    def test_defaults(self):
        config = DashboardConfig()

        assert config.window == WindowToken.SIX_HOURS
        assert config.refresh_interval_seconds == 60
        assert config.display_timezone == "Europe/Amsterdam"
        assert config.locale == "nl"
        assert not config.delegated

    def test_window_string_is_converted(self):
        assert DashboardConfig(window="30d").window is WindowToken.MONTH
        assert DashboardConfig().with_window("7d").window is WindowToken.WEEK

    @pytest.mark.parametrize("kwargs", [
        {"window": "1y"},
        {"refresh_interval_seconds": 0},
        {"locale": "de"},
        {"display_timezone": "Mars/Olympus_Mons"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            DashboardConfig(**kwargs)

    def test_from_env(self):
        config = DashboardConfig.from_env({
            "CGM_DASHBOARD_WINDOW": "24h",
            "CGM_DASHBOARD_REFRESH_INTERVAL_SECONDS": "15",
            "CGM_DASHBOARD_DISPLAY_TIMEZONE": "UTC",
            "CGM_DASHBOARD_LOCALE": "EN",
            "CGM_DASHBOARD_DELEGATED": "true",
            "UNRELATED": "x",
        })

        assert config.window == WindowToken.DAY
        assert config.refresh_interval_seconds == 15.0
        assert config.display_timezone == "UTC"
        assert config.locale == "en"
        assert config.delegated

    def test_unknown_window(self):
        with pytest.raises(UnknownWindow):
            DashboardConfig(window="1y")
        with pytest.raises(UnknownWindow):
            DashboardConfig().with_window("1y")
        with pytest.raises(UnknownWindow):
            DashboardConfig.from_env({"CGM_DASHBOARD_WINDOW": "1y"})

    def test_from_env_empty(self):
        assert DashboardConfig.from_env({}) == DashboardConfig()


class TestInMemoryClient:

    def test_fetch_returns_copy(self):
        records = [{"value": 5.0, "timestamp": 1_700_000_000}]
        client = InMemoryMeasurementClient(records)
        result = client.fetch_recent_measurements()

        assert result.ok
        assert result.data == records
        result.data.clear()
        assert client.fetch_recent_measurements().data == records
        assert client.fetch_calls == 2

    def test_failure(self):
        client = InMemoryMeasurementClient(fail_with=ErrorInfo("Service unavailable", 503))
        result = client.fetch_recent_measurements()

        assert not result.ok
        assert result.error.status == 503

    def test_submit_assigns_id(self):
        client = InMemoryMeasurementClient()
        result = client.submit_measurement(ManualEntry(6.5, "2024-01-01T12:00:00.000Z"))

        assert result.ok
        assert result.data == {
            "id": "local-1",
            "value": 6.5,
            "timestamp": "2024-01-01T12:00:00.000Z",
            "source": "MANUAL_ENTRY",
        }
        assert client.fetch_recent_measurements().data == [result.data]


class TestFileClient:

    def test_json_keeps_value_types(self, tmp_path: Path):
        path = tmp_path / "measurements.json"
        records = [
            {"id": 1, "value": 5.0, "timestamp": 1700000000, "source": "DEVICE_SYNCED"},
            {"id": 2, "value": 6.0, "timestamp": "2024-01-01T00:00:00", "source": "IMPORTED"},
        ]
        path.write_text(json.dumps(records))

        result = FileMeasurementClient(path).fetch_recent_measurements()
        assert result.data == records

    def test_json_data_envelope(self, tmp_path: Path):
        path = tmp_path / "measurements.json"
        path.write_text(json.dumps({"data": [{"value": 5.0, "timestamp": 1}]}))
        assert FileMeasurementClient(path).fetch_recent_measurements().data == [{"value": 5.0, "timestamp": 1}]

    def test_csv_reads_text(self, tmp_path: Path):
        path = tmp_path / "measurements.csv"
        path.write_text("id,value,timestamp,source\n1,5.0,1700000000,MANUAL_ENTRY\n2,7.5,2024-01-01T00:00:00,IMPORTED\n")

        data = FileMeasurementClient(path).fetch_recent_measurements().data
        assert data[0] == {"id": "1", "value": "5.0", "timestamp": "1700000000", "source": "MANUAL_ENTRY"}
        assert data[1]["timestamp"] == "2024-01-01T00:00:00"

    def test_missing_file(self, tmp_path: Path):
        result = FileMeasurementClient(tmp_path / "nope.json").fetch_recent_measurements()
        assert result.error.status == 404

    @pytest.mark.parametrize("name,content", [
        ("broken.json", "{not json"),
        ("scalar.json", "42"),
        ("data.txt", "hello"),
    ])
    def test_unreadable(self, tmp_path: Path, name, content):
        path = tmp_path / name
        path.write_text(content)
        result = FileMeasurementClient(path).fetch_recent_measurements()
        assert not result.ok
        assert result.error.message

    def test_submissions_are_returned_by_fetch(self, tmp_path: Path):
        path = tmp_path / "measurements.json"
        path.write_text("[]")
        client = FileMeasurementClient(path)
        client.submit_measurement(ManualEntry(4.2, "2024-01-01T12:00:00.000Z", MeasurementSource.MANUAL_ENTRY))

        assert [r["value"] for r in client.fetch_recent_measurements().data] == [4.2]
        assert path.read_text() == "[]"
