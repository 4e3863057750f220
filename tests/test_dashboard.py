"""Tests for DashboardSession, RefreshScheduler and manual entries."""

import threading
import time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from cgm_dashboard import DashboardConfig, DashboardSession, build_manual_entry, normalize
from cgm_dashboard.clients import InMemoryMeasurementClient
from cgm_dashboard.dashboard import RefreshScheduler
from cgm_dashboard.interface.dashboard_interface import (
    ClinicalBand,
    ErrorInfo,
    InvalidValue,
    MeasurementSource,
    SubmissionRejected,
    UnknownWindow,
    WindowToken,
)

NOW = normalize("2024-01-01T12:00:00Z")


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def records() -> list:
    return [
        {"id": 1, "value": 5.0, "timestamp": "2024-01-01T10:00:00Z", "source": "DEVICE_SYNCED"},
        {"id": 2, "value": 11.0, "timestamp": "2024-01-01T02:00:00", "source": "DEVICE_SYNCED"},
        {"id": 3, "value": 3.0, "timestamp": "2023-12-28T12:00:00Z", "source": "IMPORTED"},
        {"id": 4, "value": 7.0, "timestamp": "garbage", "source": "IMPORTED"},
    ]


@pytest.fixture
def client(records) -> InMemoryMeasurementClient:
    return InMemoryMeasurementClient(records)


@pytest.fixture
def session(client) -> DashboardSession:
    session = DashboardSession(client, DashboardConfig(), clock=lambda: NOW)
    yield session
    session.close()


class TestView:

    def test_view_before_refresh_is_empty(self, session):
        view = session.view()
        assert view.is_empty
        assert view.refreshed_at is None
        assert view.ticks[0] == view.interval.start

    def test_view_after_refresh(self, session):
        assert session.refresh()
        view = session.view()

        assert view.window == WindowToken.SIX_HOURS
        assert view.interval.end == NOW
        assert [p.value for p in view.points] == [5.0]
        assert len(view.failures) == 1
        assert view.ticks[0] == view.interval.start and view.ticks[-1] == NOW
        assert view.tick_labels[-1] == "13:00"
        assert view.title == "Glucoseverloop (laatste 6 uur)"
        assert [r.band for r in view.regions] == list(ClinicalBand)
        assert view.refreshed_at == NOW

    def test_window_switch_does_not_fetch(self, session, client):
        session.refresh()
        calls = client.fetch_calls

        day = session.set_window("24h")
        week = session.set_window(WindowToken.WEEK)

        assert client.fetch_calls == calls
        assert [p.value for p in day.points] == [11.0, 5.0]
        assert [p.value for p in week.points] == [3.0, 11.0, 5.0]
        assert session.window == WindowToken.WEEK

    def test_unknown_window_aborts(self, session):
        with pytest.raises(UnknownWindow):
            session.set_window("1y")
        assert session.window == WindowToken.SIX_HOURS

    def test_failed_fetch_keeps_previous_records(self, session, client):
        session.refresh()
        before = session.view()

        client.fail_with = ErrorInfo("Service unavailable", 503)
        assert not session.refresh()
        after = session.view()

        assert after.points == before.points
        assert after.last_error == ErrorInfo("Service unavailable", 503)

        client.fail_with = None
        assert session.refresh()
        assert session.view().last_error is None

    def test_refresh_replaces_records(self, session, client):
        session.refresh()
        client.replace_records([{"value": 8.0, "timestamp": "2024-01-01T11:00:00Z"}])
        session.refresh()

        assert [p.value for p in session.view().points] == [8.0]
        assert len(session.records) == 1


class TestScheduling:

    def test_periodic_refresh_and_cancellation(self, client):
        config = DashboardConfig(refresh_interval_seconds=0.01)
        session = DashboardSession(client, config, clock=lambda: NOW)

        assert session.start()
        assert session.is_scheduled
        assert wait_until(lambda: client.fetch_calls >= 3)

        session.close()
        calls = client.fetch_calls
        time.sleep(0.05)

        assert client.fetch_calls == calls
        assert not session.is_scheduled
        assert not session.refresh()

    def test_delegated_view_is_not_scheduled(self, client):
        session = DashboardSession(client, DashboardConfig(delegated=True, refresh_interval_seconds=0.01))

        assert not session.start()
        time.sleep(0.05)

        assert client.fetch_calls == 1
        assert not session.is_scheduled
        session.close()

    def test_context_manager(self, client):
        with DashboardSession(client, DashboardConfig(refresh_interval_seconds=0.01)) as session:
            assert session.is_scheduled
        assert not session.is_scheduled

    def test_start_after_close(self, client):
        session = DashboardSession(client)
        session.close()
        with pytest.raises(RuntimeError):
            session.start()


class TestRefreshScheduler:

    def test_callback_errors_do_not_stop_schedule(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        scheduler = RefreshScheduler(0.01, flaky)
        scheduler.start()
        try:
            assert wait_until(lambda: len(calls) >= 3)
        finally:
            scheduler.cancel()
        assert not scheduler.is_running

    def test_cancel_from_callback(self):
        done = threading.Event()
        holder = {}

        def stop_self():
            holder["scheduler"].cancel()
            done.set()

        scheduler = RefreshScheduler(0.01, stop_self)
        holder["scheduler"] = scheduler
        scheduler.start()

        assert done.wait(2.0)
        assert wait_until(lambda: not scheduler.is_running)

    def test_double_start(self):
        scheduler = RefreshScheduler(10, lambda: None)
        scheduler.start()
        try:
            with pytest.raises(RuntimeError):
                scheduler.start()
        finally:
            scheduler.cancel()


class TestManualEntry:

    def test_local_time_becomes_utc(self):
        entry = build_manual_entry(6.5, datetime(2024, 1, 1, 13, 0), ZoneInfo("Europe/Amsterdam"))

        assert entry.timestamp == "2024-01-01T12:00:00.000Z"
        assert entry.source == MeasurementSource.MANUAL_ENTRY
        assert normalize(entry.timestamp) == NOW

    def test_aware_datetime_is_kept(self):
        entry = build_manual_entry(6, datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), ZoneInfo("Asia/Tokyo"))
        assert entry.timestamp == "2024-01-01T12:00:00.000Z"
        assert entry.value == 6.0

    @pytest.mark.parametrize("value", [0, -1.5, float("nan"), "6.5", None, True])
    def test_rejected_values(self, value):
        with pytest.raises(InvalidValue):
            build_manual_entry(value, datetime(2024, 1, 1, 12, 0))

    def test_submit_refreshes(self, session, client):
        session.refresh()
        calls = client.fetch_calls

        result = session.submit(6.5, datetime(2024, 1, 1, 12, 30))

        assert result.ok
        assert client.fetch_calls == calls + 1
        # 12:30 Amsterdam is 11:30 UTC, inside the 6h window
        assert 6.5 in [p.value for p in session.view().points]

    def test_submit_failure_is_returned(self, session, client):
        client.fail_with = ErrorInfo("Bad request", 400)
        result = session.submit(6.5, datetime(2024, 1, 1, 12, 30))
        assert result.error.status == 400

    def test_delegated_session_rejects_submissions(self, client):
        session = DashboardSession(client, DashboardConfig(delegated=True))
        with pytest.raises(SubmissionRejected):
            session.submit(6.5, datetime(2024, 1, 1, 12, 30))
        assert client.submit_calls == 0
