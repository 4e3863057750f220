"""Dashboard session: periodic refresh and window switching.

A session owns the last successfully fetched records and derives the chart
view from them on demand. Refreshing replaces the records as a whole; a failed
fetch keeps the previous records, so a view is either fully old or fully new.
Switching windows never fetches.
"""

import logging
import math
import numbers
import threading
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Callable, List, Optional, Tuple, Union

from cgm_dashboard.classifier import RangeClassifier, DEFAULT_CLASSIFIER
from cgm_dashboard.config import DashboardConfig
from cgm_dashboard.interface.dashboard_interface import (
    AbsoluteInstant,
    BandRegion,
    ErrorInfo,
    Interval,
    InvalidValue,
    ManualEntry,
    MeasurementClient,
    MeasurementSource,
    NormalizedPoint,
    RecordFailure,
    SubmissionRejected,
    SubmitResult,
    WindowToken,
)
from cgm_dashboard.series_builder import SeriesBuilder
from cgm_dashboard.summary_formatter import SummaryFormatter
from cgm_dashboard.timestamp_normalizer import TimestampNormalizer
from cgm_dashboard.windowing import RangeWindowSelector, TickGenerator, current_instant, window_spec

logger = logging.getLogger(__name__)


def build_manual_entry(
    value: Union[int, float],
    local_datetime: datetime,
    tz: Optional[tzinfo] = None,
) -> ManualEntry:
    """Build a manual-entry payload from a local date and time.

    Naive datetimes are placed in ``tz`` (UTC when omitted) and converted to a
    UTC ISO-8601 string, so the store only ever receives zone-qualified times.

    Raises:
        InvalidValue: If value is not a positive finite number
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise InvalidValue(f"Glucose value must be a finite number, got {value!r}")
    if value <= 0:
        raise InvalidValue(f"Glucose value must be positive, got {value!r}")

    if local_datetime.tzinfo is None and tz is not None:
        local_datetime = local_datetime.replace(tzinfo=tz)
    instant = TimestampNormalizer.from_datetime(local_datetime)

    return ManualEntry(
        value=float(value),
        timestamp=TimestampNormalizer.to_iso(instant),
        source=MeasurementSource.MANUAL_ENTRY,
    )


class RefreshScheduler:
    """Calls ``callback`` every ``interval_seconds`` on a daemon thread until cancelled."""

    def __init__(self, interval_seconds: float, callback: Callable[[], Any], name: str = "cgm-dashboard-refresh"):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Scheduler already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling; waits for a running callback unless called from it."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.callback()
            except Exception:
                # next cycle retries with fresh state
                logger.exception("Scheduled refresh failed")


@dataclass(frozen=True)
class DashboardView:
    """Everything a chart needs for one render."""
    window: WindowToken
    interval: Interval
    points: List[NormalizedPoint]
    ticks: List[AbsoluteInstant]
    tick_labels: List[str]
    regions: List[BandRegion]
    title: str
    failures: List[RecordFailure]
    last_error: Optional[ErrorInfo]
    refreshed_at: Optional[AbsoluteInstant]

    @property
    def is_empty(self) -> bool:
        return not self.points


class DashboardSession:
    """Hosts the fetch -> normalize -> window -> ticks pipeline for one viewer.

    Outside delegated mode, start() schedules a refresh every
    ``config.refresh_interval_seconds``; close() cancels it. Use as a context
    manager to tie the schedule to the lifetime of the consuming view.
    """

    def __init__(
        self,
        client: MeasurementClient,
        config: Optional[DashboardConfig] = None,
        classifier: RangeClassifier = DEFAULT_CLASSIFIER,
        clock: Callable[[], AbsoluteInstant] = current_instant,
    ):
        self.client = client
        self.config = config or DashboardConfig()
        self.classifier = classifier
        self.clock = clock
        self.selector = RangeWindowSelector(self.config.calendar_tz)
        self.builder = SeriesBuilder(classifier)
        self.formatter = SummaryFormatter(self.config.locale, self.config.display_tz)

        self._lock = threading.Lock()
        self._records: Tuple[Any, ...] = ()
        self._window: WindowToken = self.config.window
        self._last_error: Optional[ErrorInfo] = None
        self._refreshed_at: Optional[AbsoluteInstant] = None
        self._scheduler: Optional[RefreshScheduler] = None
        self._closed = False

    # ===== Lifecycle =====

    def start(self) -> bool:
        """Fetch once and, unless delegated, schedule periodic refreshes.

        Returns:
            True if a periodic refresh was scheduled
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        self.refresh()
        if self.config.delegated:
            logger.info("Delegated view: periodic refresh disabled")
            return False
        if self._scheduler is None:
            self._scheduler = RefreshScheduler(self.config.refresh_interval_seconds, self.refresh)
            self._scheduler.start()
        return True

    def close(self) -> None:
        """Cancel scheduled refreshes; later refresh() calls are ignored."""
        self._closed = True
        if self._scheduler is not None:
            self._scheduler.cancel()
            self._scheduler = None

    @property
    def is_scheduled(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_running

    def __enter__(self) -> "DashboardSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ===== Data =====

    def refresh(self) -> bool:
        """Fetch records and replace the held snapshot.

        Returns:
            True if new records were stored; False if the fetch failed (the
            previous records stay in place) or the session is closed
        """
        if self._closed:
            return False

        result = self.client.fetch_recent_measurements()
        if not result.ok:
            logger.warning("Fetching measurements failed: %s", result.error.message)
            with self._lock:
                self._last_error = result.error
            return False

        records = tuple(result.data or ())
        with self._lock:
            self._records = records
            self._last_error = None
            self._refreshed_at = self.clock()
        logger.debug("Refreshed %d records", len(records))
        return True

    @property
    def records(self) -> Tuple[Any, ...]:
        with self._lock:
            return self._records

    @property
    def window(self) -> WindowToken:
        return self._window

    def set_window(self, token: Union[str, WindowToken]) -> "DashboardView":
        """Switch the window and derive a new view from the held records (no fetch)."""
        spec = window_spec(token)
        with self._lock:
            self._window = spec.token
        return self.view()

    def view(self, now: Optional[AbsoluteInstant] = None) -> DashboardView:
        """Derive the chart view for the current window.

        Raises:
            UnknownWindow, InvalidWindowBounds: Structural failures abort the view
        """
        with self._lock:
            records = self._records
            window = self._window
            last_error = self._last_error
            refreshed_at = self._refreshed_at

        interval = self.selector.resolve(window, self.clock() if now is None else now)
        result = self.builder.build_with_report(records, interval)
        ticks = TickGenerator.for_interval(interval, window)

        return DashboardView(
            window=window,
            interval=interval,
            points=result.points,
            ticks=ticks,
            tick_labels=[self.formatter.tick_label(tick, window) for tick in ticks],
            regions=self.classifier.overlay_regions(),
            title=self.formatter.chart_title(window),
            failures=result.failures,
            last_error=last_error,
            refreshed_at=refreshed_at,
        )

    def submit(self, value: Union[int, float], local_datetime: datetime) -> SubmitResult:
        """Submit a manual measurement and refresh on success.

        Raises:
            SubmissionRejected: In delegated (read-only) mode
            InvalidValue: If value is not a positive finite number
        """
        if self.config.delegated:
            raise SubmissionRejected("Delegated views are read-only")

        entry = build_manual_entry(value, local_datetime, self.config.display_tz)
        result = self.client.submit_measurement(entry)
        if result.ok:
            self.refresh()
        else:
            logger.warning("Submitting measurement failed: %s", result.error.message)
        return result
