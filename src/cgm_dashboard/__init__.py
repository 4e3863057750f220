"""cgm_dashboard - Chart-ready glucose series for a glucose-tracking portal.

This package turns loosely-typed measurement records into window-scoped,
time-ordered chart series with aligned axis ticks, and classifies glucose
values into clinical bands for overlays.

Main Components:
    TimestampNormalizer: Raw timestamps to absolute instants (ms since epoch)
    RangeWindowSelector: Window tokens (6h, 24h, 7d, 30d, 180d) to absolute bounds
    TickGenerator: Axis ticks anchored to the live end of a window
    SeriesBuilder: Records to sorted chart points inside a window
    RangeClassifier: Glucose values to LOW / TARGET / HIGH
    SummaryFormatter: Relative-time and localized labels
    DashboardSession: Periodic refresh and window switching

Quick Start:
    >>> from cgm_dashboard import RangeWindowSelector, SeriesBuilder, TickGenerator
    >>>
    >>> window = RangeWindowSelector().resolve("24h")
    >>> points = SeriesBuilder().build(records, window)
    >>> ticks = TickGenerator.for_interval(window, "24h")
"""

from cgm_dashboard.timestamp_normalizer import TimestampNormalizer, normalize
from cgm_dashboard.windowing import RangeWindowSelector, TickGenerator, resolve_window, generate_ticks
from cgm_dashboard.series_builder import SeriesBuilder, build_series
from cgm_dashboard.classifier import RangeClassifier, classify
from cgm_dashboard.summary_formatter import SummaryFormatter, relative_label
from cgm_dashboard.dashboard import DashboardSession, DashboardView, build_manual_entry
from cgm_dashboard.config import DashboardConfig

__version__ = "0.1.0"

__all__ = [
    "TimestampNormalizer",
    "RangeWindowSelector",
    "TickGenerator",
    "SeriesBuilder",
    "RangeClassifier",
    "SummaryFormatter",
    "DashboardSession",
    "DashboardView",
    "DashboardConfig",
    "normalize",
    "resolve_window",
    "generate_ticks",
    "build_series",
    "classify",
    "relative_label",
    "build_manual_entry",
    "__version__",
]
