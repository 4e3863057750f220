"""Chart series construction.

Turns raw measurement records into chart points: every record is normalized
on its own (a bad record is skipped, never fatal), points outside the window
are dropped and the rest are sorted by instant. Nothing is cached; each call
rebuilds the series from scratch.
"""

import logging
import math
from typing import Any, Iterable, List, Mapping, Union

import polars as pl

from cgm_dashboard.interface.dashboard_interface import (
    DashboardError,
    Interval,
    InvalidValue,
    Measurement,
    NormalizedPoint,
    RecordFailure,
    SeriesBuildResult,
)
from cgm_dashboard.classifier import RangeClassifier, DEFAULT_CLASSIFIER
from cgm_dashboard.formats.series import SERIES_SCHEMA, SeriesColumn
from cgm_dashboard.timestamp_normalizer import TimestampNormalizer

logger = logging.getLogger(__name__)

RecordLike = Union[Measurement, Mapping[str, Any]]
RecordOutcome = Union[NormalizedPoint, RecordFailure]


def normalize_record(record: RecordLike, index: int = 0) -> RecordOutcome:
    """Normalize one record into a point, or a tagged failure.

    Args:
        record: Measurement or wire mapping with ``value`` and ``timestamp``
        index: Position of the record in its batch, kept on failures

    Returns:
        NormalizedPoint on success, RecordFailure otherwise
    """
    try:
        measurement = Measurement.from_record(record)
    except (AttributeError, TypeError) as e:
        return RecordFailure(index, record, InvalidValue(f"Not a measurement record: {e}"))

    try:
        instant = TimestampNormalizer.normalize(measurement.timestamp)
        value = _coerce_value(measurement.value)
    except DashboardError as e:
        return RecordFailure(index, record, e)

    return NormalizedPoint(value=value, instant=instant, source=measurement)


def _coerce_value(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        raise InvalidValue(f"Glucose value must be a number, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidValue(f"Glucose value must be a number, got {raw!r}") from e
    if not math.isfinite(value):
        raise InvalidValue(f"Glucose value must be finite, got {raw!r}")
    return value


class SeriesBuilder:
    """Builds window-scoped, time-ordered chart series from raw records."""

    def __init__(self, classifier: RangeClassifier = DEFAULT_CLASSIFIER):
        """Initialize the builder.

        Args:
            classifier: Classifier used for the ``band`` column of exported frames
        """
        self.classifier = classifier

    def build(self, records: Iterable[RecordLike], window: Interval) -> List[NormalizedPoint]:
        """Build the chart series for a window.

        Args:
            records: Raw records as delivered by the measurement store
            window: Resolved window; points with ``start <= instant <= end`` are kept

        Returns:
            Points in ascending instant order; ties keep their input order
        """
        return self.build_with_report(records, window).points

    def build_with_report(self, records: Iterable[RecordLike], window: Interval) -> SeriesBuildResult:
        """Build the chart series and report the records that were skipped.

        Args:
            records: Raw records as delivered by the measurement store
            window: Resolved window

        Returns:
            SeriesBuildResult with sorted points and per-record failures
        """
        points: List[NormalizedPoint] = []
        failures: List[RecordFailure] = []

        for index, record in enumerate(records):
            outcome = normalize_record(record, index)
            if isinstance(outcome, RecordFailure):
                logger.warning("Skipping record %d: %s", index, outcome.error)
                failures.append(outcome)
            elif window.contains(outcome.instant):
                points.append(outcome)

        # list.sort is stable, equal instants keep their input order
        points.sort(key=lambda point: point.instant)

        if failures:
            logger.info("Built series with %d points, skipped %d records", len(points), len(failures))

        return SeriesBuildResult(points=points, failures=failures)

    def to_frame(self, points: List[NormalizedPoint]) -> pl.DataFrame:
        """Export points as a polars frame matching SERIES_SCHEMA.

        Args:
            points: Chart points, typically the result of build()

        Returns:
            DataFrame with measurement_id, source, instant, datetime, glucose, band
        """
        schema = SERIES_SCHEMA.get_polars_schema()
        if not points:
            return pl.DataFrame(schema=schema)

        frame = pl.DataFrame(
            {
                SeriesColumn.MEASUREMENT_ID.value: [
                    None if p.source.id is None else str(p.source.id) for p in points
                ],
                SeriesColumn.SOURCE.value: [
                    None if p.source.source is None else str(p.source.source) for p in points
                ],
                SeriesColumn.INSTANT.value: [p.instant for p in points],
                SeriesColumn.GLUCOSE.value: [p.value for p in points],
            },
            schema_overrides={
                SeriesColumn.MEASUREMENT_ID.value: pl.Utf8,
                SeriesColumn.SOURCE.value: pl.Utf8,
                SeriesColumn.INSTANT.value: pl.Int64,
                SeriesColumn.GLUCOSE.value: pl.Float64,
            },
        )

        frame = frame.with_columns([
            pl.from_epoch(pl.col(SeriesColumn.INSTANT.value), time_unit="ms")
            .dt.replace_time_zone("UTC")
            .alias(SeriesColumn.DATETIME.value),
            self.classifier.band_expression(SeriesColumn.GLUCOSE.value),
        ])

        return frame.select(SERIES_SCHEMA.get_column_names()).with_columns(
            SERIES_SCHEMA.get_cast_expressions()
        )


def build_series(records: Iterable[RecordLike], window: Interval) -> List[NormalizedPoint]:
    """Build a series with the default classifier."""
    return SeriesBuilder().build(records, window)
