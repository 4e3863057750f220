"""Interface definitions for the glucose dashboard engine.

Separated into three concerns:
- Data model: measurements as delivered by the measurement store, normalized chart points
- Collaborators: MeasurementClient, the source/sink contract of the measurement store
- Errors and constants shared by the normalization, windowing and classification stages
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Union
import polars as pl

from cgm_dashboard.interface.schema import EnumLiteral

# Check pandas availability
try:
    import pyarrow as pa
    import pandas as pd
    _PANDAS_AVAILABLE = True
except ImportError:
    _PANDAS_AVAILABLE = False


# Clinical band thresholds in mmol/L
RANGE_LOW_MAX = 3.9  # first TARGET value
RANGE_HIGH_MIN = 10.0  # first HIGH value
RANGE_TOP = 20.0  # display ceiling for overlays, never used for classification

# Raw numbers below this are epoch seconds, at or above it epoch milliseconds
EPOCH_MILLISECONDS_THRESHOLD = 1e12

REFRESH_INTERVAL_SECONDS = 60
DEFAULT_WINDOW = "6h"
DEFAULT_DISPLAY_TIMEZONE = "Europe/Amsterdam"

MS_MINUTE = 60 * 1000
MS_HOUR = 60 * MS_MINUTE
MS_DAY = 24 * MS_HOUR

# Type alias to highlight instants: milliseconds since the Unix epoch, UTC
AbsoluteInstant = int

# Anything the measurement store may put in a timestamp field
RawTimestamp = Any


class MeasurementSource(EnumLiteral):
    """Origin of a measurement as reported by the measurement store."""
    MANUAL_ENTRY = "MANUAL_ENTRY"
    IMPORTED = "IMPORTED"
    DEVICE_SYNCED = "DEVICE_SYNCED"


class WindowToken(EnumLiteral):
    """Named chart windows, always ending at the evaluation instant."""
    SIX_HOURS = "6h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    HALF_YEAR = "180d"


class ClinicalBand(EnumLiteral):
    """Glucose classification used for overlays and summaries."""
    LOW = "LOW"
    TARGET = "TARGET"
    HIGH = "HIGH"


# ===== Errors =====

class DashboardError(ValueError):
    """Base class for errors raised by the dashboard engine."""
    pass


class InvalidTimestamp(DashboardError):
    """Raised when a raw timestamp has no valid interpretation."""
    pass


class UnknownWindow(DashboardError):
    """Raised when a window token is outside the supported set."""
    pass


class InvalidWindowBounds(DashboardError):
    """Raised when a window does not end strictly after it starts."""
    pass


class InvalidValue(DashboardError):
    """Raised when a glucose value is not a usable finite number."""
    pass


class SubmissionRejected(DashboardError):
    """Raised when a read-only session is asked to submit a measurement."""
    pass


# ===== Data Model =====

@dataclass(frozen=True)
class Measurement:
    """One record as delivered by the measurement store.

    The store owns identity and persistence; this engine never mutates records.
    ``timestamp`` is kept exactly as received.
    """
    value: Any
    timestamp: RawTimestamp
    id: Optional[Any] = None
    source: Optional[MeasurementSource] = None

    @classmethod
    def from_record(cls, record: Union["Measurement", Mapping[str, Any]]) -> "Measurement":
        """Build a Measurement from a wire record (mapping) or return it unchanged.

        Unknown source values are kept as None rather than rejected, the source
        is informational only.
        """
        if isinstance(record, Measurement):
            return record
        raw_source = record.get("source")
        try:
            source = MeasurementSource(raw_source) if raw_source is not None else None
        except ValueError:
            source = None
        return cls(
            value=record.get("value"),
            timestamp=record.get("timestamp"),
            id=record.get("id"),
            source=source,
        )


@dataclass(frozen=True)
class NormalizedPoint:
    """A chart point: numeric value at an absolute instant, with its origin record."""
    value: float
    instant: AbsoluteInstant
    source: Measurement


@dataclass(frozen=True)
class Interval:
    """Resolved window bounds, both inclusive for filtering."""
    start: AbsoluteInstant
    end: AbsoluteInstant

    def contains(self, instant: AbsoluteInstant) -> bool:
        return self.start <= instant <= self.end

    @property
    def duration_ms(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class RecordFailure:
    """A record that could not be turned into a chart point."""
    index: int
    record: Any
    error: DashboardError


@dataclass(frozen=True)
class SeriesBuildResult:
    """Chart points plus the records skipped while building them."""
    points: List[NormalizedPoint]
    failures: List[RecordFailure] = field(default_factory=list)


@dataclass(frozen=True)
class BandRegion:
    """Static overlay region for a clinical band; HIGH ends at the display ceiling."""
    band: ClinicalBand
    lower: float
    upper: float


# ===== Collaborator Results =====

@dataclass(frozen=True)
class ErrorInfo:
    """Failure reported by the measurement store."""
    message: str
    status: Optional[int] = None


@dataclass(frozen=True)
class FetchResult:
    """Either ``data`` (list of wire records) or ``error`` is set."""
    data: Optional[List[Any]] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ManualEntry:
    """Payload for submitting a new measurement."""
    value: float
    timestamp: str
    source: MeasurementSource = MeasurementSource.MANUAL_ENTRY

    def to_payload(self) -> dict:
        return {"value": self.value, "timestamp": self.timestamp, "source": str(self.source)}


@dataclass(frozen=True)
class SubmitResult:
    """Either ``data`` (the stored record) or ``error`` is set."""
    data: Optional[Any] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# Simple tuple return type for band summaries: (band, count, share of points)
BandShare = Tuple[ClinicalBand, int, float]


class MeasurementClient(ABC):
    """Abstract source and sink of measurements (the measurement store).

    Implementations report failures as ``ErrorInfo`` values instead of raising.
    The store decides the retention window of ``fetch_recent_measurements``.
    """

    @abstractmethod
    def fetch_recent_measurements(self) -> FetchResult:
        """Fetch recent measurement records.

        Returns:
            FetchResult with the wire records in ``data`` or an ``error``
        """
        pass

    @abstractmethod
    def submit_measurement(self, entry: ManualEntry) -> SubmitResult:
        """Store a newly entered measurement.

        Args:
            entry: Value, UTC ISO-8601 timestamp and source of the new measurement

        Returns:
            SubmitResult with the stored record in ``data`` or an ``error``
        """
        pass


# ============================================================================
# Compatibility Layer: Output Adapters
# ============================================================================

def to_pandas(df: pl.DataFrame) -> "pd.DataFrame":
    """Convert polars DataFrame to pandas.

    Raises:
        ImportError: If pandas and pyarrow are not installed
    """
    if not _PANDAS_AVAILABLE:
        raise ImportError(
            "pandas and pyarrow are required for this function. "
        )
    return df.to_pandas()


def to_polars(df: "pd.DataFrame") -> pl.DataFrame:
    """Convert pandas DataFrame to polars.

    Raises:
        ImportError: If arrow and pandas are not installed
    """
    if not _PANDAS_AVAILABLE:
        raise ImportError(
            "pandas and pyarrow are required for this function. "
        )
    return pl.from_pandas(df)
