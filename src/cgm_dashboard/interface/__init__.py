"""Interface package for the glucose dashboard engine.

This package provides the data model, collaborator contracts and errors
shared by every stage of the engine.
"""

from cgm_dashboard.interface.schema import (
    EnumLiteral,
    ColumnSchema,
    SeriesSchemaDefinition,
)
from cgm_dashboard.interface.dashboard_interface import (
    MeasurementSource,
    WindowToken,
    ClinicalBand,
    Measurement,
    NormalizedPoint,
    Interval,
    RecordFailure,
    SeriesBuildResult,
    BandRegion,
    BandShare,
    ErrorInfo,
    FetchResult,
    ManualEntry,
    SubmitResult,
    MeasurementClient,
    DashboardError,
    InvalidTimestamp,
    UnknownWindow,
    InvalidWindowBounds,
    InvalidValue,
    SubmissionRejected,
    AbsoluteInstant,
    RawTimestamp,
    RANGE_LOW_MAX,
    RANGE_HIGH_MIN,
    RANGE_TOP,
    REFRESH_INTERVAL_SECONDS,
    to_pandas,
    to_polars,
)

__all__ = [
    # Schema definitions
    "EnumLiteral",
    "ColumnSchema",
    "SeriesSchemaDefinition",
    # Data model
    "MeasurementSource",
    "WindowToken",
    "ClinicalBand",
    "Measurement",
    "NormalizedPoint",
    "Interval",
    "RecordFailure",
    "SeriesBuildResult",
    "BandRegion",
    "BandShare",
    "AbsoluteInstant",
    "RawTimestamp",
    # Collaborators
    "ErrorInfo",
    "FetchResult",
    "ManualEntry",
    "SubmitResult",
    "MeasurementClient",
    # Exceptions
    "DashboardError",
    "InvalidTimestamp",
    "UnknownWindow",
    "InvalidWindowBounds",
    "InvalidValue",
    "SubmissionRejected",
    # Constants
    "RANGE_LOW_MAX",
    "RANGE_HIGH_MIN",
    "RANGE_TOP",
    "REFRESH_INTERVAL_SECONDS",
    # Conversion utilities
    "to_pandas",
    "to_polars",
]
