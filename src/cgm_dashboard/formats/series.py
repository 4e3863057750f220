"""Chart series frame format.

Layout of the polars frame produced by ``SeriesBuilder.to_frame``: one row per
chart point, ascending by ``instant``.
"""

import polars as pl

from cgm_dashboard.interface.schema import ColumnSchema, SeriesSchemaDefinition, EnumLiteral
from cgm_dashboard.interface.dashboard_interface import ClinicalBand, RANGE_TOP


class SeriesColumn(EnumLiteral):
    """Column names of the chart series frame."""
    MEASUREMENT_ID = "measurement_id"
    SOURCE = "source"
    INSTANT = "instant"
    DATETIME = "datetime"
    GLUCOSE = "glucose"
    BAND = "band"


BAND_DTYPE = pl.Enum([band.value for band in ClinicalBand])

_SERVICE_COLUMNS: list[ColumnSchema] = [
    {
        "name": SeriesColumn.MEASUREMENT_ID.value,
        "dtype": pl.Utf8,
        "description": "Identifier assigned by the measurement store (null for ad-hoc records)",
    },
    {
        "name": SeriesColumn.SOURCE.value,
        "dtype": pl.Utf8,
        "description": "MANUAL_ENTRY, IMPORTED or DEVICE_SYNCED",
    },
]

_DATA_COLUMNS: list[ColumnSchema] = [
    {
        "name": SeriesColumn.INSTANT.value,
        "dtype": pl.Int64,
        "description": "Milliseconds since the Unix epoch",
        "unit": "ms",
    },
    {
        "name": SeriesColumn.DATETIME.value,
        "dtype": pl.Datetime("ms", "UTC"),
        "description": "Point time as a UTC datetime",
    },
    {
        "name": SeriesColumn.GLUCOSE.value,
        "dtype": pl.Float64,
        "description": "Glucose value",
        "unit": "mmol/L",
        "constraints": {"displayMaximum": RANGE_TOP},
    },
    {
        "name": SeriesColumn.BAND.value,
        "dtype": BAND_DTYPE,
        "description": "Clinical band: LOW, TARGET or HIGH",
    },
]

SERIES_SCHEMA = SeriesSchemaDefinition(
    service_columns=_SERVICE_COLUMNS,
    data_columns=_DATA_COLUMNS,
)
