"""Clinical band classification of glucose values (mmol/L).

LOW is below 3.9, TARGET is [3.9, 10.0), HIGH is 10.0 and above. The 20.0
ceiling only clips overlays; values above it remain HIGH.
"""

import math
import numbers
from typing import List, Union

import polars as pl

from cgm_dashboard.interface.dashboard_interface import (
    BandRegion,
    BandShare,
    ClinicalBand,
    InvalidValue,
    RANGE_HIGH_MIN,
    RANGE_LOW_MAX,
    RANGE_TOP,
)


class RangeClassifier:
    """Classifies glucose values against the clinical bands.

    Thresholds default to the standard consensus targets and can be
    overridden per instance.
    """

    def __init__(
        self,
        low_max: float = RANGE_LOW_MAX,
        high_min: float = RANGE_HIGH_MIN,
        display_top: float = RANGE_TOP,
    ):
        """Initialize the classifier.

        Args:
            low_max: Lowest TARGET value (values below are LOW)
            high_min: Lowest HIGH value (values below are TARGET)
            display_top: Overlay ceiling, used by clip_for_display() only
        """
        if not low_max < high_min <= display_top:
            raise ValueError(
                f"Band thresholds must satisfy low_max < high_min <= display_top, "
                f"got {low_max}, {high_min}, {display_top}"
            )
        self.low_max = low_max
        self.high_min = high_min
        self.display_top = display_top

    def classify(self, value: Union[int, float]) -> ClinicalBand:
        """Classify a single value.

        Raises:
            InvalidValue: If value is not a finite number
        """
        value = self._finite(value)
        if value < self.low_max:
            return ClinicalBand.LOW
        if value < self.high_min:
            return ClinicalBand.TARGET
        return ClinicalBand.HIGH

    def overlay_regions(self) -> List[BandRegion]:
        """Static regions for chart overlays, ascending."""
        return [
            BandRegion(ClinicalBand.LOW, 0.0, self.low_max),
            BandRegion(ClinicalBand.TARGET, self.low_max, self.high_min),
            BandRegion(ClinicalBand.HIGH, self.high_min, self.display_top),
        ]

    def clip_for_display(self, value: Union[int, float]) -> float:
        """Clip a value into [0, display_top] for rendering; classification is unaffected."""
        value = self._finite(value)
        return min(max(value, 0.0), self.display_top)

    def band_expression(self, column: str = "glucose") -> pl.Expr:
        """Polars expression classifying ``column`` (nulls and NaN stay null).

        Returns:
            Expression producing band names, aliased to ``band``
        """
        value = pl.col(column).cast(pl.Float64)
        return (
            pl.when(value.is_null() | value.is_nan())
            .then(pl.lit(None, dtype=pl.Utf8))
            .when(value < self.low_max)
            .then(pl.lit(ClinicalBand.LOW.value))
            .when(value < self.high_min)
            .then(pl.lit(ClinicalBand.TARGET.value))
            .otherwise(pl.lit(ClinicalBand.HIGH.value))
            .alias("band")
        )

    def band_distribution(self, frame: pl.DataFrame, column: str = "glucose") -> List[BandShare]:
        """Count and share of points per band (time-in-range style summary).

        Args:
            frame: Frame with a numeric ``column``
            column: Glucose column name

        Returns:
            One (band, count, share) tuple per band in LOW, TARGET, HIGH order;
            shares are 0.0 when the frame has no classifiable values
        """
        counts = (
            frame
            .select(self.band_expression(column))
            .drop_nulls()
            .group_by("band")
            .agg(pl.len().alias("count"))
        )
        by_band = {row["band"]: row["count"] for row in counts.iter_rows(named=True)}
        total = sum(by_band.values())

        return [
            (band, by_band.get(band.value, 0), by_band.get(band.value, 0) / total if total else 0.0)
            for band in ClinicalBand
        ]

    @staticmethod
    def _finite(value) -> float:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidValue(f"Glucose value must be a number, got {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise InvalidValue(f"Glucose value must be finite, got {value!r}")
        return value


DEFAULT_CLASSIFIER = RangeClassifier()


def classify(value: Union[int, float]) -> ClinicalBand:
    """Classify a value with the default thresholds."""
    return DEFAULT_CLASSIFIER.classify(value)
