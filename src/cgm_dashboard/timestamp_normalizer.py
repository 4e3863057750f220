"""Timestamp normalization for loosely-typed measurement records.

The measurement store delivers timestamps as epoch seconds, epoch milliseconds,
zone-qualified ISO-8601 strings or ISO-8601 strings without any zone. Every
form is normalized to an absolute instant: integer milliseconds since the
Unix epoch, UTC.
"""

import math
import numbers
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Optional

from dateutil import parser as date_parser

from cgm_dashboard.interface.dashboard_interface import (
    AbsoluteInstant,
    InvalidTimestamp,
    RawTimestamp,
    EPOCH_MILLISECONDS_THRESHOLD,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MILLISECOND = timedelta(milliseconds=1)

# Instants representable as a datetime (years 1 to 9999)
MIN_INSTANT = (datetime.min.replace(tzinfo=timezone.utc) - EPOCH) // ONE_MILLISECOND
MAX_INSTANT = (datetime.max.replace(tzinfo=timezone.utc) - EPOCH) // ONE_MILLISECOND

# Local date-time as produced by manual entry, no zone designator
NAIVE_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d{3})?)?$")

# Fills fields missing from free-form date strings; keeps parsing independent of today
_PARSE_DEFAULT = datetime(1970, 1, 1)
_HAS_DIGIT = re.compile(r"\d")
_GROUPED_NUMBER = re.compile(r"^[+-]?\d[\d_]*(\.[\d_]*)?([eE][+-]?\d+)?$")


class TimestampNormalizer:
    """Converts raw timestamps into absolute instants.

    Rules are applied in order, first match wins:
    1. Finite numbers (or numeric strings): epoch seconds below 1e12, epoch milliseconds otherwise
    2. ISO-8601 date-time without zone designator: read as UTC
    3. Any other date-time string: parsed with its own zone (zoneless results read as UTC)

    Anything else raises InvalidTimestamp.
    """

    @classmethod
    def normalize(cls, raw: RawTimestamp) -> AbsoluteInstant:
        """Normalize a raw timestamp.

        Args:
            raw: Timestamp value exactly as found in a measurement record

        Returns:
            Milliseconds since the Unix epoch (UTC)

        Raises:
            InvalidTimestamp: If no rule yields a finite instant within years 1 to 9999
        """
        if raw is None:
            raise InvalidTimestamp("Timestamp is missing")

        if isinstance(raw, datetime):
            return cls._datetime_to_instant(raw)

        number = cls._coerce_number(raw)
        if number is not None:
            return cls._epoch_to_instant(number)

        if isinstance(raw, str):
            return cls._datetime_to_instant(cls._parse_text(raw.strip()))

        raise InvalidTimestamp(f"Unsupported timestamp type {type(raw).__name__}: {raw!r}")

    @classmethod
    def normalize_or_none(cls, raw: RawTimestamp) -> Optional[AbsoluteInstant]:
        """Like normalize(), but returns None instead of raising."""
        try:
            return cls.normalize(raw)
        except InvalidTimestamp:
            return None

    @staticmethod
    def to_iso(instant: AbsoluteInstant) -> str:
        """Render an instant as a zone-qualified ISO-8601 string (``...Z``)."""
        moment = EPOCH + timedelta(milliseconds=instant)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def to_datetime(instant: AbsoluteInstant, tz: Optional[tzinfo] = None) -> datetime:
        """Convert an instant to an aware datetime in ``tz`` (UTC by default)."""
        moment = EPOCH + timedelta(milliseconds=instant)
        return moment.astimezone(tz) if tz is not None else moment

    @staticmethod
    def from_datetime(moment: datetime) -> AbsoluteInstant:
        """Convert a datetime to an instant; naive datetimes are read as UTC."""
        return TimestampNormalizer._datetime_to_instant(moment)

    # ===== Private: Rule Implementations =====

    @staticmethod
    def _coerce_number(raw: Any) -> Optional[float]:
        """Return the finite number ``raw`` stands for, or None."""
        if isinstance(raw, bool):
            return None
        if isinstance(raw, numbers.Integral):
            return int(raw)
        if isinstance(raw, numbers.Real):
            value = float(raw)
            return value if math.isfinite(value) else None
        if isinstance(raw, str):
            text = raw.strip()
            # Python-only digit grouping is not a number on the wire
            if not text or "_" in text:
                return None
            try:
                value = float(text)
            except ValueError:
                return None
            return value if math.isfinite(value) else None
        return None

    @staticmethod
    def _epoch_to_instant(number: float) -> AbsoluteInstant:
        if number < EPOCH_MILLISECONDS_THRESHOLD:
            number = number * 1000
        # int inputs stay exact, floats round to the nearest millisecond
        return TimestampNormalizer._check_range(int(round(number)))

    @staticmethod
    def _parse_text(text: str) -> datetime:
        if _GROUPED_NUMBER.match(text):
            raise InvalidTimestamp(f"Unparseable timestamp: {text!r}")

        if NAIVE_ISO_PATTERN.match(text):
            try:
                return datetime.fromisoformat(text + "Z")
            except ValueError as e:
                raise InvalidTimestamp(f"Invalid date-time {text!r}: {e}") from e

        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass

        # RFC 2822 style and other free-form strings
        if not _HAS_DIGIT.search(text):
            raise InvalidTimestamp(f"Unparseable timestamp: {text!r}")
        try:
            return date_parser.parse(text, default=_PARSE_DEFAULT)
        except (date_parser.ParserError, ValueError, OverflowError) as e:
            raise InvalidTimestamp(f"Unparseable timestamp: {text!r}") from e

    @staticmethod
    def _datetime_to_instant(moment: datetime) -> AbsoluteInstant:
        if moment.tzinfo is None or moment.utcoffset() is None:
            moment = moment.replace(tzinfo=timezone.utc)
        try:
            instant = (moment - EPOCH) // ONE_MILLISECOND
        except OverflowError as e:
            raise InvalidTimestamp(f"Timestamp out of range: {moment!r}") from e
        return TimestampNormalizer._check_range(instant)

    @staticmethod
    def _check_range(instant: int) -> AbsoluteInstant:
        if not MIN_INSTANT <= instant <= MAX_INSTANT:
            raise InvalidTimestamp(f"Timestamp out of range: {instant} ms")
        return instant


def normalize(raw: RawTimestamp) -> AbsoluteInstant:
    """Module-level shortcut for TimestampNormalizer.normalize()."""
    return TimestampNormalizer.normalize(raw)
