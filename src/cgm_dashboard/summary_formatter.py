"""Human-facing labels for the dashboard.

Presentation only: nothing here feeds back into series construction. Labels
exist in Dutch (the portal's language) and English.
"""

import math
from datetime import timezone, tzinfo
from typing import Dict, Optional, Union

from cgm_dashboard.interface.dashboard_interface import (
    AbsoluteInstant,
    RawTimestamp,
    WindowToken,
)
from cgm_dashboard.timestamp_normalizer import TimestampNormalizer
from cgm_dashboard.windowing import window_spec

# (seconds per unit, label key), largest unit first
RELATIVE_UNITS = (
    (365 * 24 * 3600, "year"),
    (30 * 24 * 3600, "month"),
    (24 * 3600, "day"),
    (3600, "hour"),
    (60, "minute"),
)

MISSING = "—"

_LABELS: Dict[str, Dict[str, str]] = {
    "nl": {
        "year": "{n} jaar geleden",
        "years": "{n} jaar geleden",
        "month": "{n} maand geleden",
        "months": "{n} maanden geleden",
        "day": "{n} dag geleden",
        "days": "{n} dagen geleden",
        "hour": "{n} uur geleden",
        "hours": "{n} uur geleden",
        "minute": "{n} minuut geleden",
        "minutes": "{n} minuten geleden",
        "just_now": "Zojuist",
        "never": "Nooit",
        "title": "Glucoseverloop",
    },
    "en": {
        "year": "{n} year ago",
        "years": "{n} years ago",
        "month": "{n} month ago",
        "months": "{n} months ago",
        "day": "{n} day ago",
        "days": "{n} days ago",
        "hour": "{n} hour ago",
        "hours": "{n} hours ago",
        "minute": "{n} minute ago",
        "minutes": "{n} minutes ago",
        "just_now": "Just now",
        "never": "Never",
        "title": "Glucose trend",
    },
}

_CHART_TITLES: Dict[str, Dict[WindowToken, str]] = {
    "nl": {
        WindowToken.SIX_HOURS: "Glucoseverloop (laatste 6 uur)",
        WindowToken.DAY: "Glucoseverloop (laatste 24 uur)",
        WindowToken.WEEK: "Glucoseverloop (laatste 7 dagen)",
        WindowToken.MONTH: "Glucoseverloop (laatste 30 dagen)",
        WindowToken.HALF_YEAR: "Glucoseverloop (laatste 6 maanden)",
    },
    "en": {
        WindowToken.SIX_HOURS: "Glucose trend (last 6 hours)",
        WindowToken.DAY: "Glucose trend (last 24 hours)",
        WindowToken.WEEK: "Glucose trend (last 7 days)",
        WindowToken.MONTH: "Glucose trend (last 30 days)",
        WindowToken.HALF_YEAR: "Glucose trend (last 6 months)",
    },
}

_MONTHS_SHORT = {
    "nl": ("jan", "feb", "mrt", "apr", "mei", "jun", "jul", "aug", "sep", "okt", "nov", "dec"),
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
}

_MONTHS_LONG = {
    "nl": ("januari", "februari", "maart", "april", "mei", "juni",
           "juli", "augustus", "september", "oktober", "november", "december"),
    "en": ("January", "February", "March", "April", "May", "June",
           "July", "August", "September", "October", "November", "December"),
}


def relative_label(
    instant: Optional[AbsoluteInstant],
    now: AbsoluteInstant,
    locale: str = "nl",
) -> str:
    """Describe how long ago ``instant`` was, in the largest whole unit.

    Units are years (365 days), months (30 days), days, hours and minutes;
    below one minute (or for instants after ``now``) the "just now" label is used.

    Args:
        instant: Moment to describe, None when it never happened
        now: Reference moment
        locale: ``nl`` or ``en``

    Returns:
        Label such as "3 dagen geleden"
    """
    labels = _LABELS[locale]
    if instant is None:
        return labels["never"]

    seconds = (now - instant) // 1000
    for unit_seconds, key in RELATIVE_UNITS:
        count = seconds // unit_seconds
        if count >= 1:
            form = key if count == 1 else key + "s"
            return labels[form].format(n=count)

    return labels["just_now"]


class SummaryFormatter:
    """Formats instants and values for the chart, tooltip and measurement table."""

    def __init__(self, locale: str = "nl", tz: Optional[tzinfo] = None):
        """Initialize the formatter.

        Args:
            locale: ``nl`` or ``en``
            tz: Display zone (default: UTC)
        """
        if locale not in _LABELS:
            raise ValueError(f"Unsupported locale {locale!r}")
        self.locale = locale
        self.tz = tz or timezone.utc

    def relative_label(self, instant: Optional[AbsoluteInstant], now: AbsoluteInstant) -> str:
        return relative_label(instant, now, self.locale)

    def chart_title(self, token: Union[str, WindowToken, None]) -> str:
        if token is None:
            return _LABELS[self.locale]["title"]
        return _CHART_TITLES[self.locale][window_spec(token).token]

    def tick_label(self, instant: AbsoluteInstant, token: Union[str, WindowToken]) -> str:
        """Axis label: time of day for hour windows, day and month otherwise."""
        spec = window_spec(token)
        moment = TimestampNormalizer.to_datetime(instant, self.tz)

        if spec.token in (WindowToken.SIX_HOURS, WindowToken.DAY):
            return moment.strftime("%H:%M")
        if spec.token == WindowToken.WEEK:
            return f"{moment.day} {_MONTHS_SHORT[self.locale][moment.month - 1]}"
        if self.locale == "nl":
            return f"{moment.day}-{moment.month}"
        return f"{moment.month}/{moment.day}"

    def tooltip_date(self, instant: AbsoluteInstant) -> str:
        moment = TimestampNormalizer.to_datetime(instant, self.tz)
        month = _MONTHS_LONG[self.locale][moment.month - 1]
        if self.locale == "nl":
            return f"{moment.day} {month}, {moment:%H:%M}"
        return f"{month} {moment.day}, {moment:%H:%M}"

    @staticmethod
    def value_label(value: float) -> str:
        """Glucose value with unit, one decimal."""
        if value is None or not math.isfinite(value):
            return MISSING
        return f"{value:.1f} mmol/L"

    def table_timestamp(self, raw: RawTimestamp) -> str:
        """Date and time for the measurement table; unparseable timestamps render as a dash."""
        instant = TimestampNormalizer.normalize_or_none(raw)
        if instant is None:
            return MISSING
        return self.datetime_label(instant)

    def datetime_label(self, instant: AbsoluteInstant) -> str:
        moment = TimestampNormalizer.to_datetime(instant, self.tz)
        if self.locale == "nl":
            return moment.strftime("%d-%m-%Y %H:%M")
        return moment.strftime("%d/%m/%Y %H:%M")
