"""Dashboard configuration.

All settings are passed explicitly; nothing is read from ambient state except
through ``DashboardConfig.from_env``.
"""

import os
from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cgm_dashboard.interface.dashboard_interface import (
    DEFAULT_DISPLAY_TIMEZONE,
    DEFAULT_WINDOW,
    REFRESH_INTERVAL_SECONDS,
    WindowToken,
)
from cgm_dashboard.windowing import window_spec

ENV_PREFIX = "CGM_DASHBOARD_"
SUPPORTED_LOCALES = ("nl", "en")


@dataclass(frozen=True)
class DashboardConfig:
    """Settings of a dashboard session.

    Attributes:
        window: Initial window token
        refresh_interval_seconds: Period of the background refresh
        display_timezone: IANA zone used for labels
        calendar_timezone: IANA zone for calendar window arithmetic (days, months)
        locale: Label language, ``nl`` or ``en``
        delegated: Read-only viewing of someone else's data (no scheduled refresh, no submissions)
    """
    window: WindowToken = WindowToken(DEFAULT_WINDOW)
    refresh_interval_seconds: float = REFRESH_INTERVAL_SECONDS
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE
    calendar_timezone: str = "UTC"
    locale: str = "nl"
    delegated: bool = False

    def __post_init__(self):
        # Raises UnknownWindow for unsupported tokens
        object.__setattr__(self, "window", window_spec(self.window).token)
        if self.refresh_interval_seconds <= 0:
            raise ValueError(f"refresh_interval_seconds must be positive, got {self.refresh_interval_seconds}")
        if self.locale not in SUPPORTED_LOCALES:
            raise ValueError(f"Unsupported locale {self.locale!r}; expected one of {SUPPORTED_LOCALES}")
        # Fail early on unknown zones
        _zone(self.display_timezone)
        _zone(self.calendar_timezone)

    @property
    def display_tz(self) -> tzinfo:
        return _zone(self.display_timezone)

    @property
    def calendar_tz(self) -> tzinfo:
        return _zone(self.calendar_timezone)

    def with_window(self, window: str) -> "DashboardConfig":
        return replace(self, window=window)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DashboardConfig":
        """Build a config from ``CGM_DASHBOARD_*`` variables, defaults for the rest.

        Recognized: WINDOW, REFRESH_INTERVAL_SECONDS, DISPLAY_TIMEZONE,
        CALENDAR_TIMEZONE, LOCALE, DELEGATED (1/true/yes).
        """
        environ = os.environ if environ is None else environ
        kwargs = {}

        def get(name: str) -> Optional[str]:
            value = environ.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        if get("WINDOW"):
            kwargs["window"] = get("WINDOW")
        if get("REFRESH_INTERVAL_SECONDS"):
            kwargs["refresh_interval_seconds"] = float(get("REFRESH_INTERVAL_SECONDS"))
        if get("DISPLAY_TIMEZONE"):
            kwargs["display_timezone"] = get("DISPLAY_TIMEZONE")
        if get("CALENDAR_TIMEZONE"):
            kwargs["calendar_timezone"] = get("CALENDAR_TIMEZONE")
        if get("LOCALE"):
            kwargs["locale"] = get("LOCALE").lower()
        if get("DELEGATED"):
            kwargs["delegated"] = get("DELEGATED").lower() in ("1", "true", "yes")

        return cls(**kwargs)


def _zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone {name!r}") from e
