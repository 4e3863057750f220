"""Chart windows and axis ticks.

RangeWindowSelector turns a window token into absolute bounds ending at "now";
TickGenerator places axis marks inside those bounds, anchored to the live end
of the window so marks move along with every refresh.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Dict, List, Optional, Union

from dateutil.relativedelta import relativedelta

from cgm_dashboard.interface.dashboard_interface import (
    AbsoluteInstant,
    Interval,
    InvalidWindowBounds,
    UnknownWindow,
    WindowToken,
    MS_HOUR,
    MS_DAY,
)
from cgm_dashboard.timestamp_normalizer import TimestampNormalizer


@dataclass(frozen=True)
class WindowSpec:
    """How far back a window reaches and how its axis is divided.

    Fixed offsets (``calendar=False``) are exact durations; calendar offsets
    are applied to wall-clock dates in the calendar zone.
    """
    token: WindowToken
    offset: relativedelta
    calendar: bool
    tick_step_ms: int


WINDOW_SPECS: Dict[WindowToken, WindowSpec] = {
    WindowToken.SIX_HOURS: WindowSpec(WindowToken.SIX_HOURS, relativedelta(hours=6), False, 2 * MS_HOUR),
    WindowToken.DAY: WindowSpec(WindowToken.DAY, relativedelta(hours=24), False, 4 * MS_HOUR),
    WindowToken.WEEK: WindowSpec(WindowToken.WEEK, relativedelta(days=7), True, MS_DAY),
    WindowToken.MONTH: WindowSpec(WindowToken.MONTH, relativedelta(months=1), True, 7 * MS_DAY),
    WindowToken.HALF_YEAR: WindowSpec(WindowToken.HALF_YEAR, relativedelta(months=6), True, 30 * MS_DAY),
}

Now = Union[AbsoluteInstant, datetime, None]


def window_spec(token: Union[str, WindowToken]) -> WindowSpec:
    """Look up the spec of a window token.

    Raises:
        UnknownWindow: If the token is not one of 6h, 24h, 7d, 30d, 180d
    """
    try:
        return WINDOW_SPECS[WindowToken(token)]
    except (ValueError, KeyError) as e:
        raise UnknownWindow(
            f"Unknown window {token!r}; expected one of {[t.value for t in WindowToken]}"
        ) from e


def current_instant() -> AbsoluteInstant:
    """Current wall-clock time as an instant."""
    return TimestampNormalizer.from_datetime(datetime.now(timezone.utc))


class RangeWindowSelector:
    """Resolves window tokens to absolute intervals ending at ``now``.

    Month-based windows use calendar arithmetic (one month back from 31 March
    is the last day of February), evaluated in ``calendar_tz``.
    """

    def __init__(self, calendar_tz: Optional[tzinfo] = None):
        """Initialize the selector.

        Args:
            calendar_tz: Zone in which calendar offsets (days, months) are applied (default: UTC)
        """
        self.calendar_tz = calendar_tz or timezone.utc

    def resolve(self, token: Union[str, WindowToken], now: Now = None) -> Interval:
        """Resolve a window token.

        Args:
            token: Window token (6h, 24h, 7d, 30d, 180d)
            now: Window end as an instant or aware datetime (default: current time)

        Returns:
            Interval with ``end == now``

        Raises:
            UnknownWindow: If the token is not supported
        """
        spec = window_spec(token)
        end = self._to_instant(now)

        if spec.calendar:
            local_end = TimestampNormalizer.to_datetime(end, self.calendar_tz)
            start = TimestampNormalizer.from_datetime(local_end - spec.offset)
        else:
            utc_end = TimestampNormalizer.to_datetime(end)
            start = TimestampNormalizer.from_datetime(utc_end - spec.offset)

        return Interval(start=start, end=end)

    @staticmethod
    def _to_instant(now: Now) -> AbsoluteInstant:
        if now is None:
            return current_instant()
        if isinstance(now, datetime):
            return TimestampNormalizer.from_datetime(now)
        return int(now)


class TickGenerator:
    """Produces ascending axis ticks for a resolved window."""

    @staticmethod
    def generate(
        start: AbsoluteInstant,
        end: AbsoluteInstant,
        token: Union[str, WindowToken],
    ) -> List[AbsoluteInstant]:
        """Generate axis ticks.

        Walks back from ``end`` in steps of the window's tick step while the
        next mark stays after ``start``, then closes the set with ``start``.

        Args:
            start: Window start
            end: Window end
            token: Window token selecting the tick step

        Returns:
            Strictly ascending instants, first ``start``, last ``end``

        Raises:
            UnknownWindow: If the token is not supported
            InvalidWindowBounds: If ``start >= end``
        """
        step = window_spec(token).tick_step_ms
        if start >= end:
            raise InvalidWindowBounds(f"Window start {start} is not before end {end}")

        ticks = [end]
        tick = end - step
        while tick > start:
            ticks.append(tick)
            tick -= step

        # every collected mark is after start
        ticks.append(start)

        ticks.sort()
        return ticks

    @classmethod
    def for_interval(cls, interval: Interval, token: Union[str, WindowToken]) -> List[AbsoluteInstant]:
        """Generate ticks for an already resolved interval."""
        return cls.generate(interval.start, interval.end, token)


def resolve_window(token: Union[str, WindowToken], now: Now = None) -> Interval:
    """Resolve a window in UTC calendar arithmetic."""
    return RangeWindowSelector().resolve(token, now)


def generate_ticks(start: AbsoluteInstant, end: AbsoluteInstant, token: Union[str, WindowToken]) -> List[AbsoluteInstant]:
    """Module-level shortcut for TickGenerator.generate()."""
    return TickGenerator.generate(start, end, token)
