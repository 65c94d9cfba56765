"""Wall-clock and calendar capability injected into the engine."""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

import structlog

logger = structlog.get_logger()


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


def next_midnight(moment: datetime) -> datetime:
    """Start of the calendar day after ``moment``, in the same timezone."""
    tomorrow = moment.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=moment.tzinfo)


class SystemClock:
    """Timezone-aware system clock.

    Args:
        timezone: IANA timezone name. None uses the machine's local zone.
    """

    def __init__(self, timezone: str | None = None):
        self._tz: tzinfo | None = None
        if timezone:
            try:
                self._tz = ZoneInfo(timezone)
            except (KeyError, ValueError) as e:
                logger.warning("invalid_timezone", timezone=timezone, error=str(e))

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given moment; tests move it with ``advance``."""

    def __init__(self, moment: datetime):
        if moment.tzinfo is None:
            moment = moment.astimezone()
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def today(self) -> date:
        return self._moment.date()

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.astimezone()
        self._moment = moment

    def advance(self, **kwargs: float) -> datetime:
        self._moment += timedelta(**kwargs)
        return self._moment
