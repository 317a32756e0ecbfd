"""
Time zone helpers shared by the services and routers.

"Local" means the zone the service presents appointments in: the TIMEZONE
setting when set, otherwise the host's zone with its daylight-saving rules.
"""

import logging
import time
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings


logger = logging.getLogger("eventcal.core.timezone")


# A clock returns the current instant as an aware datetime
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


@lru_cache(maxsize=64)
def get_zone(name: Optional[str]) -> tzinfo:
    """
    Look up a zone by name, falling back to UTC.

    Graph may report zones this host does not know about (Windows names
    such as "Pacific Standard Time"); those are read as UTC.
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug(f"Unknown time zone '{name}', using UTC")
        return timezone.utc


_UNIX_EPOCH = datetime(1970, 1, 1)


class HostTimezone(tzinfo):
    """
    The host's zone, with its daylight-saving rules.

    Offsets are looked up per value through the C library (time.localtime),
    so a January date and a July date each get their own offset. Follows the
    TZ environment variable after time.tzset().
    """

    def utcoffset(self, dt: datetime) -> timedelta:
        local = self._local(dt)
        if local is None:
            return timedelta(seconds=-time.timezone)
        return timedelta(seconds=local.tm_gmtoff)

    def dst(self, dt: datetime) -> timedelta:
        local = self._local(dt)
        if local is None or local.tm_isdst <= 0:
            return timedelta(0)
        return timedelta(seconds=local.tm_gmtoff + time.timezone)

    def tzname(self, dt: datetime) -> str:
        local = self._local(dt)
        if local is None:
            return time.tzname[0]
        return local.tm_zone

    def fromutc(self, dt: datetime) -> datetime:
        stamp = (dt.replace(tzinfo=None) - _UNIX_EPOCH) // timedelta(seconds=1)
        try:
            local = time.localtime(stamp)
        except (OverflowError, ValueError, OSError):
            return (dt + timedelta(seconds=-time.timezone)).replace(tzinfo=self)

        # Clocks went back within the last hour: this is the repeated wall time
        gap = time.localtime(stamp - 3600).tm_gmtoff - local.tm_gmtoff
        fold = int(gap > 0 and time.localtime(stamp - gap)[:6] == local[:6])

        return datetime(*local[:6], microsecond=dt.microsecond, tzinfo=self, fold=fold)

    @staticmethod
    def _local(dt: datetime) -> Optional[time.struct_time]:
        try:
            stamp = time.mktime((dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, 0, 0, -1))
            return time.localtime(stamp)
        except (OverflowError, ValueError, OSError):
            # Outside the platform's time_t range
            return None

    def __repr__(self) -> str:
        return "HostTimezone()"


HOST_TIMEZONE = HostTimezone()


def get_local_timezone(name: Optional[str] = None) -> tzinfo:
    """
    Zone appointments are presented in.

    Args:
        name: IANA zone name (defaults to settings.TIMEZONE, then the host zone)
    """
    name = name or settings.TIMEZONE
    if name:
        return get_zone(name)
    return HOST_TIMEZONE


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    """Attach tz to naive datetimes; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value
