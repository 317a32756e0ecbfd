"""
Cached Calendar Service - CalendarService decorator backed by AppointmentCache.

Cache keys:
    today -> appointments_today_YYYYMMDD                (local date)
    range -> appointments_range_YYYYMMDD_YYYYMMDD       (local dates)

The today key changes at local midnight, so yesterday's entry simply stops
being asked for. clear_cache() only removes today's entry; range entries run
out on their own.
"""

import logging
from datetime import date, datetime, tzinfo
from typing import Optional, Sequence, Tuple

from app.core.timezone import Clock, get_local_timezone, utc_now
from app.schemas.appointment import Appointment
from app.services.appointment_cache import AppointmentCache
from app.services.calendar_service import CalendarService, validate_range


logger = logging.getLogger("eventcal.services.cache")


TODAY_KEY_PREFIX = "appointments_today_"
RANGE_KEY_PREFIX = "appointments_range_"


def today_cache_key(today: date) -> str:
    return f"{TODAY_KEY_PREFIX}{today:%Y%m%d}"


def range_cache_key(start: date, end: date) -> str:
    return f"{RANGE_KEY_PREFIX}{start:%Y%m%d}_{end:%Y%m%d}"


class CachedCalendarService(CalendarService):
    """
    Routes queries through an AppointmentCache, delegating misses to inner.

    Attributes:
        inner: The CalendarService that actually fetches
        cache: Shared AppointmentCache
    """

    def __init__(
        self,
        inner: CalendarService,
        cache: AppointmentCache,
        local_timezone: Optional[tzinfo] = None,
        clock: Optional[Clock] = None,
    ):
        self.inner = inner
        self.cache = cache
        self.local_timezone = local_timezone or get_local_timezone()
        self._clock = clock or utc_now

    def _local_today(self) -> date:
        return self._clock().astimezone(self.local_timezone).date()

    def current_today_key(self) -> str:
        return today_cache_key(self._local_today())

    async def get_todays_appointments(self) -> Tuple[Appointment, ...]:
        return await self.cache.get_or_fetch(
            self.current_today_key(),
            self.inner.get_todays_appointments,
        )

    async def get_range_of_appointments(self, start: datetime, end: datetime) -> Tuple[Appointment, ...]:
        # Rejected before touching the cache so a bad range never occupies a key
        start, end = validate_range(start, end, self.local_timezone)
        key = range_cache_key(
            start.astimezone(self.local_timezone).date(),
            end.astimezone(self.local_timezone).date(),
        )
        return await self.cache.get_or_fetch(
            key,
            lambda: self.inner.get_range_of_appointments(start, end),
        )

    async def clear_cache(self) -> bool:
        key = self.current_today_key()
        self.cache.invalidate(key)
        logger.warning(f"Appointment cache cleared manually ({key})")
        return True
