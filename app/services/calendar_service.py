"""
Calendar Service - The appointment query surface.

CalendarService is the capability set the HTTP layer talks to:

    get_todays_appointments()            -> appointments for local today
    get_range_of_appointments(start, end) -> appointments overlapping the range
    clear_cache()                         -> drop cached results, if any

Two implementations exist and are chosen when the app is wired (CACHE_ENABLED):

- GraphCalendarService: reads Microsoft Graph directly (this module)
- CachedCalendarService: wraps another CalendarService with AppointmentCache
  (app.services.cached_calendar_service)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, tzinfo
from typing import List, Optional, Sequence, Tuple

from app.core.timezone import Clock, ensure_aware, get_local_timezone, utc_now
from app.environments.base import CalendarNotFoundError
from app.environments.microsoft.calendar.client import GraphCalendarClient
from app.schemas.appointment import Appointment
from app.services.errors import InvalidRangeError
from app.services.event_normalizer import EventNormalizer


logger = logging.getLogger("eventcal.services.calendar")


# "Today" runs from local midnight to 23:59
END_OF_DAY_OFFSET = timedelta(hours=23, minutes=59)


def todays_range(now: datetime, local_timezone: tzinfo) -> Tuple[datetime, datetime]:
    """Local midnight of now's date and midnight + 23h59m."""
    local_now = ensure_aware(now, local_timezone).astimezone(local_timezone)
    midnight = datetime.combine(local_now.date(), time.min, tzinfo=local_timezone)
    return midnight, midnight + END_OF_DAY_OFFSET


def validate_range(start: datetime, end: datetime, local_timezone: tzinfo) -> Tuple[datetime, datetime]:
    """
    Check that end is not before start.

    Naive values are read in local_timezone.

    Returns:
        (start, end) as aware datetimes

    Raises:
        InvalidRangeError: If end < start (equal bounds are allowed)
    """
    start = ensure_aware(start, local_timezone)
    end = ensure_aware(end, local_timezone)
    if end < start:
        raise InvalidRangeError()
    return start, end


class CalendarService(ABC):
    """Abstract appointment source."""

    @abstractmethod
    async def get_todays_appointments(self) -> Sequence[Appointment]:
        pass

    @abstractmethod
    async def get_range_of_appointments(self, start: datetime, end: datetime) -> Sequence[Appointment]:
        """
        Appointments overlapping [start, end].

        Raises:
            InvalidRangeError: If end < start
        """
        pass

    async def clear_cache(self) -> bool:
        """
        Drop cached appointments.

        Returns:
            True if this service caches (and was cleared), False otherwise
        """
        return False


class GraphCalendarService(CalendarService):
    """
    CalendarService reading the configured Graph calendar on every call.

    The calendar id is looked up by display name on first use and kept for
    the life of the process.
    """

    def __init__(
        self,
        client: GraphCalendarClient,
        normalizer: EventNormalizer,
        calendar_name: str,
        local_timezone: Optional[tzinfo] = None,
        clock: Optional[Clock] = None,
    ):
        self.client = client
        self.normalizer = normalizer
        self.calendar_name = calendar_name
        self.local_timezone = local_timezone or get_local_timezone()
        self._clock = clock or utc_now
        self._calendar_id: Optional[str] = None
        self._calendar_id_lock = asyncio.Lock()

    async def get_todays_appointments(self) -> List[Appointment]:
        start, end = todays_range(self._clock(), self.local_timezone)
        return await self._fetch(start, end)

    async def get_range_of_appointments(self, start: datetime, end: datetime) -> List[Appointment]:
        start, end = validate_range(start, end, self.local_timezone)
        return await self._fetch(start, end)

    async def get_calendar_id(self) -> str:
        """
        Graph id of the configured calendar, resolved once.

        Raises:
            CalendarNotFoundError: If the mailbox has no calendar with that name
        """
        if self._calendar_id is not None:
            return self._calendar_id

        async with self._calendar_id_lock:
            if self._calendar_id is None:
                try:
                    self._calendar_id = await self.client.resolve_calendar_id(self.calendar_name)
                except CalendarNotFoundError:
                    logger.critical(
                        f"Configured calendar '{self.calendar_name}' was not found, check GRAPH_CALENDAR_NAME"
                    )
                    raise
        return self._calendar_id

    async def _fetch(self, start: datetime, end: datetime) -> List[Appointment]:
        calendar_id = await self.get_calendar_id()
        events = await self.client.list_calendar_view(calendar_id, start, end)
        appointments = self.normalizer.normalize_many(events)
        logger.info(f"Loaded {len(appointments)} appointments from {start.date()} to {end.date()}")
        return appointments
