"""
Appointment Cache - Key-based cache with absolute expiry and single-flight fetches.

Sits between the query facade and Microsoft Graph so repeated requests for the
same day (or range) don't each cost an upstream call.

Guarantees:
===========
1. A live entry is served without calling the fetch function
2. Concurrent misses on one key share a single fetch (single-flight)
3. A failed fetch stores nothing; every waiter sees the error
4. A cancelled caller stops waiting, the shared fetch keeps running
5. An entry is never served at or after its expiry instant
6. After invalidate, the next miss starts a new fetch; an older fetch
   still running for the key never stores its result

Expiry is lazy: entries are checked when read, there is no sweeper.

Usage:
    cache = AppointmentCache(duration=timedelta(minutes=5))

    appointments = await cache.get_or_fetch(
        "appointments_today_20250115",
        lambda: service.get_todays_appointments(),
    )
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple

from app.core.timezone import Clock, utc_now
from app.schemas.appointment import Appointment


logger = logging.getLogger("eventcal.services.cache")


MIN_DURATION = timedelta(minutes=1)
MAX_DURATION = timedelta(minutes=1440)

FetchFunction = Callable[[], Awaitable[Sequence[Appointment]]]


@dataclass(frozen=True)
class CacheEntry:
    """One cached result set."""
    appointments: Tuple[Appointment, ...]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class AppointmentCache:
    """
    Process-local appointment cache.

    The store is shared by every request; mutations happen under a
    threading.Lock. In-flight fetches are asyncio Tasks keyed like the store.
    """

    def __init__(self, duration: timedelta, clock: Clock = utc_now):
        """
        Initialize the cache.

        Args:
            duration: Lifetime of an entry (1 to 1440 minutes)
            clock: Returns the current aware datetime (tests inject a fake)

        Raises:
            ValueError: If duration is outside the allowed bounds
        """
        if not MIN_DURATION <= duration <= MAX_DURATION:
            raise ValueError(
                f"Cache duration must be between 1 and 1440 minutes, got {duration}"
            )

        self.duration = duration
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._in_flight: Dict[str, asyncio.Task] = {}
        # Bumped by invalidate; a fetch stores its result only if unchanged
        self._generations: Dict[str, int] = {}

    @property
    def in_flight_count(self) -> int:
        """Number of fetches currently running."""
        return len(self._in_flight)

    def get(self, key: str) -> Optional[Tuple[Appointment, ...]]:
        """
        Return the live entry for key, or None.

        An expired entry is dropped on the way.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            return entry.appointments

    def set(self, key: str, appointments: Sequence[Appointment]) -> CacheEntry:
        """Store appointments under key with a fresh expiry."""
        now = self._clock()
        entry = CacheEntry(
            appointments=tuple(appointments),
            created_at=now,
            expires_at=now + self.duration,
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> bool:
        """
        Remove the entry for key and detach any fetch running for it.

        A detached fetch still completes for the callers already waiting on
        it, but its result is not stored and later callers start a new one.

        Returns:
            True if an entry or a running fetch was dropped
        """
        with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            removed = self._entries.pop(key, None) is not None
            detached = self._in_flight.pop(key, None) is not None
        if removed or detached:
            logger.info(f"Cache entry invalidated: {key}")
        return removed or detached

    async def get_or_fetch(self, key: str, fetch: FetchFunction) -> Tuple[Appointment, ...]:
        """
        Return the cached appointments for key, fetching them on a miss.

        Args:
            key: Cache key
            fetch: Coroutine factory producing the appointments

        Returns:
            The cached or freshly fetched appointments

        Raises:
            Whatever fetch raises; nothing is cached in that case
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        with self._lock:
            task = self._in_flight.get(key)
            if task is None:
                generation = self._generations.get(key, 0)
                task = asyncio.create_task(self._fetch_and_store(key, fetch, generation))
                self._in_flight[key] = task
                started = True
            else:
                started = False

        if started:
            logger.info(f"Cache miss, fetching: {key}")
            task.add_done_callback(lambda t: self._fetch_done(key, t))
        else:
            logger.debug(f"Joining in-flight fetch: {key}")

        # Shielded so a cancelled caller doesn't cancel the fetch for the others
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self, key: str, fetch: FetchFunction, generation: int
    ) -> Tuple[Appointment, ...]:
        appointments = tuple(await fetch())
        if self._generations.get(key, 0) != generation:
            logger.info(f"Cache cleared during fetch, result not stored: {key}")
            return appointments
        entry = self.set(key, appointments)
        logger.info(f"Cached {len(entry.appointments)} appointments: {key}")
        return entry.appointments

    def _fetch_done(self, key: str, task: asyncio.Task) -> None:
        with self._lock:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Fetch failed, nothing cached for {key}: {error}")
