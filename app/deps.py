"""
Dependencies module - reusable FastAPI dependencies for route handlers.

Services live for the whole process: each provider below builds its object
once (lru_cache) and hands the same instance to every request. Tests swap
them with app.dependency_overrides.
"""

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status

from app.core.config import settings
from app.core.timezone import get_local_timezone
from app.environments.microsoft import GraphAuthClient, GraphCalendarClient
from app.services.appointment_cache import AppointmentCache
from app.services.cached_calendar_service import CachedCalendarService
from app.services.calendar_service import CalendarService, GraphCalendarService
from app.services.category_service import CategoryService
from app.services.event_normalizer import EventNormalizer


logger = logging.getLogger("eventcal.deps")


@lru_cache(maxsize=1)
def get_category_service() -> CategoryService:
    """
    The process-wide category set.

    Built from CATEGORIES plus CATEGORIES_FILE (hot-reloaded).
    """
    return CategoryService(
        overrides=settings.CATEGORIES,
        source_path=settings.CATEGORIES_FILE,
        reload_interval_seconds=settings.CATEGORIES_RELOAD_SECONDS,
    )


@lru_cache(maxsize=1)
def _build_calendar_service() -> CalendarService:
    local_timezone = get_local_timezone()

    auth_client = GraphAuthClient()
    client = GraphCalendarClient(token_provider=auth_client)
    normalizer = EventNormalizer(get_category_service(), local_timezone=local_timezone)

    service: CalendarService = GraphCalendarService(
        client=client,
        normalizer=normalizer,
        calendar_name=settings.GRAPH_CALENDAR_NAME,
        local_timezone=local_timezone,
    )

    # The caching decorator is chosen here, once; callers never check which one they got
    if settings.CACHE_ENABLED:
        cache = AppointmentCache(duration=timedelta(minutes=settings.CACHE_DURATION_MINUTES))
        service = CachedCalendarService(service, cache, local_timezone=local_timezone)
        logger.info(f"Appointment cache enabled ({settings.CACHE_DURATION_MINUTES} minutes)")
    else:
        logger.info("Appointment cache disabled")

    return service


def get_configured_calendar_service() -> Optional[CalendarService]:
    """
    The appointment query service, or None while Graph is not configured.

    For routes that must answer even without Graph (cache clear).
    """
    missing = settings.get_missing_graph_settings()
    if missing:
        # Setting names only, never their values
        logger.critical(f"Calendar service unavailable, missing settings: {', '.join(missing)}")
        return None
    return _build_calendar_service()


def get_calendar_service(
    service: Optional[CalendarService] = Depends(get_configured_calendar_service),
) -> CalendarService:
    """
    The appointment query service.

    Raises:
        500 Internal Server Error: If the Graph settings are incomplete
    """
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="The calendar service is not configured.",
        )
    return service
