"""
Appointments router - today's and ranged appointments for the display clients.

Endpoints:
==========
- GET /api/appointments                                  → today's appointments
- GET /api/appointments?startDate=...&endDate=...        → appointments in a range
- GET /api/appointments/cache/clear                      → drop today's cached result

Dates are ISO 8601 ("2025-01-15" or "2025-01-15T08:00:00"); values without
an offset are local time.

Error mapping:
==============
- Bad or incomplete query         → 400 with the reason
- Calendar not found              → 500, generic message (misconfiguration)
- Graph / token failures          → 502, generic message
- Missing Graph configuration     → 500, generic message

Messages never include tenant, client or mailbox identifiers.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.environments.base import (
    APIError,
    AuthenticationError,
    CalendarNotFoundError,
    ConfigurationError,
)
from app.schemas.appointment import Appointment
from app.services.calendar_service import CalendarService
from app.services.errors import QueryValidationError
from app.deps import get_calendar_service, get_configured_calendar_service


logger = logging.getLogger("eventcal.routers.appointments")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/api/appointments", tags=["appointments"])


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------

def parse_query_date(name: str, value: str) -> datetime:
    """
    Parse a startDate/endDate query value.

    Raises:
        QueryValidationError: If the value is not an ISO date or datetime
    """
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise QueryValidationError(f"{name} must be an ISO 8601 date, got '{value}'.")


def http_error_for(error: Exception) -> HTTPException:
    """Translate a service error into the HTTP error the client sees."""
    if isinstance(error, QueryValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    if isinstance(error, CalendarNotFoundError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="The configured calendar could not be found.",
        )

    if isinstance(error, ConfigurationError):
        logger.critical(f"Calendar provider is misconfigured: {error}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="The calendar service is not configured.",
        )

    if isinstance(error, (APIError, AuthenticationError)):
        logger.error(f"Calendar provider request failed: {error}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to retrieve appointments from the calendar provider.",
        )

    logger.exception(f"Unexpected error loading appointments: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to retrieve appointments.",
    )


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.get("", response_model=List[Appointment])
async def get_appointments(
    start_date: Optional[str] = Query(None, alias="startDate", description="Range start (ISO 8601)"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Range end (ISO 8601)"),
    service: CalendarService = Depends(get_calendar_service),
):
    """
    Get appointments.

    Without parameters returns today's appointments (local midnight to 23:59).
    With startDate and endDate returns appointments overlapping the range;
    both must be given and endDate must not be before startDate.

    Returns:
        List of appointments with start/end as epoch milliseconds
    """
    try:
        if start_date is None and end_date is None:
            return list(await service.get_todays_appointments())

        if start_date is None or end_date is None:
            raise QueryValidationError("Both startDate and endDate must be provided together.")

        start = parse_query_date("startDate", start_date)
        end = parse_query_date("endDate", end_date)
        return list(await service.get_range_of_appointments(start, end))

    except (QueryValidationError, CalendarNotFoundError, ConfigurationError, APIError, AuthenticationError) as e:
        raise http_error_for(e)


@router.get("/cache/clear")
async def clear_appointment_cache(
    service: Optional[CalendarService] = Depends(get_configured_calendar_service),
):
    """
    Drop today's cached appointments so the next request reads Graph.

    Returns 200 whether or not caching is enabled, including while Graph
    is not configured.

    Returns:
        {"message": "..."}
    """
    if service is not None and await service.clear_cache():
        return {"message": "All appointment cache cleared successfully."}
    return {"message": "Caching is not enabled."}
