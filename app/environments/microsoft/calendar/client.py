"""
Microsoft Graph Calendar Client - Fetch calendars and calendar views.

This client provides the two read operations the appointment service needs
from Microsoft Graph. It handles API requests, paging, error handling, and
response parsing. It does no caching and no retries: both belong to the
callers.

Key Features:
=============
1. Resolve a calendar display name to its Graph id (case-insensitive)
2. Read a calendar view (recurrences expanded) with attachments inlined
3. Follow @odata.nextLink paging
4. Clean error handling with specific exceptions

API Reference:
==============
- List calendars: https://learn.microsoft.com/graph/api/user-list-calendars
- Calendar view: https://learn.microsoft.com/graph/api/calendar-list-calendarview

Usage Example:
==============
    from app.environments.microsoft import GraphAuthClient, GraphCalendarClient

    client = GraphCalendarClient(
        token_provider=GraphAuthClient(),
        user_upn="events@contoso.com",
    )

    calendar_id = await client.resolve_calendar_id("Event Calendar")
    events = await client.list_calendar_view(calendar_id, start, end)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.environments.base import (
    APIError,
    AuthenticationError,
    CalendarNotFoundError,
    EnvironmentService,
    TokenProvider,
)
from app.environments.microsoft.auth.schemas import GRAPH_SCOPES
from app.environments.microsoft.calendar.schemas import (
    CalendarInfo,
    GraphCollectionResponse,
    GraphEvent,
)


logger = logging.getLogger("eventcal.environments.microsoft.calendar")


class GraphCalendarClient(EnvironmentService):
    """
    Microsoft Graph calendar API client.

    Reads calendars of one mailbox (user_upn) with application permissions.

    Attributes:
        token_provider: Source of bearer tokens
        user_upn: Mailbox owning the calendars
    """

    # Service identification
    service_name = "calendar"
    required_scopes = list(GRAPH_SCOPES)

    # Microsoft Graph base URL
    BASE_URL = "https://graph.microsoft.com/v1.0"

    # Page sizes used by the calendar lookups
    CALENDARS_PAGE_SIZE = 50
    EVENTS_PAGE_SIZE = 255

    def __init__(
        self,
        token_provider: TokenProvider,
        user_upn: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Calendar client.

        Args:
            token_provider: Supplies access tokens for every request
            user_upn: Mailbox that owns the calendar (defaults to settings)
            timeout: HTTP timeout in seconds (defaults to settings)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.token_provider = token_provider
        self.user_upn = user_upn or settings.GRAPH_CALENDAR_USER_UPN
        self.timeout = timeout or settings.GRAPH_REQUEST_TIMEOUT
        self._transport = transport

    # -------------------------------------------------------------------------
    # HTTP CLIENT MANAGEMENT
    # -------------------------------------------------------------------------

    def _get_headers(self, access_token: str) -> dict:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            # Event times come back in UTC instead of the mailbox zone
            "Prefer": 'outlook.timezone="UTC"',
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict:
        """
        Make an authenticated request to the Graph API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API path ("/users/...") or an absolute @odata.nextLink
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            APIError: If the request fails
        """
        url = endpoint if endpoint.startswith("http") else f"{self.BASE_URL}{endpoint}"
        access_token = await self.token_provider.get_access_token()

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(access_token),
                    params=params,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error in Graph calendar API: {e}")
                raise APIError(f"Network error: {type(e).__name__}") from e

        if response.status_code == 401:
            logger.error("Graph calendar API: Unauthorized (token may be expired)")
            self.token_provider.invalidate()
            raise APIError(
                "Unauthorized - access token may be expired",
                status_code=401,
                response=response.text,
            )

        if response.status_code == 403:
            logger.error("Graph calendar API: Forbidden (Calendars.Read may not be granted)")
            raise APIError(
                "Forbidden - calendar permission may not be granted",
                status_code=403,
                response=response.text,
            )

        if response.status_code != 200:
            error_detail = response.text
            logger.error(f"Graph calendar API error: {response.status_code} - {error_detail}")
            raise APIError(
                f"API request failed with status {response.status_code}",
                status_code=response.status_code,
                response=error_detail,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Graph returned a non-JSON body ({response.headers.get('content-type')})")
            raise APIError(
                "Invalid JSON in Graph response",
                status_code=response.status_code,
                response=response.text,
            ) from e
        if not isinstance(data, dict):
            raise APIError("Unexpected Graph response shape", status_code=response.status_code)
        return data

    async def _get_collection(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read every page of a Graph collection.

        The first request carries the query parameters; next links already
        embed them.
        """
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = endpoint
        next_params = params

        while next_url:
            response_data = await self._make_request("GET", next_url, params=next_params)
            page = GraphCollectionResponse(**response_data)
            items.extend(page.value)
            next_url = page.next_link
            next_params = None

        return items

    # -------------------------------------------------------------------------
    # CALENDARS
    # -------------------------------------------------------------------------

    async def list_calendars(self) -> List[CalendarInfo]:
        """
        List the calendars of the configured mailbox.

        Returns:
            List of CalendarInfo objects
        """
        raw_calendars = await self._get_collection(
            f"/users/{self.user_upn}/calendars",
            params={"$top": self.CALENDARS_PAGE_SIZE},
        )
        return [CalendarInfo(**item) for item in raw_calendars]

    async def resolve_calendar_id(self, calendar_name: str) -> str:
        """
        Find a calendar by display name (case-insensitive).

        Args:
            calendar_name: Display name, e.g. "Event Calendar"

        Returns:
            The calendar's Graph id

        Raises:
            CalendarNotFoundError: If no calendar has that name
            APIError: If Graph cannot be reached
        """
        calendars = await self.list_calendars()
        wanted = calendar_name.casefold()

        for calendar in calendars:
            if calendar.name is not None and calendar.name.casefold() == wanted:
                logger.info(f"Resolved calendar '{calendar_name}'")
                return calendar.id

        raise CalendarNotFoundError(calendar_name)

    # -------------------------------------------------------------------------
    # CALENDAR VIEW
    # -------------------------------------------------------------------------

    async def list_calendar_view(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> List[GraphEvent]:
        """
        List events overlapping [start, end], recurring events expanded.

        Attachments are expanded inline so embedded images can be resolved
        without extra round trips.

        Args:
            calendar_id: Graph calendar id (see resolve_calendar_id)
            start: Start of the window
            end: End of the window

        Returns:
            Raw GraphEvent objects in Graph's order
        """
        params = {
            "startDateTime": start.isoformat(),
            "endDateTime": end.isoformat(),
            "$top": self.EVENTS_PAGE_SIZE,
            "$expand": "attachments",
        }

        logger.info(
            "Fetching calendar view",
            extra={
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )

        raw_events = await self._get_collection(
            f"/users/{self.user_upn}/calendars/{calendar_id}/calendarView",
            params=params,
        )

        events: List[GraphEvent] = []
        for item in raw_events:
            try:
                events.append(GraphEvent(**item))
            except ValidationError as e:
                logger.warning(
                    f"Skipping unreadable event {item.get('id', '<no id>')}: {e.error_count()} errors"
                )

        logger.info(f"Fetched {len(events)} calendar events")

        return events

    # -------------------------------------------------------------------------
    # ACCESS CHECK
    # -------------------------------------------------------------------------

    async def validate_access(self) -> bool:
        """
        Check that the mailbox's calendars can be listed.

        Returns:
            True if Graph answered, False on any provider error
        """
        try:
            await self._make_request(
                "GET",
                f"/users/{self.user_upn}/calendars",
                params={"$top": 1},
            )
            return True
        except (APIError, AuthenticationError) as e:
            logger.warning(f"Graph calendar access check failed: {e}")
            return False
