"""
Tests for the Microsoft Graph calendar client.

Graph is replaced with httpx.MockTransport; the token provider is an AsyncMock.

These tests verify:
- Request shape (headers, paths, query parameters)
- @odata.nextLink paging
- Calendar name resolution
- Error handling (401 invalidates the token, other statuses raise APIError)
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.environments.base import APIError, CalendarNotFoundError, TokenProvider
from app.environments.microsoft.calendar.client import GraphCalendarClient


UPN = "events@contoso.com"


@pytest.fixture
def token_provider():
    provider = MagicMock(spec=TokenProvider)
    provider.get_access_token = AsyncMock(return_value="test-token")
    return provider


def make_client(token_provider, handler) -> GraphCalendarClient:
    return GraphCalendarClient(
        token_provider=token_provider,
        user_upn=UPN,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


# ---------------------------------------------------------------------------
# CALENDAR LOOKUP
# ---------------------------------------------------------------------------

class TestResolveCalendarId:

    @pytest.mark.asyncio
    async def test_matches_name_case_insensitively(self, token_provider):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"value": [
                {"id": "cal-0", "name": "Calendar"},
                {"id": "cal-1", "name": "Event Calendar"},
            ]})

        client = make_client(token_provider, handler)

        assert await client.resolve_calendar_id("event calendar") == "cal-1"

        request = requests[0]
        assert request.url.path == f"/v1.0/users/{UPN}/calendars"
        assert request.url.params["$top"] == "50"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Prefer"] == 'outlook.timezone="UTC"'

    @pytest.mark.asyncio
    async def test_follows_next_link(self, token_provider):
        next_link = f"https://graph.microsoft.com/v1.0/users/{UPN}/calendars?$skip=50"

        def handler(request: httpx.Request) -> httpx.Response:
            if "$skip" in request.url.params:
                return httpx.Response(200, json={"value": [{"id": "cal-51", "name": "Event Calendar"}]})
            return httpx.Response(200, json={
                "value": [{"id": "cal-0", "name": "Calendar"}],
                "@odata.nextLink": next_link,
            })

        client = make_client(token_provider, handler)

        assert await client.resolve_calendar_id("Event Calendar") == "cal-51"

    @pytest.mark.asyncio
    async def test_not_found(self, token_provider):
        client = make_client(token_provider, lambda request: httpx.Response(200, json={"value": []}))

        with pytest.raises(CalendarNotFoundError) as exc_info:
            await client.resolve_calendar_id("Event Calendar")

        assert exc_info.value.calendar_name == "Event Calendar"

    @pytest.mark.asyncio
    async def test_unused_calendar_properties_are_dropped(self, token_provider):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"value": [{
                "id": "cal-1",
                "name": "Event Calendar",
                "color": "lightBlue",
                "canEdit": True,
                "owner": {"name": "Events", "address": UPN},
            }]})

        client = make_client(token_provider, handler)

        calendars = await client.list_calendars()

        assert calendars[0].model_dump() == {"id": "cal-1", "name": "Event Calendar"}


# ---------------------------------------------------------------------------
# CALENDAR VIEW
# ---------------------------------------------------------------------------

class TestListCalendarView:

    @pytest.mark.asyncio
    async def test_query_parameters(self, token_provider):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"value": [
                {
                    "id": "evt-1",
                    "subject": "Payday",
                    "start": {"dateTime": "2025-01-15T00:00:00.0000000", "timeZone": "UTC"},
                    "end": {"dateTime": "2025-01-16T00:00:00.0000000", "timeZone": "UTC"},
                    "isAllDay": True,
                    "categories": ["Payday"],
                    "webLink": "https://outlook.office365.com/owa/?itemid=evt-1",
                },
            ]})

        client = make_client(token_provider, handler)
        start = datetime(2025, 1, 15, tzinfo=timezone.utc)
        end = datetime(2025, 1, 15, 23, 59, tzinfo=timezone.utc)

        events = await client.list_calendar_view("cal-1", start, end)

        assert [e.id for e in events] == ["evt-1"]
        assert events[0].is_all_day is True
        assert not hasattr(events[0], "web_link")

        params = requests[0].url.params
        assert requests[0].url.path == f"/v1.0/users/{UPN}/calendars/cal-1/calendarView"
        assert params["startDateTime"] == start.isoformat()
        assert params["endDateTime"] == end.isoformat()
        assert params["$top"] == "255"
        assert params["$expand"] == "attachments"

    @pytest.mark.asyncio
    async def test_pages_are_concatenated_in_order(self, token_provider):
        pages = {
            "first": {"value": [{"id": "a"}, {"id": "b"}], "@odata.nextLink": "https://graph.microsoft.com/v1.0/next?page=2"},
            "second": {"value": [{"id": "c"}]},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/next"):
                assert "$top" not in request.url.params
                return httpx.Response(200, json=pages["second"])
            return httpx.Response(200, json=pages["first"])

        client = make_client(token_provider, handler)

        events = await client.list_calendar_view("cal-1", datetime(2025, 1, 1), datetime(2025, 1, 2))

        assert [e.id for e in events] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unreadable_event_skipped(self, token_provider):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"value": [
                {"id": "a", "categories": "not-a-list"},
                {"id": "b"},
            ]})

        client = make_client(token_provider, handler)

        events = await client.list_calendar_view("cal-1", datetime(2025, 1, 1), datetime(2025, 1, 2))

        assert [e.id for e in events] == ["b"]


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------

class TestErrors:

    @pytest.mark.asyncio
    async def test_unauthorized_invalidates_token(self, token_provider):
        client = make_client(token_provider, lambda request: httpx.Response(401, json={}))

        with pytest.raises(APIError) as exc_info:
            await client.list_calendars()

        assert exc_info.value.status_code == 401
        token_provider.invalidate.assert_called_once()

    @pytest.mark.asyncio
    async def test_server_error(self, token_provider):
        client = make_client(token_provider, lambda request: httpx.Response(503, text="busy"))

        with pytest.raises(APIError) as exc_info:
            await client.list_calendars()

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_network_error(self, token_provider):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(token_provider, handler)

        with pytest.raises(APIError, match="Network error"):
            await client.list_calendars()

    @pytest.mark.asyncio
    async def test_validate_access(self, token_provider):
        ok = make_client(token_provider, lambda request: httpx.Response(200, json={"value": []}))
        forbidden = make_client(token_provider, lambda request: httpx.Response(403, json={}))

        assert await ok.validate_access() is True
        assert await forbidden.validate_access() is False

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, token_provider):
        client = make_client(
            token_provider,
            lambda request: httpx.Response(200, text="<html>gateway</html>"),
        )

        with pytest.raises(APIError, match="Invalid JSON") as exc_info:
            await client.list_calendars()

        assert exc_info.value.status_code == 200
