"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- A controllable clock for cache expiry and "today"
- Fakes for the Graph calendar client and the calendar service
- Test client (FastAPI TestClient) with service overrides
- Sample data factories
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.deps import get_category_service, get_configured_calendar_service
from app.environments.base import CalendarNotFoundError
from app.environments.microsoft.calendar.schemas import GraphEvent
from app.main import app
from app.schemas.appointment import Appointment
from app.services.calendar_service import CalendarService
from app.services.category_service import CategoryService


# ---------------------------------------------------------------------------
# CLOCK
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2025-01-15 10:00 UTC."""
    return FakeClock(datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# SAMPLE DATA
# ---------------------------------------------------------------------------

def make_appointment(id: str = "evt-1", subject: str = "Staff Webinar", **kwargs) -> Appointment:
    values = {
        "id": id,
        "subject": subject,
        "body": "",
        "location": "Teams",
        "html_colour": "#F47A20",
        "start": 1736935200000.0,
        "end": 1736938800000.0,
        "all_day": False,
    }
    values.update(kwargs)
    return Appointment(**values)


@pytest.fixture
def appointment_factory():
    """Factory for Appointment objects."""
    return make_appointment


@pytest.fixture
def graph_event_factory():
    """
    Factory for GraphEvent objects from Graph-shaped keyword data.

    Example:
        graph_event_factory(subject="Payday", categories=["Payday"])
    """
    def _make(**overrides) -> GraphEvent:
        data = {
            "id": "AAMkAGI2-1",
            "subject": "Team Meeting",
            "body": {"contentType": "html", "content": "<p>Agenda</p>"},
            "location": {"displayName": "Room 1"},
            "start": {"dateTime": "2025-01-15T10:00:00.0000000", "timeZone": "UTC"},
            "end": {"dateTime": "2025-01-15T11:00:00.0000000", "timeZone": "UTC"},
            "isAllDay": False,
            "categories": [],
        }
        data.update(overrides)
        return GraphEvent(**data)

    return _make


# ---------------------------------------------------------------------------
# FAKE COLLABORATORS
# ---------------------------------------------------------------------------

class FakeCalendarService(CalendarService):
    """
    In-memory CalendarService that counts fetches.

    Set `gate` to an asyncio.Event to hold fetches until the test releases
    them, or `error` to make every fetch fail.
    """

    def __init__(self, appointments: Optional[List[Appointment]] = None):
        self.appointments = appointments if appointments is not None else [make_appointment()]
        self.today_calls = 0
        self.range_calls = 0
        self.range_args = []
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None
        self.cleared = False

    async def _respond(self) -> List[Appointment]:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.appointments)

    async def get_todays_appointments(self) -> List[Appointment]:
        self.today_calls += 1
        return await self._respond()

    async def get_range_of_appointments(self, start: datetime, end: datetime) -> List[Appointment]:
        self.range_calls += 1
        self.range_args.append((start, end))
        return await self._respond()


class FakeGraphCalendarClient:
    """Stands in for GraphCalendarClient in service tests."""

    def __init__(self, calendars: Optional[dict] = None, events: Optional[List[GraphEvent]] = None):
        self.calendars = calendars if calendars is not None else {"event calendar": "cal-1"}
        self.events = events or []
        self.resolve_calls = 0
        self.view_calls = []

    async def resolve_calendar_id(self, calendar_name: str) -> str:
        self.resolve_calls += 1
        await asyncio.sleep(0)
        try:
            return self.calendars[calendar_name.casefold()]
        except KeyError:
            raise CalendarNotFoundError(calendar_name)

    async def list_calendar_view(self, calendar_id: str, start: datetime, end: datetime) -> List[GraphEvent]:
        self.view_calls.append((calendar_id, start, end))
        return list(self.events)


@pytest.fixture
def fake_calendar_service() -> FakeCalendarService:
    return FakeCalendarService()


@pytest.fixture
def fake_graph_client() -> FakeGraphCalendarClient:
    return FakeGraphCalendarClient()


@pytest.fixture
def category_service() -> CategoryService:
    """Category service with the built-in defaults only."""
    return CategoryService()


# ---------------------------------------------------------------------------
# TEST CLIENT
# ---------------------------------------------------------------------------

@pytest.fixture
def client(
    fake_calendar_service: FakeCalendarService,
    category_service: CategoryService,
) -> Generator[TestClient, None, None]:
    """
    Test client with the calendar and category services replaced.

    No request reaches Microsoft Graph.
    """
    app.dependency_overrides[get_configured_calendar_service] = lambda: fake_calendar_service
    app.dependency_overrides[get_category_service] = lambda: category_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
