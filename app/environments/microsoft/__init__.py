"""
Microsoft Environment Module - Microsoft 365 Integration

Architecture:
=============
microsoft/
├── __init__.py           # Module exports
├── auth/                 # Client-credentials authentication
│   ├── __init__.py
│   ├── client.py         # Token acquisition and reuse
│   └── schemas.py        # Token responses, scopes
└── calendar/             # Microsoft Graph calendar API
    ├── __init__.py
    ├── client.py         # Calendar lookup + calendar view
    └── schemas.py        # Graph event structures

Usage:
======
    from app.environments.microsoft import GraphAuthClient, GraphCalendarClient

    calendar = GraphCalendarClient(token_provider=GraphAuthClient())
    calendar_id = await calendar.resolve_calendar_id("Event Calendar")
    events = await calendar.list_calendar_view(calendar_id, start, end)
"""

from app.environments.microsoft.auth import GraphAuthClient, GRAPH_SCOPES
from app.environments.microsoft.calendar import GraphCalendarClient, GraphEvent

__all__ = [
    "GraphAuthClient",
    "GraphCalendarClient",
    "GraphEvent",
    "GRAPH_SCOPES",
]
