"""
Microsoft Graph Calendar Module - Calendar API Integration

This module reads one Outlook calendar through Microsoft Graph so the
appointment service can normalize and serve its events.

Features:
=========
- Look up a calendar by display name
- Read calendar views with recurring events expanded
- Inline attachments (for embedded images in event bodies)
"""

from app.environments.microsoft.calendar.client import GraphCalendarClient
from app.environments.microsoft.calendar.schemas import (
    CalendarInfo,
    DateTimeTimeZone,
    EventAttachment,
    GraphEvent,
)

__all__ = [
    "GraphCalendarClient",
    "CalendarInfo",
    "DateTimeTimeZone",
    "EventAttachment",
    "GraphEvent",
]
