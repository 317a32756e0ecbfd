"""
Microsoft Graph Calendar Schemas - Data structures for calendar operations.

These Pydantic models represent Graph API responses in a typed format.
Every field is optional: Graph omits properties freely and one odd event
must not break the whole calendar view.

Reference: https://learn.microsoft.com/graph/api/resources/event
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


logger = logging.getLogger("eventcal.environments.microsoft.calendar")


class DateTimeTimeZone(BaseModel):
    """
    Event start or end time.

    Graph returns a local wall-clock string plus the zone it is in:
        {"dateTime": "2025-01-15T10:00:00.0000000", "timeZone": "UTC"}

    The string is kept as-is; the EventNormalizer decides how to read it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_time: Optional[str] = Field(None, alias="dateTime")
    time_zone: Optional[str] = Field(None, alias="timeZone")


class ItemBody(BaseModel):
    """Event body (HTML or text)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content_type: Optional[str] = Field(None, alias="contentType")
    content: Optional[str] = Field(None)


class EventLocation(BaseModel):
    """Where the event takes place."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: Optional[str] = Field(None, alias="displayName")


class EventAttachment(BaseModel):
    """
    An attachment on a calendar event (expanded with $expand=attachments).

    File attachments carry their bytes base64-encoded in contentBytes;
    inline images are referenced from the body as "cid:<contentId>".
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    odata_type: Optional[str] = Field(None, alias="@odata.type")
    id: Optional[str] = Field(None)
    name: Optional[str] = Field(None)
    content_type: Optional[str] = Field(None, alias="contentType")
    is_inline: Optional[bool] = Field(False, alias="isInline")
    content_id: Optional[str] = Field(None, alias="contentId")
    content_bytes: Optional[bytes] = Field(None, alias="contentBytes")

    @field_validator("content_bytes", mode="before")
    @classmethod
    def _decode_content_bytes(cls, value: Any) -> Any:
        # Graph sends base64 text; raw bytes (tests, re-validation) pass through
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                logger.warning("Attachment contentBytes is not valid base64, ignoring it")
                return None
        return value

    def is_inline_image(self) -> bool:
        """Check if this attachment can be embedded into the event body."""
        return bool(
            self.is_inline
            and self.content_type
            and "image" in self.content_type.lower()
            and self.content_bytes
            and self.content_id
        )


class GraphEvent(BaseModel):
    """
    A Microsoft Graph calendar event.

    Contains the fields the normalizer needs. Additional fields can be
    added as needed.

    Reference: https://learn.microsoft.com/graph/api/resources/event
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Unique event identifier")
    subject: Optional[str] = Field(None, description="Event title")
    body: Optional[ItemBody] = Field(None, description="Event body")
    location: Optional[EventLocation] = Field(None, description="Event location")

    # Times
    start: Optional[DateTimeTimeZone] = Field(None, description="Event start time")
    end: Optional[DateTimeTimeZone] = Field(None, description="Event end time")
    is_all_day: Optional[bool] = Field(False, alias="isAllDay")

    # Visual
    categories: Optional[List[str]] = Field(None, description="Category labels")

    # Attachments (requires $expand=attachments)
    attachments: Optional[List[EventAttachment]] = Field(None, description="File attachments")


class CalendarInfo(BaseModel):
    """
    Calendar metadata.

    Used when looking up the configured calendar by its display name.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Calendar identifier")
    name: Optional[str] = Field(None, description="Calendar display name")


class GraphCollectionResponse(BaseModel):
    """
    One page of a Graph collection.

    "value" holds raw items; they are validated one by one so a single
    malformed item can be skipped. "@odata.nextLink" points at the next page.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: List[Dict[str, Any]] = Field(default_factory=list)
    next_link: Optional[str] = Field(None, alias="@odata.nextLink")
