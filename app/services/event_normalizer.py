"""
Event Normalizer - Turns raw Graph events into Appointments.

The display clients only understand the simplified Appointment shape, so
everything provider-specific is resolved here:

- Times: timed events are read in their own zone and presented in the local
  zone; all-day events keep their literal date (no zone shift).
- Body: inline images referenced as "cid:<contentId>" are embedded as
  base64 data URIs so the HTML renders without access to Graph.
- Color: the first category label with a known color wins.

Normalization never raises for bad event data: missing or unparseable
values fall back to "" or MIN_INSTANT.
"""

import base64
import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional

from app.core.timezone import get_local_timezone, get_zone
from app.environments.microsoft.calendar.schemas import (
    DateTimeTimeZone,
    EventAttachment,
    GraphEvent,
)
from app.schemas.appointment import Appointment
from app.services.category_service import CategoryService


logger = logging.getLogger("eventcal.services.normalizer")


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Stand-in for missing or unparseable event times
MIN_INSTANT = datetime.min.replace(tzinfo=timezone.utc)

# Graph sends 7 fractional digits ("2025-01-15T10:00:00.0000000")
_FRACTION_RE = re.compile(r"\.(\d+)")


def to_epoch_milliseconds(value: datetime) -> float:
    """Milliseconds since the Unix epoch; naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) / timedelta(milliseconds=1)


def _parse_iso(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def parse_graph_datetime(
    value: Optional[DateTimeTimeZone],
    convert_to_local: bool,
    local_timezone: Optional[tzinfo] = None,
) -> datetime:
    """
    Read a Graph dateTime/timeZone pair.

    Args:
        value: The event's start or end
        convert_to_local: False for all-day events (the literal is kept, as UTC)
        local_timezone: Zone to present timed events in

    Returns:
        An aware datetime, or MIN_INSTANT when the value is missing or unreadable
    """
    if value is None or not value.date_time:
        return MIN_INSTANT

    try:
        parsed = _parse_iso(value.date_time)
    except ValueError:
        logger.warning(f"Unparseable event time '{value.date_time}', using minimum instant")
        return MIN_INSTANT

    if not convert_to_local:
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_zone(value.time_zone))

    try:
        return parsed.astimezone(local_timezone or get_local_timezone())
    except (OverflowError, ValueError):
        logger.warning(f"Event time '{value.date_time}' is out of range, using minimum instant")
        return MIN_INSTANT


def embed_inline_images(body: str, attachments: Optional[Iterable[EventAttachment]]) -> str:
    """
    Replace "cid:<contentId>" references with base64 data URIs.

    Attachments are applied in the order given; matching is case-insensitive.
    Only inline image attachments with bytes and a content id qualify.
    """
    if not body or not attachments:
        return body

    for attachment in attachments:
        if not attachment.is_inline_image():
            continue
        pattern = re.compile(re.escape(f"cid:{attachment.content_id}"), re.IGNORECASE)
        data_uri = "data:image;base64," + base64.b64encode(attachment.content_bytes).decode("ascii")
        # A function replacement keeps backslashes in the payload literal
        body = pattern.sub(lambda _: data_uri, body)

    return body


class EventNormalizer:
    """
    Maps GraphEvent -> Appointment.

    Attributes:
        category_service: Supplies category colors
        local_timezone: Zone timed events are presented in (None: resolve per call)
    """

    def __init__(self, category_service: CategoryService, local_timezone: Optional[tzinfo] = None):
        self.category_service = category_service
        self.local_timezone = local_timezone

    def normalize(self, event: GraphEvent) -> Appointment:
        """
        Build the Appointment for one event.

        Args:
            event: Raw Graph event

        Returns:
            The normalized Appointment
        """
        all_day = bool(event.is_all_day)
        local_tz = self.local_timezone or get_local_timezone()

        start = parse_graph_datetime(event.start, not all_day, local_tz)
        end = parse_graph_datetime(event.end, not all_day, local_tz)

        body = event.body.content if event.body and event.body.content else ""

        return Appointment(
            id=event.id or "",
            subject=event.subject or "",
            body=embed_inline_images(body, event.attachments),
            location=(event.location.display_name if event.location else None) or "",
            html_colour=self.category_service.resolve_color(event.categories),
            start=to_epoch_milliseconds(start),
            end=to_epoch_milliseconds(end),
            all_day=all_day,
        )

    def normalize_many(self, events: Iterable[GraphEvent]) -> List[Appointment]:
        """
        Normalize a batch, preserving order.

        An event that still fails to normalize is logged and left out; the
        rest of the batch is returned.
        """
        appointments: List[Appointment] = []
        for event in events:
            try:
                appointments.append(self.normalize(event))
            except Exception as e:
                logger.error(f"Failed to normalize event {event.id or '<no id>'}: {e}", exc_info=True)
        return appointments
