"""
Appointment schemas - the simplified, provider-agnostic event shape.

This is the wire format consumed by the JavaScript display clients:
start/end are epoch milliseconds (UTC based), htmlColour is a hex code
or an empty string.
"""

from pydantic import BaseModel, ConfigDict, Field


class Appointment(BaseModel):
    """
    A normalized calendar appointment.

    Immutable once built by the EventNormalizer. The end >= start rule is
    checked on the query, not here: an appointment mirrors whatever the
    calendar holds.

    Example response:
    {
        "id": "AAMkAGI2...",
        "subject": "Staff Webinar",
        "body": "<html>...</html>",
        "location": "Teams",
        "htmlColour": "#F47A20",
        "start": 1735722000000.0,
        "end": 1735725600000.0,
        "allDay": false
    }
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    subject: str = ""
    body: str = ""
    location: str = ""
    html_colour: str = Field("", alias="htmlColour")

    # Milliseconds since the Unix epoch
    start: float = 0.0
    end: float = 0.0

    all_day: bool = Field(False, alias="allDay")
