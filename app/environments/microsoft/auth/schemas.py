"""
Microsoft Identity Schemas - Data structures for Graph authentication.

The service authenticates as an application (client-credentials grant), so
there is no user consent, refresh token or id_token involved.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# OAUTH SCOPE CONSTANTS
# ---------------------------------------------------------------------------
# Application permissions are granted in the app registration; ".default"
# asks for all of them. The calendar needs Calendars.Read (admin consent).
#
# Reference: https://learn.microsoft.com/graph/auth-v2-service

GRAPH_SCOPES = [
    "https://graph.microsoft.com/.default",
]


# ---------------------------------------------------------------------------
# TOKEN RESPONSES
# ---------------------------------------------------------------------------

class GraphTokenResponse(BaseModel):
    """
    Response from the Microsoft identity platform token endpoint.

    Example response:
    {
        "token_type": "Bearer",
        "expires_in": 3599,
        "ext_expires_in": 3599,
        "access_token": "eyJ0eXAiOiJKV1QiLCJub25jZSI6..."
    }
    """
    access_token: str = Field(..., description="OAuth access token")
    token_type: str = Field(default="Bearer", description="Token type (usually Bearer)")
    expires_in: int = Field(3599, description="Seconds until expiration")
    ext_expires_in: Optional[int] = Field(None, description="Extended lifetime during outages")
    scope: Optional[str] = Field(None, description="Space-separated scopes granted")

    def get_scopes_list(self) -> List[str]:
        """Convert space-separated scope string to list."""
        if self.scope:
            return self.scope.split()
        return []

    def get_expires_at(self, now: Optional[datetime] = None) -> datetime:
        """Calculate expiration datetime from expires_in seconds."""
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=self.expires_in)
