"""
Microsoft Auth Module - Client-credentials authentication for Graph.

The calendar service runs unattended, so it authenticates as an application
registered in Microsoft Entra ID rather than on behalf of a signed-in user.
"""

from app.environments.microsoft.auth.client import GraphAuthClient
from app.environments.microsoft.auth.schemas import (
    GraphTokenResponse,
    GRAPH_SCOPES,
)

__all__ = [
    "GraphAuthClient",
    "GraphTokenResponse",
    "GRAPH_SCOPES",
]
