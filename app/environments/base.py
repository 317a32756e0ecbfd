"""
Base classes and interfaces for Environment integrations.

This module defines the abstract contracts that the calendar provider and
its authentication collaborator implement.

Design Pattern: Strategy
========================
- TokenProvider: Abstract source of bearer tokens (strategy for auth)
- EnvironmentService: Abstract base for API services (strategy for API calls)

The core never builds tokens itself: it asks a TokenProvider, so tests and
alternative credential flows plug in without touching the API clients.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Any


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------
# Specific exceptions for environment operations.
# Routers map them to HTTP statuses without leaking provider details.


class EnvironmentError(Exception):
    """Base exception for all environment-related errors."""
    pass


class ConfigurationError(EnvironmentError):
    """Raised when required provider settings are missing."""
    pass


class AuthenticationError(EnvironmentError):
    """Raised when acquiring an access token from the provider fails."""
    pass


class CalendarNotFoundError(EnvironmentError):
    """Raised when the configured calendar is not visible to the account."""

    def __init__(self, calendar_name: str):
        super().__init__(f"Calendar '{calendar_name}' not found")
        self.calendar_name = calendar_name


class APIError(EnvironmentError):
    """Raised when an API call to the provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------


@dataclass
class AccessToken:
    """
    Bearer token issued by a provider.

    expires_at is absolute (UTC). A token is considered stale a little
    before it actually expires so in-flight requests don't race expiry.
    """
    access_token: str
    expires_at: datetime
    token_type: str = "Bearer"
    scopes: Optional[List[str]] = None

    def is_expired(self, leeway_seconds: int = 60, now: Optional[datetime] = None) -> bool:
        """Check if the token expires within the leeway window."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - timedelta(seconds=leeway_seconds)


# ---------------------------------------------------------------------------
# ABSTRACT BASE CLASSES
# ---------------------------------------------------------------------------


class TokenProvider(ABC):
    """
    Abstract source of access tokens for a provider API.

    Implementations own credential handling and token reuse. API clients
    only call get_access_token() before each request.
    """

    # Unique identifier for this provider (e.g., "microsoft")
    provider_name: str = ""

    @abstractmethod
    async def get_access_token(self) -> str:
        """
        Return a valid bearer token.

        Raises:
            AuthenticationError: If no token can be obtained
        """
        pass

    def invalidate(self) -> None:
        """Forget any cached token so the next call obtains a fresh one."""
        pass


class EnvironmentService(ABC):
    """
    Abstract base class for API services within a provider.

    Example Implementation:
        class GraphCalendarClient(EnvironmentService):
            service_name = "calendar"
            required_scopes = ["https://graph.microsoft.com/.default"]
    """

    # Unique identifier for this service within the provider
    service_name: str = ""

    # OAuth scopes required for this service to function
    required_scopes: List[str] = []

    @abstractmethod
    async def validate_access(self) -> bool:
        """
        Verify the service can be reached with the current credentials.

        Returns:
            True if an authenticated call succeeds
        """
        pass
