"""
Environments Module - External Service Integrations

This module isolates the calendar provider behind small, testable clients.

Architecture Overview:
======================
environments/
├── __init__.py           # Module exports
├── base.py               # Abstract base classes and provider exceptions
└── microsoft/            # Microsoft 365 integration
    ├── auth/             # Client-credentials tokens
    └── calendar/         # Graph calendar API

Design Principles:
==================
1. Provider Isolation: nothing outside environments/ speaks Graph
2. Shared Authentication: API clients ask a TokenProvider for tokens
3. No caching here: the service layer owns every cache
"""

from app.environments.base import (
    EnvironmentService,
    EnvironmentError,
    TokenProvider,
    AccessToken,
    APIError,
    AuthenticationError,
    CalendarNotFoundError,
    ConfigurationError,
)

__all__ = [
    "EnvironmentService",
    "EnvironmentError",
    "TokenProvider",
    "AccessToken",
    "APIError",
    "AuthenticationError",
    "CalendarNotFoundError",
    "ConfigurationError",
]
