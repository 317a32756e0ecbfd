"""
Configuration module - centralized settings for the entire application.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.category import CategoryOverride


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    Complex values (CATEGORIES, CORS_ORIGINS) are given as JSON:
        export CATEGORIES='[{"name": "Payday", "htmlColor": "#00FF00"}]'
    """

    # ---------------------------------------------------------------------------
    # PYDANTIC SETTINGS CONFIGURATION
    # ---------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",        # Load from .env file in project root
        env_file_encoding="utf-8",  # File encoding
        extra="ignore",         # Ignore extra env vars not defined here
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    # APP_NAME: Display name shown in API docs and logging
    APP_NAME: str = "Event Calendar Service"

    # DEBUG: Enable debug mode (more verbose errors, auto-reload in dev)
    DEBUG: bool = False

    # LOG_LEVEL: Level for every "eventcal.*" logger
    LOG_LEVEL: str = "INFO"

    # CORS_ORIGINS: Origins allowed to call the API (display screens, web widgets)
    CORS_ORIGINS: List[str] = ["*"]

    # TIMEZONE: IANA zone treated as "local" (e.g. "Europe/London")
    # - None uses the host's zone, like the display screens do
    TIMEZONE: Optional[str] = None

    # ---------------------------------------------------------------------------
    # MICROSOFT GRAPH SETTINGS
    # ---------------------------------------------------------------------------
    # Azure Portal: App registrations → Certificates & secrets
    #
    # Setup Instructions:
    # 1. Register an application in Microsoft Entra ID
    # 2. Grant the Calendars.Read application permission (admin consent)
    # 3. Create a client secret
    # 4. Copy tenant ID, client ID and secret to .env file
    GRAPH_TENANT_ID: str = ""
    GRAPH_CLIENT_ID: str = ""
    GRAPH_CLIENT_SECRET: str = ""

    # GRAPH_CALENDAR_USER_UPN: Mailbox that owns the calendar (user@contoso.com)
    GRAPH_CALENDAR_USER_UPN: str = ""

    # GRAPH_CALENDAR_NAME: Display name of the calendar to serve
    GRAPH_CALENDAR_NAME: str = "Event Calendar"

    # Graph request timeout in seconds
    GRAPH_REQUEST_TIMEOUT: float = 30.0

    # ---------------------------------------------------------------------------
    # CACHE SETTINGS
    # ---------------------------------------------------------------------------
    # CACHE_ENABLED: Wrap the Graph-backed service with the appointment cache
    CACHE_ENABLED: bool = True

    # CACHE_DURATION_MINUTES: Absolute lifetime of one cached result set
    # - 1 minute to 24 hours
    CACHE_DURATION_MINUTES: int = Field(5, ge=1, le=1440)

    # ---------------------------------------------------------------------------
    # CATEGORY SETTINGS
    # ---------------------------------------------------------------------------
    # CATEGORIES: Ordered overrides merged ahead of the built-in defaults
    CATEGORIES: List[CategoryOverride] = []

    # CATEGORIES_FILE: Optional JSON file with more overrides (hot-reloaded)
    # Format: [{"name": "Payday", "htmlColor": "#00FF00"}, ...]
    CATEGORIES_FILE: Optional[str] = None

    # CATEGORIES_RELOAD_SECONDS: Minimum gap between checks of CATEGORIES_FILE
    CATEGORIES_RELOAD_SECONDS: int = Field(30, ge=0)

    def get_missing_graph_settings(self) -> List[str]:
        """Names of the Graph settings required to reach the calendar that are empty."""
        required = {
            "GRAPH_TENANT_ID": self.GRAPH_TENANT_ID,
            "GRAPH_CLIENT_ID": self.GRAPH_CLIENT_ID,
            "GRAPH_CLIENT_SECRET": self.GRAPH_CLIENT_SECRET,
            "GRAPH_CALENDAR_USER_UPN": self.GRAPH_CALENDAR_USER_UPN,
            "GRAPH_CALENDAR_NAME": self.GRAPH_CALENDAR_NAME,
        }
        return [name for name, value in required.items() if not value or not value.strip()]


# ---------------------------------------------------------------------------
# GLOBAL SETTINGS INSTANCE
# ---------------------------------------------------------------------------
# Usage: from app.core.config import settings
settings = Settings()
