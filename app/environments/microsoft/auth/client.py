"""
Microsoft Graph Auth Client - Client-credentials tokens for Graph APIs.

This client implements the OAuth 2.0 client-credentials grant against the
Microsoft identity platform. The service reads one shared calendar as an
application, so there is no interactive sign-in.

Key Features:
=============
1. Token acquisition with tenant/client/secret from settings
2. Token reuse until shortly before expiry
3. One refresh at a time, even with many concurrent requests

References:
===========
- Client credentials: https://learn.microsoft.com/entra/identity-platform/v2-oauth2-client-creds-grant-flow
- Token endpoint: https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token
"""

import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.environments.base import (
    AccessToken,
    AuthenticationError,
    ConfigurationError,
    TokenProvider,
)
from app.environments.microsoft.auth.schemas import GRAPH_SCOPES, GraphTokenResponse


logger = logging.getLogger("eventcal.environments.microsoft.auth")


class GraphAuthClient(TokenProvider):
    """
    Client-credentials token provider for Microsoft Graph.

    Example Usage:
        auth = GraphAuthClient()
        calendar = GraphCalendarClient(token_provider=auth, user_upn="events@contoso.com")
    """

    # Provider identifier
    provider_name = "microsoft"

    # Microsoft identity platform endpoint
    TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Graph auth client.

        Args:
            tenant_id: Directory (tenant) ID (defaults to settings)
            client_id: Application (client) ID (defaults to settings)
            client_secret: Client secret (defaults to settings)
            scopes: Scopes to request (defaults to GRAPH_SCOPES)
            timeout: HTTP timeout in seconds (defaults to settings)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.tenant_id = tenant_id or settings.GRAPH_TENANT_ID
        self.client_id = client_id or settings.GRAPH_CLIENT_ID
        self.client_secret = client_secret or settings.GRAPH_CLIENT_SECRET
        self.scopes = scopes or list(GRAPH_SCOPES)
        self.timeout = timeout or settings.GRAPH_REQUEST_TIMEOUT

        self._transport = transport
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

        if not self.tenant_id or not self.client_id or not self.client_secret:
            logger.warning(
                "Graph credentials not configured. Set GRAPH_TENANT_ID, "
                "GRAPH_CLIENT_ID and GRAPH_CLIENT_SECRET in environment variables."
            )

    @property
    def token_url(self) -> str:
        return self.TOKEN_URL_TEMPLATE.format(tenant_id=self.tenant_id)

    # -------------------------------------------------------------------------
    # TOKEN PROVIDER
    # -------------------------------------------------------------------------

    async def get_access_token(self) -> str:
        """
        Return a cached token, requesting a new one when it is about to expire.

        Raises:
            ConfigurationError: If tenant, client id or secret is missing
            AuthenticationError: If the identity platform rejects the request
        """
        token = self._token
        if token is not None and not token.is_expired():
            return token.access_token

        async with self._lock:
            # Another request may have refreshed while we waited
            token = self._token
            if token is not None and not token.is_expired():
                return token.access_token

            self._token = await self._request_token()
            return self._token.access_token

    def invalidate(self) -> None:
        """Drop the cached token (e.g. after Graph answered 401)."""
        self._token = None

    # -------------------------------------------------------------------------
    # TOKEN REQUEST
    # -------------------------------------------------------------------------

    async def _request_token(self) -> AccessToken:
        if not self.tenant_id or not self.client_id or not self.client_secret:
            raise ConfigurationError("Graph credentials are not configured")

        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": " ".join(self.scopes),
            "grant_type": "client_credentials",
        }

        logger.info("Requesting Graph access token")

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    self.token_url,
                    data=token_data,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token request: {e}")
                raise AuthenticationError("Network error while requesting access token") from e

        if response.status_code != 200:
            error_data = _json_object(response)
            error_code = error_data.get("error", "unknown_error")
            # error_description echoes tenant/client ids, keep it out of the exception
            logger.error(
                f"Token request failed: {response.status_code} {error_code}",
                extra={"error_description": error_data.get("error_description")},
            )
            raise AuthenticationError(f"Token request failed: {error_code}")

        try:
            token_response = GraphTokenResponse(**_json_object(response))
        except ValidationError as e:
            logger.error(f"Unreadable token response: {e.error_count()} validation errors")
            raise AuthenticationError("Token response could not be read") from e

        logger.info(
            "Obtained Graph access token",
            extra={"expires_in": token_response.expires_in},
        )

        return AccessToken(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list() or self.scopes,
        )


def _json_object(response: httpx.Response) -> dict:
    """Response body as a dict; empty when it is not a JSON object (proxy pages)."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
