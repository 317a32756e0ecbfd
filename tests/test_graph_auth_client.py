"""
Tests for the Microsoft Graph client-credentials token provider.

These tests verify:
- The token request shape
- Token reuse until shortly before expiry
- One refresh for many concurrent callers
- Error handling without leaking error descriptions
"""

import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from app.environments.base import AccessToken, AuthenticationError, ConfigurationError
from app.environments.microsoft.auth import GraphAuthClient, GraphTokenResponse


def token_handler(calls: list, status_code: int = 200, payload: dict = None):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        body = payload if payload is not None else {
            "token_type": "Bearer",
            "expires_in": 3599,
            "access_token": f"token-{len(calls)}",
        }
        return httpx.Response(status_code, json=body)
    return handler


def make_auth_client(handler) -> GraphAuthClient:
    return GraphAuthClient(
        tenant_id="tenant-123",
        client_id="client-456",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )


class TestTokenSchemas:

    def test_expires_at(self):
        now = datetime(2025, 1, 15, tzinfo=timezone.utc)
        response = GraphTokenResponse(access_token="abc", expires_in=3600)

        assert response.get_expires_at(now) == now + timedelta(hours=1)
        assert response.get_scopes_list() == []

    def test_access_token_expiry_leeway(self):
        now = datetime(2025, 1, 15, tzinfo=timezone.utc)
        token = AccessToken(access_token="abc", expires_at=now + timedelta(seconds=90))

        assert token.is_expired(now=now) is False
        assert token.is_expired(now=now + timedelta(seconds=30)) is True


class TestGraphAuthClient:

    @pytest.mark.asyncio
    async def test_client_credentials_request(self):
        calls = []
        client = make_auth_client(token_handler(calls))

        assert await client.get_access_token() == "token-1"

        request = calls[0]
        assert str(request.url) == "https://login.microsoftonline.com/tenant-123/oauth2/v2.0/token"
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["client-456"]
        assert form["scope"] == ["https://graph.microsoft.com/.default"]

    @pytest.mark.asyncio
    async def test_token_reused(self):
        calls = []
        client = make_auth_client(token_handler(calls))

        await client.get_access_token()
        await client.get_access_token()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_token(self):
        calls = []
        client = make_auth_client(token_handler(calls))

        await client.get_access_token()
        client.invalidate()

        assert await client.get_access_token() == "token-2"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_request(self):
        calls = []
        client = make_auth_client(token_handler(calls))

        tokens = await asyncio.gather(*(client.get_access_token() for _ in range(5)))

        assert len(calls) == 1
        assert set(tokens) == {"token-1"}

    @pytest.mark.asyncio
    async def test_rejected_request(self):
        calls = []
        client = make_auth_client(token_handler(
            calls,
            status_code=400,
            payload={"error": "invalid_client", "error_description": "AADSTS7000215 tenant-123 client-456"},
        ))

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_access_token()

        assert "invalid_client" in str(exc_info.value)
        assert "tenant-123" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        client = make_auth_client(handler)

        with pytest.raises(AuthenticationError, match="unknown_error"):
            await client.get_access_token()

    @pytest.mark.asyncio
    async def test_unreadable_success_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        client = make_auth_client(handler)

        with pytest.raises(AuthenticationError, match="could not be read"):
            await client.get_access_token()

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = make_auth_client(handler)

        with pytest.raises(AuthenticationError):
            await client.get_access_token()

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        calls = []
        client = GraphAuthClient(
            tenant_id="tenant-123",
            client_id="client-456",
            client_secret="",
            transport=httpx.MockTransport(token_handler(calls)),
        )
        # Empty secret falls back to settings, which tests leave empty
        client.client_secret = ""

        with pytest.raises(ConfigurationError):
            await client.get_access_token()

        assert calls == []
