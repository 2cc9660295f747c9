"""Tests for session wiring and teardown."""

import time

import httpx
import jwt
import pytest
from httpx import Request, Response

from maintenance_desk.config import Settings
from maintenance_desk.session import create_session
from maintenance_desk.types import TicketStatus

API_BASE = "http://test"


class MockTransport(httpx.AsyncBaseTransport):
    """Mock transport for testing HTTP responses."""

    def __init__(self, responses: dict[str, dict]):
        self._responses = responses
        self.requests: list[Request] = []

    async def handle_async_request(self, request: Request) -> Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        if key in self._responses:
            resp_data = self._responses[key]
            return Response(
                status_code=resp_data.get("status_code", 200),
                json=resp_data.get("json", {"success": True}),
                request=request,
            )
        return Response(status_code=404, request=request)


def reference_responses() -> dict[str, dict]:
    return {
        "GET /api/v1/persons": {
            "json": {
                "success": True,
                "data": {"items": [{"id": "p-1", "firstName": "Jane", "lastName": "Doe"}]},
            }
        },
        "GET /api/v1/categories": {"json": {"success": True, "data": {"items": [{"id": "HVAC"}]}}},
        "GET /api/v1/locations": {"json": {"success": True, "data": {"items": []}}},
        "GET /api/v1/tickets": {
            "json": {"success": True, "data": {"items": [{"id": "T-1", "status": "NEW"}]}}
        },
    }


def make_token() -> str:
    return jwt.encode(
        {"exp": int(time.time()) + 3600},
        "test-signing-secret-not-checked-by-client-0123456789",
        algorithm="HS256",
    )


class TestCreateSession:
    """Tests for sessions built from settings."""

    @pytest.mark.asyncio
    async def test_configured_token_is_sent(self):
        token = make_token()
        transport = MockTransport(reference_responses())
        http = httpx.AsyncClient(transport=transport, base_url=API_BASE)
        session = create_session(Settings(api_base=API_BASE, access_token=token), http=http)

        async with session:
            assert session.tokens.is_authenticated
            assert await session.load_reference() is True
            assert session.reference.cache_key == f"{API_BASE}-{token}"
            assert session.reference.people_list == ["Jane Doe"]

        assert all(r.headers["Authorization"] == f"Bearer {token}" for r in transport.requests)

    @pytest.mark.asyncio
    async def test_without_token_requests_are_unauthenticated(self):
        transport = MockTransport(reference_responses())
        http = httpx.AsyncClient(transport=transport, base_url=API_BASE)
        session = create_session(Settings(api_base=API_BASE, access_token=None), http=http)

        async with session:
            assert not session.tokens.is_authenticated
            await session.load_reference()
            assert session.reference.cache_key == f"{API_BASE}-no-token"

        assert all("Authorization" not in r.headers for r in transport.requests)

    @pytest.mark.asyncio
    async def test_status_board_uses_configured_limit(self):
        transport = MockTransport(reference_responses())
        http = httpx.AsyncClient(transport=transport, base_url=API_BASE)
        session = create_session(
            Settings(api_base=API_BASE, ticket_list_limit=5), http=http
        )

        async with session:
            items = await session.status_board(TicketStatus.NEW).reload()

        assert [t.id for t in items] == ["T-1"]
        params = transport.requests[0].url.params
        assert params["limit"] == "5"
        assert params["status"] == "NEW"


class TestDispose:
    """Tests for session teardown."""

    @pytest.mark.asyncio
    async def test_dispose_clears_state_and_closes_owned_client(self):
        session = create_session(Settings(api_base=API_BASE, access_token=make_token()))

        await session.dispose()
        await session.dispose()

        assert session.http.is_closed
        assert not session.tokens.is_authenticated
        with pytest.raises(RuntimeError):
            await session.reference.load(API_BASE, None)

    @pytest.mark.asyncio
    async def test_injected_client_is_left_open(self):
        http = httpx.AsyncClient(transport=MockTransport({}), base_url=API_BASE)
        session = create_session(Settings(api_base=API_BASE), http=http)

        await session.dispose()

        assert not http.is_closed
        await http.aclose()
