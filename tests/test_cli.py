"""
Tests for the maintdesk CLI.

Commands run against a real session whose HTTP client is backed by a mock
transport, so guard rejections and request bodies are exercised end to end.
"""

import json
import time
from unittest.mock import patch

import httpx
import jwt
from httpx import Request, Response
from typer.testing import CliRunner

from maintenance_desk.cli.main import app
from maintenance_desk.config import Settings
from maintenance_desk.session import create_session

API_BASE = "http://test"

runner = CliRunner()


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

    def bodies(self, method: str, path: str) -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == method and r.url.path == path
        ]


def ticket(**fields) -> dict:
    data = {"id": "T-1", "status": "NEW", "category": "HVAC", "priority": "HIGH", "assigneeIds": []}
    data.update(fields)
    return {"success": True, "data": data}


def backend(**overrides) -> dict[str, dict]:
    responses = {
        "GET /api/v1/persons": {
            "json": {
                "success": True,
                "data": {"items": [{"id": "p-jane", "firstName": "Jane", "lastName": "Doe"}]},
            }
        },
        "GET /api/v1/categories": {
            "json": {
                "success": True,
                "data": {
                    "items": [
                        {
                            "id": "HVAC",
                            "subcategories": [{"name": "ac", "displayName": "Air Conditioning"}],
                        }
                    ]
                },
            }
        },
        "GET /api/v1/locations": {
            "json": {"success": True, "data": {"items": [{"id": "L-1", "name": "Lobby"}]}}
        },
        "GET /api/v1/tickets": {
            "json": {
                "success": True,
                "data": {
                    "items": [
                        ticket()["data"],
                        ticket(id="T-2", status="OPEN", assigneeIds=["p-jane"])["data"],
                    ]
                },
            }
        },
        "GET /api/v1/tickets/T-1": {"json": ticket()},
        "PATCH /api/v1/tickets/T-1": {},
        "PATCH /api/v1/tickets/T-1/status": {},
        "POST /api/v1/tickets/T-1/cancel": {},
    }
    responses.update(overrides)
    return responses


def invoke(transport: MockTransport, args: list[str], input: str | None = None):
    """Run the CLI with a session wired to `transport`."""
    token = jwt.encode(
        {"exp": int(time.time()) + 3600},
        "test-signing-secret-not-checked-by-client-0123456789",
        algorithm="HS256",
    )
    http = httpx.AsyncClient(transport=transport, base_url=API_BASE)
    session = create_session(Settings(api_base=API_BASE, access_token=token), http=http)
    with patch("maintenance_desk.cli.common.open_session", return_value=session):
        return runner.invoke(app, args, input=input)


class TestTicketsList:
    """Tests for `tickets list`."""

    def test_table(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "list", "--status", "NEW"])

        assert result.exit_code == 0
        assert "T-1" in result.output
        assert transport.requests[0].url.params["status"] == "NEW"

    def test_json(self):
        result = invoke(MockTransport(backend()), ["tickets", "list", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["id"] for t in data] == ["T-1", "T-2"]
        assert data[1]["assigneeIds"] == ["p-jane"]

    def test_backend_error_exits_nonzero(self):
        transport = MockTransport(
            backend(**{"GET /api/v1/tickets": {"status_code": 500, "json": {"message": "db down"}}})
        )

        result = invoke(transport, ["tickets", "list"])

        assert result.exit_code == 1
        assert "db down" in result.output


class TestTicketsAssign:
    """Tests for `tickets assign`."""

    def test_assign_with_yes(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "assign", "T-1", "Jane Doe", "--yes"])

        assert result.exit_code == 0
        assert "Assign Ticket" in result.output
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == [{"assigneeIds": ["p-jane"]}]
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1/status") == [{"status": "OPEN"}]

    def test_declining_sends_nothing(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "assign", "T-1", "Jane Doe"], input="n\n")

        assert result.exit_code == 0
        assert "Assignment cancelled" in result.output
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == []

    def test_reassign_prompt_for_open_ticket(self):
        transport = MockTransport(
            backend(**{"GET /api/v1/tickets/T-1": {"json": ticket(status="OPEN", assigneeIds=["p-x"])}})
        )

        result = invoke(transport, ["tickets", "assign", "T-1", "Jane Doe"], input="y\n")

        assert result.exit_code == 0
        assert "Reassign Ticket" in result.output
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == [{"assigneeIds": ["p-jane"]}]

    def test_missing_priority_is_rejected(self):
        transport = MockTransport(
            backend(**{"GET /api/v1/tickets/T-1": {"json": ticket(priority=None)}})
        )

        result = invoke(transport, ["tickets", "assign", "T-1", "Jane Doe", "--yes"])

        assert result.exit_code == 1
        assert "Cannot assign" in result.output
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == []


class TestTicketsEdits:
    """Tests for field edit and status commands."""

    def test_priority(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "priority", "T-1", "URGENT"])

        assert result.exit_code == 0
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == [{"priority": "URGENT"}]

    def test_subcategory(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "category", "T-1", "Air Conditioning"])

        assert result.exit_code == 0
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1") == [
            {"category": "HVAC", "subcategory": {"name": "ac", "displayName": "Air Conditioning"}}
        ]

    def test_category_needs_exactly_one_target(self):
        result = invoke(MockTransport(backend()), ["tickets", "category", "T-1"])

        assert result.exit_code == 1

    def test_done(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "done", "T-1"])

        assert result.exit_code == 0
        assert transport.bodies("PATCH", "/api/v1/tickets/T-1/status") == [{"status": "DONE"}]


class TestTicketsCancel:
    """Tests for `tickets cancel`."""

    def test_missing_reason_is_rejected(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "cancel", "T-1", "--reason", "   "])

        assert result.exit_code == 1
        assert "reason is required" in result.output
        assert transport.bodies("POST", "/api/v1/tickets/T-1/cancel") == []

    def test_cancel_with_reason(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["tickets", "cancel", "T-1", "--reason", "duplicate"])

        assert result.exit_code == 0
        assert transport.bodies("POST", "/api/v1/tickets/T-1/cancel") == [{"reason": "duplicate"}]


class TestReference:
    """Tests for the reference commands."""

    def test_people_fallback_when_directory_fails(self):
        transport = MockTransport(
            backend(**{"GET /api/v1/persons": {"status_code": 503, "json": {}}})
        )

        result = invoke(transport, ["reference", "people"])

        assert result.exit_code == 0
        assert "fallback" in result.output
        assert "Ariel Caballero" in result.output
        assert "Carlos Pena" in result.output

    def test_categories(self):
        result = invoke(MockTransport(backend()), ["reference", "categories"])

        assert result.exit_code == 0
        assert "Air Conditioning" in result.output


class TestDashboard:
    """Tests for the dashboard command."""

    def test_json_summary(self):
        transport = MockTransport(backend())

        result = invoke(transport, ["dashboard", "--from", "2024-01-01", "--json"])

        assert result.exit_code == 0
        summary = json.loads(result.output)
        assert summary["total"] == 2
        assert summary["counts"]["OPEN"] == 1
        params = transport.requests[0].url.params
        assert params["createdFrom"] == "2024-01-01"
        assert params["limit"] == "100"
