"""
Maintenance API client for tickets and reference data.

This module provides the MaintenanceApi class for the backend REST surface:
tickets (list, get, patch, status, cancel), directory people, categories,
and locations.

MaintenanceApi receives an injected ResilientClient, so every call carries a
bearer token and recovers once from a stale one. Methods fail loudly: HTTP
errors raise ApiError, success=false raises ApplicationError, and malformed
payloads raise pydantic.ValidationError.
"""

import logging
from dataclasses import dataclass
from datetime import date

from maintenance_desk.api.client import ResilientClient
from maintenance_desk.api.errors import ApiError
from maintenance_desk.reference.categories import normalize_categories
from maintenance_desk.types import (
    Category,
    Location,
    LocationListResponse,
    Person,
    PersonListResponse,
    Ticket,
    TicketListResponse,
    TicketPatch,
    TicketPriority,
    TicketResponse,
    TicketStatus,
)

logger = logging.getLogger(__name__)

# Statuses that can be written through PATCH /tickets/{id}/status
WRITABLE_STATUSES = {TicketStatus.OPEN, TicketStatus.DONE, TicketStatus.CANCELLED}

# Responses meaning the deployed backend has no cancel endpoint
CANCEL_UNSUPPORTED_STATUSES = {404, 405, 501}


@dataclass
class TicketQuery:
    """
    Filters for GET /api/v1/tickets.

    Attributes:
        status: Only tickets in this status.
        limit: Page size.
        sort_by: "createdAt", "updatedAt", "priority" or "status".
        sort_dir: "asc" or "desc".
        created_from: Inclusive lower bound on creation date.
        created_to: Inclusive upper bound on creation date.
        assignee_id: Only tickets assigned to this person.
        subcategory_display_name: Only tickets in this subcategory.
        priority: Only tickets with this priority.
        continuation_token: Opaque token for the next page.
    """

    status: TicketStatus | None = None
    limit: int | None = 20
    sort_by: str | None = "createdAt"
    sort_dir: str | None = "desc"
    created_from: date | None = None
    created_to: date | None = None
    assignee_id: str | None = None
    subcategory_display_name: str | None = None
    priority: TicketPriority | None = None
    continuation_token: str | None = None

    def to_params(self) -> dict[str, str | int | None]:
        """Render as query parameters (None values are dropped by the client)."""
        return {
            "status": self.status.value if self.status else None,
            "limit": self.limit,
            "sortBy": self.sort_by,
            "sortDir": self.sort_dir,
            "createdFrom": self.created_from.isoformat() if self.created_from else None,
            "createdTo": self.created_to.isoformat() if self.created_to else None,
            "assigneeId": self.assignee_id,
            "subcategoryDisplayName": self.subcategory_display_name,
            "priority": self.priority.value if self.priority else None,
            "continuationToken": self.continuation_token,
        }


@dataclass
class MaintenanceApi:
    """
    Maintenance backend client with an injected resilient HTTP client.

    Attributes:
        client: ResilientClient with base_url set to the API base.

    Example:
        api = MaintenanceApi(client=ResilientClient(http=http, tokens=provider))
        tickets = await api.list_tickets(TicketQuery(status=TicketStatus.NEW))
        for ticket in tickets:
            print(f"{ticket.id}: {ticket.status.value}")
    """

    client: ResilientClient

    # -------------------------------------------------------------------------
    # Tickets
    # -------------------------------------------------------------------------

    async def list_tickets(self, query: TicketQuery | None = None) -> list[Ticket]:
        """
        List tickets matching `query`.

        Calls GET /api/v1/tickets.

        Returns:
            Tickets in backend order.
        """
        query = query or TicketQuery()
        payload = await self.client.get("/api/v1/tickets", params=query.to_params())
        return TicketListResponse.model_validate(payload or {}).data.items

    async def get_ticket(self, ticket_id: str) -> Ticket:
        """
        Fetch a single ticket.

        Calls GET /api/v1/tickets/{id}. This is the read that follows every
        successful mutation.
        """
        payload = await self.client.get(f"/api/v1/tickets/{ticket_id}")
        return TicketResponse.model_validate(payload).data

    async def patch_ticket(self, ticket_id: str, patch: TicketPatch) -> None:
        """
        Apply a partial update.

        Calls PATCH /api/v1/tickets/{id} with only the fields set on `patch`.
        The response body is not trusted; callers reload the ticket.
        """
        body = patch.to_body()
        logger.debug(f"PATCH ticket {ticket_id}: {sorted(body)}")
        await self.client.patch(f"/api/v1/tickets/{ticket_id}", json=body)

    async def patch_status(self, ticket_id: str, status: TicketStatus) -> None:
        """
        Set the ticket status.

        Calls PATCH /api/v1/tickets/{id}/status.

        Raises:
            ValueError: If `status` cannot be written (NEW).
        """
        if status not in WRITABLE_STATUSES:
            raise ValueError(f"Status {status.value} cannot be set explicitly")
        await self.client.patch(
            f"/api/v1/tickets/{ticket_id}/status", json={"status": status.value}
        )

    async def cancel_ticket(
        self,
        ticket_id: str,
        reason: str | None = None,
        cancelled_by: str | None = None,
        cancelled_by_name: str | None = None,
    ) -> None:
        """
        Cancel a ticket.

        Calls POST /api/v1/tickets/{id}/cancel. When the deployed backend has
        no cancel endpoint (404, 405 or 501), falls back to setting the status
        to CANCELLED; the reason is not recorded in that case.
        """
        body = {
            k: v
            for k, v in {
                "reason": reason,
                "cancelledBy": cancelled_by,
                "cancelledByName": cancelled_by_name,
            }.items()
            if v
        }
        try:
            await self.client.post(f"/api/v1/tickets/{ticket_id}/cancel", json=body)
        except ApiError as e:
            if e.status_code not in CANCEL_UNSUPPORTED_STATUSES:
                raise
            logger.warning(
                f"Cancel endpoint unavailable ({e.status_code}); "
                f"falling back to status patch for ticket {ticket_id}"
            )
            await self.patch_status(ticket_id, TicketStatus.CANCELLED)

    # -------------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------------

    async def search_persons(self, q: str, limit: int = 10) -> list[Person]:
        """
        Search the directory by free text.

        Calls GET /api/v1/persons?q&limit.
        """
        payload = await self.client.get("/api/v1/persons", params={"q": q, "limit": limit})
        return PersonListResponse.model_validate(payload or {}).data.items

    async def search_persons_by_department(
        self, department: str, limit: int = 50
    ) -> list[Person]:
        """
        List directory people in a department.

        Calls GET /api/v1/persons?department&limit.
        """
        payload = await self.client.get(
            "/api/v1/persons", params={"department": department, "limit": limit}
        )
        return PersonListResponse.model_validate(payload or {}).data.items

    async def list_categories(self, limit: int = 200) -> list[Category]:
        """
        List active categories with their active subcategories.

        Calls GET /api/v1/categories?limit. Items are read from `data.items`
        or, on older backends, a top-level `items`.
        """
        payload = await self.client.get("/api/v1/categories", params={"limit": limit}) or {}
        data = payload.get("data")
        if isinstance(data, dict) and "items" in data:
            items = data["items"]
        else:
            items = payload.get("items", [])
        return normalize_categories(items)

    async def list_locations(self, page: int = 1, limit: int = 50, q: str = "") -> list[Location]:
        """
        List locations.

        Calls GET /api/v1/locations?page&limit&q.
        """
        payload = await self.client.get(
            "/api/v1/locations", params={"page": page, "limit": limit, "q": q or None}
        )
        return LocationListResponse.model_validate(payload or {}).data.items
