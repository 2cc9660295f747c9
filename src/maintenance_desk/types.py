"""
Pydantic types for the maintenance API.

This module provides Pydantic models for parsing responses from, and
serializing requests to, the maintenance backend:
- Tickets and their nested references (subcategory, locations, attachments)
- Directory people
- Categories (already normalized, see maintenance_desk.reference.categories)
- Locations
- Response envelopes ({"success": ..., "data": ...})

Notes:
- The backend speaks camelCase; models use snake_case attributes with
  camelCase aliases and accept either on input.
- Older backend builds return `category` as an object, `subcategory` as a
  bare string, and a single `assigneeId`. The validators below fold those
  shapes into the current ones.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class TicketStatus(str, Enum):
    """Valid ticket status values."""

    NEW = "NEW"
    OPEN = "OPEN"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class TicketPriority(str, Enum):
    """Valid ticket priority values."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ApiModel(BaseModel):
    """Base model for backend payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Reference data
# =============================================================================


class Subcategory(ApiModel):
    """
    A subcategory as stored on a ticket or listed under a category.

    A bare string is accepted and used for both name and display name.
    """

    name: str
    display_name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data, "displayName": data}
        return data

    @model_validator(mode="after")
    def _default_display_name(self) -> "Subcategory":
        if not self.display_name:
            self.display_name = self.name
        return self


class Category(ApiModel):
    """Normalized category with its active subcategories, in backend order."""

    name: str
    display_name: str
    subcategories: list[Subcategory] = Field(default_factory=list)


class Person(ApiModel):
    """A person from the directory service."""

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone_number: str | None = None
    photo_url: str | None = None
    role: str | None = None  # "SUPERVISOR" | "TECHNICIAN"

    @property
    def full_name(self) -> str:
        """Display name used for name-based assignment ("first last")."""
        return f"{self.first_name} {self.last_name}".strip()


class Location(ApiModel):
    """A location from the locations catalogue. Extra backend fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    code: str | None = None


# =============================================================================
# Tickets
# =============================================================================


class LocationRef(ApiModel):
    """A location attached to a ticket."""

    model_config = ConfigDict(extra="allow")

    location_id: str | None = None
    location_type_id: str | None = None
    name: str | None = None


class Attachment(ApiModel):
    """Attachment metadata. Storage itself is handled elsewhere."""

    id: str
    filename: str = ""
    content_type: str = ""
    size: int | None = None
    url: str | None = None
    uploaded_at: datetime | None = None


class Ticket(ApiModel):
    """
    A maintenance request as returned by GET /api/v1/tickets/{id}.

    The client never edits a Ticket in place: every successful mutation is
    followed by a reload and the reloaded model replaces the old one.
    """

    id: str
    status: TicketStatus = TicketStatus.NEW
    priority: TicketPriority | None = None
    category: str | None = None
    subcategory: Subcategory | None = None
    assignee_ids: list[str] = Field(default_factory=list)
    locations: list[LocationRef] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    title: str = ""
    description: str = ""
    phone_number: str = ""
    source: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_assignee(cls, data: Any) -> Any:
        # {"assigneeId": "p1"} or {"assignee": {"id": "p1", ...}} -> ["p1"]
        if not isinstance(data, dict):
            return data
        if data.get("assigneeIds") or data.get("assignee_ids"):
            return data
        legacy = data.get("assigneeId")
        if not legacy and isinstance(data.get("assignee"), dict):
            legacy = data["assignee"].get("id")
        if legacy:
            data = {**data, "assigneeIds": [legacy]}
        return data

    @field_validator("category", mode="before")
    @classmethod
    def _category_id(cls, value: Any) -> Any:
        if isinstance(value, dict):
            value = value.get("id") or value.get("name")
        return value or None

    @field_validator("priority", "subcategory", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        return value or None

    @property
    def has_assignees(self) -> bool:
        return len(self.assignee_ids) > 0


class TicketPatch(ApiModel):
    """
    Partial update body for PATCH /api/v1/tickets/{id}.

    Only fields that were explicitly set are sent, so passing
    `subcategory=None` sends an explicit null (clears the subcategory)
    while omitting it leaves the backend value alone.
    """

    assignee_ids: list[str] | None = None
    priority: TicketPriority | None = None
    category: str | None = None
    subcategory: Subcategory | None = None
    locations_ids: list[str] | None = None

    def to_body(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON body, set fields only."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


# =============================================================================
# Response envelopes
# =============================================================================
# Every endpoint answers {"success": bool, "data": ...}. success=false is
# handled by the resilient client before these models see the payload.


class TicketListData(ApiModel):
    items: list[Ticket] = Field(default_factory=list)
    continuation_token: str | None = None


class TicketListResponse(ApiModel):
    success: bool = True
    data: TicketListData = Field(default_factory=TicketListData)


class TicketResponse(ApiModel):
    success: bool = True
    data: Ticket


class PersonListData(ApiModel):
    items: list[Person] = Field(default_factory=list)


class PersonListResponse(ApiModel):
    success: bool = True
    data: PersonListData = Field(default_factory=PersonListData)


class LocationListData(ApiModel):
    items: list[Location] = Field(default_factory=list)


class LocationListResponse(ApiModel):
    success: bool = True
    data: LocationListData = Field(default_factory=LocationListData)
