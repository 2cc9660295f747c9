"""
Maintenance Desk

Client-side core for triaging maintenance tickets served by the maintenance
backend. This package provides:

- Token lifecycle: cached, expiry-aware bearer tokens with silent and
  redirect acquisition
- Resilient API client: bearer auth with one refresh-and-retry on 401
- Reference data cache: people, categories, and locations per session
- Ticket orchestration: status state machine, assignment, category
  coupling, and cancellation rules
- CLI: Typer-based `maintdesk` command
"""

__version__ = "0.1.0"

from maintenance_desk.session import MaintenanceSession, create_session
from maintenance_desk.types import (
    Category,
    Location,
    Person,
    Subcategory,
    Ticket,
    TicketPatch,
    TicketPriority,
    TicketStatus,
)

__all__ = [
    "Category",
    "Location",
    "MaintenanceSession",
    "Person",
    "Subcategory",
    "Ticket",
    "TicketPatch",
    "TicketPriority",
    "TicketStatus",
    "create_session",
]
