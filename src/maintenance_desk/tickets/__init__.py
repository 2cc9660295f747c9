"""
Ticket state machine, mutation orchestration, and lists.

Exports:
    TicketOrchestrator: Guarded, serialized mutations for one ticket
    PendingAssignment: Assignment awaiting confirmation
    TicketEvent: Operations exposed on a ticket (also the busy tag)
    AssignmentVariant: "assign" or "reassign"
    TicketBoard: Filtered ticket list
    DashboardSummary, summarize: Dashboard aggregates
"""

from maintenance_desk.tickets.board import DashboardSummary, TicketBoard, summarize
from maintenance_desk.tickets.orchestrator import PendingAssignment, TicketOrchestrator
from maintenance_desk.tickets.transitions import (
    AssignmentVariant,
    TicketEvent,
    assignment_variant,
    available_events,
    next_status,
)

__all__ = [
    "AssignmentVariant",
    "DashboardSummary",
    "PendingAssignment",
    "TicketBoard",
    "TicketEvent",
    "TicketOrchestrator",
    "assignment_variant",
    "available_events",
    "next_status",
    "summarize",
]
