"""
Ticket status state machine.

    NEW  --assign-->     OPEN      (category and priority set)
    OPEN --assign-->     OPEN      (reassignment)
    NEW/OPEN --mark_done-->  DONE
    DONE --reopen-->     OPEN
    NEW/OPEN --cancel--> CANCELLED (non-blank reason)

Priority, category, and location edits keep the status and are only
reachable from NEW and OPEN. CANCELLED exposes nothing; DONE exposes only
reopen.
"""

from enum import Enum

from maintenance_desk.api.errors import InvalidTransitionError, PreconditionError
from maintenance_desk.types import Ticket, TicketStatus


class TicketEvent(str, Enum):
    """Operations the orchestrator exposes on a ticket."""

    ASSIGN = "assign"
    SET_PRIORITY = "priority"
    SET_CATEGORY = "category"
    SET_LOCATIONS = "location"
    MARK_DONE = "done"
    REOPEN = "open"
    CANCEL = "cancel"


class AssignmentVariant(str, Enum):
    """Which confirmation the operator must give before an assignment."""

    ASSIGN = "assign"
    REASSIGN = "reassign"


TRANSITIONS: dict[tuple[TicketStatus, TicketEvent], TicketStatus] = {
    (TicketStatus.NEW, TicketEvent.ASSIGN): TicketStatus.OPEN,
    (TicketStatus.OPEN, TicketEvent.ASSIGN): TicketStatus.OPEN,
    (TicketStatus.NEW, TicketEvent.MARK_DONE): TicketStatus.DONE,
    (TicketStatus.OPEN, TicketEvent.MARK_DONE): TicketStatus.DONE,
    (TicketStatus.DONE, TicketEvent.REOPEN): TicketStatus.OPEN,
    (TicketStatus.NEW, TicketEvent.CANCEL): TicketStatus.CANCELLED,
    (TicketStatus.OPEN, TicketEvent.CANCEL): TicketStatus.CANCELLED,
}

# Edits that leave the status unchanged
for _status in (TicketStatus.NEW, TicketStatus.OPEN):
    for _event in (TicketEvent.SET_PRIORITY, TicketEvent.SET_CATEGORY, TicketEvent.SET_LOCATIONS):
        TRANSITIONS[(_status, _event)] = _status


def next_status(status: TicketStatus, event: TicketEvent) -> TicketStatus:
    """
    Status a ticket ends in after `event`.

    Raises:
        InvalidTransitionError: If `event` is not exposed in `status`.
    """
    target = TRANSITIONS.get((status, event))
    if target is None:
        raise InvalidTransitionError(event.value, status.value)
    return target


def available_events(status: TicketStatus) -> list[TicketEvent]:
    """Events exposed in `status`, in declaration order."""
    return [event for event in TicketEvent if (status, event) in TRANSITIONS]


def is_terminal(status: TicketStatus) -> bool:
    """True when no edit or assignment is reachable (DONE, CANCELLED)."""
    return TicketEvent.ASSIGN not in available_events(status)


def assignment_blockers(ticket: Ticket) -> list[str]:
    """Missing fields that prevent assignment (empty list means assignable)."""
    blockers = []
    if not ticket.category:
        blockers.append("category")
    if not ticket.priority:
        blockers.append("priority")
    return blockers


def check_assignable(ticket: Ticket) -> None:
    """
    Guard for assignment.

    Raises:
        InvalidTransitionError: If the status does not expose assignment.
        PreconditionError: If category or priority is missing.
    """
    next_status(ticket.status, TicketEvent.ASSIGN)
    blockers = assignment_blockers(ticket)
    if blockers:
        raise PreconditionError(
            "assign", f"complete {' and '.join(blockers)} before assigning"
        )


def assignment_variant(ticket: Ticket) -> AssignmentVariant:
    """REASSIGN when the ticket is OPEN and already has an assignee."""
    if ticket.status == TicketStatus.OPEN and ticket.has_assignees:
        return AssignmentVariant.REASSIGN
    return AssignmentVariant.ASSIGN
