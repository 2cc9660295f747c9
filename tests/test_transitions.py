"""Tests for the ticket status state machine."""

import pytest

from maintenance_desk.api.errors import InvalidTransitionError, PreconditionError
from maintenance_desk.tickets.transitions import (
    AssignmentVariant,
    TicketEvent,
    assignment_blockers,
    assignment_variant,
    available_events,
    check_assignable,
    is_terminal,
    next_status,
)
from maintenance_desk.types import Ticket, TicketPriority, TicketStatus


def make_ticket(**overrides) -> Ticket:
    fields = {
        "id": "T-1",
        "status": TicketStatus.NEW,
        "category": "HVAC",
        "priority": TicketPriority.HIGH,
    }
    fields.update(overrides)
    return Ticket(**fields)


class TestNextStatus:
    """Tests for allowed transitions."""

    @pytest.mark.parametrize(
        "status,event,expected",
        [
            (TicketStatus.NEW, TicketEvent.ASSIGN, TicketStatus.OPEN),
            (TicketStatus.OPEN, TicketEvent.ASSIGN, TicketStatus.OPEN),
            (TicketStatus.NEW, TicketEvent.MARK_DONE, TicketStatus.DONE),
            (TicketStatus.OPEN, TicketEvent.MARK_DONE, TicketStatus.DONE),
            (TicketStatus.DONE, TicketEvent.REOPEN, TicketStatus.OPEN),
            (TicketStatus.NEW, TicketEvent.CANCEL, TicketStatus.CANCELLED),
            (TicketStatus.OPEN, TicketEvent.CANCEL, TicketStatus.CANCELLED),
            (TicketStatus.OPEN, TicketEvent.SET_PRIORITY, TicketStatus.OPEN),
            (TicketStatus.NEW, TicketEvent.SET_CATEGORY, TicketStatus.NEW),
        ],
    )
    def test_allowed(self, status, event, expected):
        assert next_status(status, event) == expected

    @pytest.mark.parametrize(
        "status,event",
        [
            (TicketStatus.DONE, TicketEvent.ASSIGN),
            (TicketStatus.DONE, TicketEvent.SET_PRIORITY),
            (TicketStatus.DONE, TicketEvent.SET_CATEGORY),
            (TicketStatus.DONE, TicketEvent.CANCEL),
            (TicketStatus.CANCELLED, TicketEvent.REOPEN),
            (TicketStatus.CANCELLED, TicketEvent.ASSIGN),
            (TicketStatus.OPEN, TicketEvent.REOPEN),
        ],
    )
    def test_rejected(self, status, event):
        with pytest.raises(InvalidTransitionError) as exc_info:
            next_status(status, event)
        assert exc_info.value.status == status.value


class TestAvailableEvents:
    """Tests for the operations exposed per status."""

    def test_cancelled_exposes_nothing(self):
        assert available_events(TicketStatus.CANCELLED) == []

    def test_done_exposes_only_reopen(self):
        assert available_events(TicketStatus.DONE) == [TicketEvent.REOPEN]

    def test_open_exposes_edits(self):
        events = available_events(TicketStatus.OPEN)
        assert TicketEvent.ASSIGN in events
        assert TicketEvent.CANCEL in events
        assert TicketEvent.REOPEN not in events

    def test_terminal_statuses(self):
        assert is_terminal(TicketStatus.DONE)
        assert is_terminal(TicketStatus.CANCELLED)
        assert not is_terminal(TicketStatus.NEW)


class TestAssignmentGuards:
    """Tests for assignment preconditions and the confirmation variant."""

    def test_complete_ticket_is_assignable(self):
        check_assignable(make_ticket())

    def test_missing_fields_are_listed(self):
        ticket = make_ticket(category=None, priority=None)
        assert assignment_blockers(ticket) == ["category", "priority"]
        with pytest.raises(PreconditionError, match="complete category and priority"):
            check_assignable(ticket)

    def test_missing_priority_only(self):
        with pytest.raises(PreconditionError, match="complete priority before assigning"):
            check_assignable(make_ticket(priority=None))

    def test_done_ticket_is_not_assignable(self):
        with pytest.raises(InvalidTransitionError):
            check_assignable(make_ticket(status=TicketStatus.DONE))

    def test_variant_assign_for_new(self):
        assert assignment_variant(make_ticket()) == AssignmentVariant.ASSIGN

    def test_variant_assign_for_open_without_assignees(self):
        ticket = make_ticket(status=TicketStatus.OPEN)
        assert assignment_variant(ticket) == AssignmentVariant.ASSIGN

    def test_variant_reassign_for_open_with_assignees(self):
        ticket = make_ticket(status=TicketStatus.OPEN, assignee_ids=["p-1"])
        assert assignment_variant(ticket) == AssignmentVariant.REASSIGN
