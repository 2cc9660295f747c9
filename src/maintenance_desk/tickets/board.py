"""
Ticket lists and dashboard summaries.

TicketBoard loads a filtered ticket list and keeps the last result (or
error) for display. It also hands out TicketOrchestrators that share the
session's reference cache and reload the board after each mutation.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from maintenance_desk.api.tickets import MaintenanceApi, TicketQuery
from maintenance_desk.reference.cache import ReferenceDataCache
from maintenance_desk.tickets.orchestrator import TicketOrchestrator
from maintenance_desk.types import Ticket, TicketPriority, TicketStatus

logger = logging.getLogger(__name__)


@dataclass
class DashboardSummary:
    """
    Aggregates over a set of tickets.

    Attributes:
        by_status: Tickets grouped by status (every status present).
        counts: Number of tickets per status.
        priorities: Number of tickets per priority (every priority present).
        by_category: Number of tickets per category id ("" for uncategorized).
        by_assignee: Number of tickets per assignee id.
    """

    by_status: dict[TicketStatus, list[Ticket]] = field(default_factory=dict)
    counts: dict[TicketStatus, int] = field(default_factory=dict)
    priorities: dict[TicketPriority, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_assignee: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def summarize(tickets: list[Ticket]) -> DashboardSummary:
    """Group and count tickets for the dashboard."""
    by_status: dict[TicketStatus, list[Ticket]] = {status: [] for status in TicketStatus}
    for ticket in tickets:
        by_status[ticket.status].append(ticket)

    priorities = {priority: 0 for priority in TicketPriority}
    for ticket in tickets:
        if ticket.priority is not None:
            priorities[ticket.priority] += 1

    return DashboardSummary(
        by_status=by_status,
        counts={status: len(items) for status, items in by_status.items()},
        priorities=priorities,
        by_category=dict(Counter(t.category or "" for t in tickets)),
        by_assignee=dict(Counter(a for t in tickets for a in t.assignee_ids)),
    )


class TicketBoard:
    """
    A filtered ticket list plus the orchestrators for its tickets.

    Example:
        board = TicketBoard(api, reference, TicketQuery(status=TicketStatus.NEW))
        await board.reload()
        orchestrator = board.orchestrator_for(board.items[0])
    """

    def __init__(
        self,
        api: MaintenanceApi,
        reference: ReferenceDataCache,
        query: TicketQuery | None = None,
    ) -> None:
        self.api = api
        self.reference = reference
        self.query = query or TicketQuery()
        self.items: list[Ticket] = []
        self.error: str | None = None
        self.loading = False

    @classmethod
    def for_status(
        cls,
        api: MaintenanceApi,
        reference: ReferenceDataCache,
        status: TicketStatus,
        limit: int = 20,
    ) -> "TicketBoard":
        """Board for one status tab, newest first."""
        return cls(api, reference, TicketQuery(status=status, limit=limit))

    @classmethod
    def for_dashboard(
        cls,
        api: MaintenanceApi,
        reference: ReferenceDataCache,
        created_from: date | None = None,
        created_to: date | None = None,
        limit: int = 100,
    ) -> "TicketBoard":
        """Board over every status within an optional creation-date range."""
        return cls(
            api,
            reference,
            TicketQuery(limit=limit, created_from=created_from, created_to=created_to),
        )

    async def reload(self) -> list[Ticket]:
        """
        Reload the list.

        Errors are recorded on `error` and re-raised; the previous items are
        kept.
        """
        self.loading = True
        self.error = None
        try:
            self.items = await self.api.list_tickets(self.query)
        except Exception as e:
            self.error = str(e)
            logger.error(f"Failed to load tickets: {e}")
            raise
        finally:
            self.loading = False
        return self.items

    def summary(self) -> DashboardSummary:
        return summarize(self.items)

    def orchestrator_for(self, ticket: Ticket) -> TicketOrchestrator:
        """Orchestrator for `ticket` that reloads this board after each mutation."""
        return TicketOrchestrator(
            ticket, api=self.api, reference=self.reference, on_changed=self._after_change
        )

    async def _after_change(self, ticket: Ticket) -> None:
        logger.debug(f"Ticket {ticket.id} changed; reloading board")
        await self.reload()
