"""
Ticket mutation orchestration.

TicketOrchestrator is the single entry point for changing one ticket. Every
operation follows the same path:

1. Ignore the trigger if another mutation on this ticket is in flight
   (busy tag set). Nothing is queued and nothing is raised.
2. Check the state machine and field guards. Failures raise
   PreconditionError before any request is made.
3. Send the mutation through MaintenanceApi.
4. Reload the ticket from the backend and hand it to `on_changed`.
   Patch responses are never trusted as the new state.

Assignment goes through a confirmation step: request_assignment() returns a
PendingAssignment whose variant ("assign" or "reassign") the operator must
confirm with confirm_assignment() before anything is sent.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from maintenance_desk.api.errors import AssignmentResolutionError, PreconditionError
from maintenance_desk.api.tickets import MaintenanceApi
from maintenance_desk.reference.cache import ReferenceDataCache
from maintenance_desk.tickets.transitions import (
    AssignmentVariant,
    TicketEvent,
    assignment_blockers,
    assignment_variant,
    available_events,
    check_assignable,
    next_status,
)
from maintenance_desk.types import Person, Ticket, TicketPatch, TicketPriority, TicketStatus

logger = logging.getLogger(__name__)

ChangeHook = Callable[[Ticket], Awaitable[None]]


@dataclass(frozen=True)
class PendingAssignment:
    """
    An assignment awaiting operator confirmation.

    Attributes:
        names: Full names picked by the operator.
        variant: Whether this is a first assignment or a reassignment.
    """

    names: tuple[str, ...]
    variant: AssignmentVariant

    @property
    def people_text(self) -> str:
        if len(self.names) == 1:
            return self.names[0]
        shown = ", ".join(self.names[:2])
        more = f", and {len(self.names) - 2} more" if len(self.names) > 2 else ""
        return f"{len(self.names)} people ({shown}{more})"

    @property
    def title(self) -> str:
        if self.variant == AssignmentVariant.REASSIGN:
            return "Reassign Ticket"
        return "Assign Ticket"

    @property
    def message(self) -> str:
        if self.variant == AssignmentVariant.REASSIGN:
            return (
                f"Are you sure you want to reassign this ticket to {self.people_text}? "
                "The ticket will remain in Open status."
            )
        return (
            f"Are you sure you want to assign this ticket to {self.people_text}? "
            "The status will change to Open."
        )


def serialized(tag: TicketEvent):
    """
    Run the decorated mutation under the orchestrator's busy tag.

    A call made while the tag is already set returns None immediately.
    The tag is cleared however the mutation ends.
    """

    def decorator(method):
        @functools.wraps(method)
        async def wrapper(self: "TicketOrchestrator", *args, **kwargs):
            if self._busy is not None:
                logger.debug(
                    f"Ticket {self.ticket.id} busy ({self._busy.value}); ignoring {tag.value}"
                )
                return None
            self._busy = tag
            try:
                return await method(self, *args, **kwargs)
            finally:
                self._busy = None

        return wrapper

    return decorator


class TicketOrchestrator:
    """
    Enforces transition and field-coupling rules for one ticket.

    Attributes:
        api: Maintenance API client.
        reference: Session-scoped reference cache (shared, not owned).
        on_changed: Awaited with the reloaded ticket after each mutation.

    Example:
        orchestrator = TicketOrchestrator(ticket, api=api, reference=cache)
        pending = orchestrator.request_assignment(["Jane Doe"])
        if input(f"{pending.message} [y/N] ") == "y":
            ticket = await orchestrator.confirm_assignment(pending.variant)
    """

    def __init__(
        self,
        ticket: Ticket,
        api: MaintenanceApi,
        reference: ReferenceDataCache,
        on_changed: ChangeHook | None = None,
    ) -> None:
        self.api = api
        self.reference = reference
        self.on_changed = on_changed
        self._ticket = ticket
        self._busy: TicketEvent | None = None
        self._pending: PendingAssignment | None = None

    @property
    def ticket(self) -> Ticket:
        return self._ticket

    @property
    def busy(self) -> TicketEvent | None:
        """Kind of mutation in flight, or None when controls are enabled."""
        return self._busy

    @property
    def pending_assignment(self) -> PendingAssignment | None:
        return self._pending

    def available_events(self) -> list[TicketEvent]:
        """Operations currently exposed; empty while busy."""
        if self._busy is not None:
            return []
        return available_events(self._ticket.status)

    def assignment_blockers(self) -> list[str]:
        return assignment_blockers(self._ticket)

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    def request_assignment(self, names: list[str]) -> PendingAssignment:
        """
        Validate an assignment and stage it for confirmation.

        Raises:
            PreconditionError: If no names were given, the ticket lacks
                category or priority, its status does not allow assignment,
                or reference data has not been loaded.
        """
        cleaned = tuple(n.strip() for n in names if n.strip())
        if not cleaned:
            raise PreconditionError("assign", "select at least one person")
        check_assignable(self._ticket)
        self._require_reference("assign")

        self._pending = PendingAssignment(names=cleaned, variant=assignment_variant(self._ticket))
        return self._pending

    def decline_assignment(self) -> None:
        """Discard the staged assignment."""
        self._pending = None

    async def confirm_assignment(self, variant: AssignmentVariant) -> Ticket | None:
        """
        Submit the staged assignment once the operator confirmed it.

        Args:
            variant: The variant the operator was shown and confirmed.

        Returns:
            The reloaded ticket, or None if a mutation was already in flight.

        Raises:
            PreconditionError: If nothing is staged, `variant` does not
                match the staged variant, or the ticket changed since staging
                so that a different confirmation now applies (the stale
                staging is discarded).
        """
        if self._busy is not None:
            return None
        pending = self._pending
        if pending is None:
            raise PreconditionError("assign", "no assignment awaiting confirmation")
        if variant != pending.variant:
            raise PreconditionError(
                "assign", f"confirmation must be '{pending.variant.value}', got '{variant.value}'"
            )
        current = assignment_variant(self._ticket)
        if current != pending.variant:
            self._pending = None
            raise PreconditionError(
                "assign",
                f"ticket changed since confirmation was requested, now needs '{current.value}'",
            )
        self._pending = None
        return await self.assign_by_names(list(pending.names))

    @serialized(TicketEvent.ASSIGN)
    async def assign_by_names(self, names: list[str]) -> Ticket:
        """
        Resolve names to people, set them as assignees, and open the ticket.

        Unresolvable names are skipped with a warning.

        Raises:
            PreconditionError: If the ticket is not assignable.
            AssignmentResolutionError: If no name resolved.
        """
        check_assignable(self._ticket)
        self._require_reference("assign")
        if not names:
            raise PreconditionError("assign", "select at least one person")

        assignee_ids = await self.resolve_assignee_ids(names)
        if not assignee_ids:
            raise AssignmentResolutionError(names)

        logger.info(
            f"Assigning ticket {self._ticket.id} to {len(assignee_ids)} people "
            f"(status {self._ticket.status.value})"
        )
        await self.api.patch_ticket(self._ticket.id, TicketPatch(assignee_ids=assignee_ids))
        await self.api.patch_status(self._ticket.id, TicketStatus.OPEN)
        return await self.reload()

    async def resolve_assignee_ids(self, names: list[str]) -> list[str]:
        """
        Map full names to person ids, in order, without duplicates.

        Each name is looked up in the reference cache first, then by a live
        directory search for that name. From the search results an exact
        full-name match is preferred; otherwise the first candidate is
        accepted.
        """
        ids: list[str] = []
        for name in names:
            person = self.reference.find_person(name) or await self._search_person(name)
            if person is None:
                logger.warning(f"Assignee not found: {name}")
                continue
            if person.id not in ids:
                ids.append(person.id)
        return ids

    async def _search_person(self, name: str) -> Person | None:
        candidates = [p for p in await self.api.search_persons(name) if p.id]
        if not candidates:
            return None
        wanted = name.strip().casefold()
        for candidate in candidates:
            if candidate.full_name.casefold() == wanted:
                return candidate
        logger.warning(
            f"No exact directory match for {name!r}; using first result {_candidate_label(candidates[0])}"
        )
        return candidates[0]

    # -------------------------------------------------------------------------
    # Field edits
    # -------------------------------------------------------------------------

    @serialized(TicketEvent.SET_PRIORITY)
    async def set_priority(self, priority: TicketPriority) -> Ticket:
        """Change the priority (NEW and OPEN only)."""
        next_status(self._ticket.status, TicketEvent.SET_PRIORITY)
        await self.api.patch_ticket(self._ticket.id, TicketPatch(priority=priority))
        return await self.reload()

    @serialized(TicketEvent.SET_CATEGORY)
    async def select_subcategory(self, display_name: str) -> Ticket:
        """
        Set the subcategory and, in the same patch, its owning category.

        Raises:
            PreconditionError: If the subcategory is not in the cached
                categories.
        """
        next_status(self._ticket.status, TicketEvent.SET_CATEGORY)
        self._require_reference("set category")
        found = self.reference.find_subcategory(display_name)
        if found is None:
            raise PreconditionError("set category", f"unknown subcategory {display_name!r}")
        category, subcategory = found
        await self.api.patch_ticket(
            self._ticket.id, TicketPatch(category=category.name, subcategory=subcategory)
        )
        return await self.reload()

    @serialized(TicketEvent.SET_CATEGORY)
    async def select_category(self, name: str) -> Ticket:
        """
        Set a bare category and clear any subcategory.

        Raises:
            PreconditionError: If the category is not in the cached categories.
        """
        next_status(self._ticket.status, TicketEvent.SET_CATEGORY)
        self._require_reference("set category")
        if self.reference.find_category(name) is None:
            raise PreconditionError("set category", f"unknown category {name!r}")
        await self.api.patch_ticket(self._ticket.id, TicketPatch(category=name, subcategory=None))
        return await self.reload()

    @serialized(TicketEvent.SET_LOCATIONS)
    async def set_locations(self, location_ids: list[str]) -> Ticket:
        """
        Replace the ticket's locations.

        Raises:
            PreconditionError: If locations are cached and an id is unknown.
        """
        next_status(self._ticket.status, TicketEvent.SET_LOCATIONS)
        ids = list(dict.fromkeys(location_ids))
        if self.reference.locations:
            unknown = [i for i in ids if self.reference.find_location(i) is None]
            if unknown:
                raise PreconditionError("set locations", f"unknown location(s) {', '.join(unknown)}")
        await self.api.patch_ticket(self._ticket.id, TicketPatch(locations_ids=ids))
        return await self.reload()

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    @serialized(TicketEvent.MARK_DONE)
    async def mark_done(self) -> Ticket:
        next_status(self._ticket.status, TicketEvent.MARK_DONE)
        await self.api.patch_status(self._ticket.id, TicketStatus.DONE)
        return await self.reload()

    @serialized(TicketEvent.REOPEN)
    async def reopen(self) -> Ticket:
        next_status(self._ticket.status, TicketEvent.REOPEN)
        await self.api.patch_status(self._ticket.id, TicketStatus.OPEN)
        return await self.reload()

    def can_cancel(self, reason: str) -> bool:
        """Whether the cancel confirmation should be enabled."""
        return (
            self._busy is None
            and TicketEvent.CANCEL in available_events(self._ticket.status)
            and bool(reason.strip())
        )

    @serialized(TicketEvent.CANCEL)
    async def cancel(
        self,
        reason: str,
        cancelled_by: str | None = None,
        cancelled_by_name: str | None = None,
    ) -> Ticket:
        """
        Cancel the ticket with a reason.

        Raises:
            PreconditionError: If the reason is blank after trimming.
        """
        next_status(self._ticket.status, TicketEvent.CANCEL)
        reason = reason.strip()
        if not reason:
            raise PreconditionError("cancel", "a cancellation reason is required")
        await self.api.cancel_ticket(
            self._ticket.id,
            reason=reason,
            cancelled_by=cancelled_by,
            cancelled_by_name=cancelled_by_name,
        )
        return await self.reload()

    # -------------------------------------------------------------------------
    # Reload
    # -------------------------------------------------------------------------

    async def reload(self) -> Ticket:
        """Fetch the ticket from the backend and notify `on_changed`."""
        self._ticket = await self.api.get_ticket(self._ticket.id)
        if self.on_changed is not None:
            await self.on_changed(self._ticket)
        return self._ticket

    def _require_reference(self, operation: str) -> None:
        if not self.reference.ready:
            raise PreconditionError(operation, "reference data has not been loaded")


def _candidate_label(person: Person) -> str:
    return f"{person.full_name or '?'} ({person.id})"
