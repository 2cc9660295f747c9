"""
Session scope: one wired set of collaborators per signed-in page/CLI run.

MaintenanceSession constructs the token manager, the resilient HTTP client,
the API client, and the reference cache, and passes them by reference to
the boards and orchestrators it creates. dispose() tears the scope down.
"""

import logging
import time
from collections.abc import Callable
from datetime import date

import httpx

from maintenance_desk.api.client import ResilientClient
from maintenance_desk.api.tickets import MaintenanceApi, TicketQuery
from maintenance_desk.auth.identity import Account, IdentityProvider, StaticIdentityProvider
from maintenance_desk.auth.tokens import ApiScope, TokenManager
from maintenance_desk.config import Settings, settings as default_settings
from maintenance_desk.reference.cache import ReferenceDataCache
from maintenance_desk.tickets.board import TicketBoard
from maintenance_desk.tickets.orchestrator import TicketOrchestrator
from maintenance_desk.types import TicketStatus

logger = logging.getLogger(__name__)


class MaintenanceSession:
    """
    Page-scoped service object shared by every consumer in that scope.

    Example:
        async with create_session() as session:
            await session.load_reference()
            orchestrator = await session.open_ticket("T-100")
            await orchestrator.mark_done()
    """

    def __init__(
        self,
        settings: Settings,
        identity: IdentityProvider,
        account: Account | None = None,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            settings: Client configuration.
            identity: Identity provider for token acquisition.
            account: Signed-in account; None leaves the session signed out
                (requests go without Authorization).
            http: Optional pre-configured httpx client. If None, one is
                created from settings and closed by dispose().
            clock: Epoch-seconds clock for token expiry checks.
        """
        self.settings = settings
        self.tokens = TokenManager(
            identity=identity,
            scopes={
                ApiScope.MAINTENANCE_API: list(settings.maintenance_api_scopes),
                ApiScope.NOTIFICATION_HUB: list(settings.notification_hub_scopes),
            },
            refresh_skew_seconds=settings.token_refresh_skew_seconds,
            clock=clock,
        )
        if account is not None:
            self.tokens.sign_in(account)

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=settings.api_base, timeout=settings.http_timeout_seconds
        )
        self.client = ResilientClient(
            http=self.http, tokens=self.tokens.provider_for(ApiScope.MAINTENANCE_API)
        )
        self.api = MaintenanceApi(client=self.client)
        self.reference = ReferenceDataCache(
            source=self.api,
            department=settings.persons_department,
            persons_limit=settings.persons_limit,
            categories_limit=settings.categories_limit,
            locations_limit=settings.locations_limit,
            fallback_people=list(settings.fallback_people),
        )
        self._disposed = False

    async def __aenter__(self) -> "MaintenanceSession":
        return self

    async def __aexit__(self, *args) -> None:
        await self.dispose()

    async def load_reference(self) -> bool:
        """Load reference data under the current API base and token."""
        token = await self.tokens.get_token(ApiScope.MAINTENANCE_API)
        return await self.reference.load(self.settings.api_base, token)

    def board(self, query: TicketQuery | None = None) -> TicketBoard:
        return TicketBoard(self.api, self.reference, query)

    def status_board(self, status: TicketStatus) -> TicketBoard:
        return TicketBoard.for_status(
            self.api, self.reference, status, limit=self.settings.ticket_list_limit
        )

    def dashboard(
        self, created_from: date | None = None, created_to: date | None = None
    ) -> TicketBoard:
        return TicketBoard.for_dashboard(
            self.api,
            self.reference,
            created_from=created_from,
            created_to=created_to,
            limit=self.settings.dashboard_list_limit,
        )

    async def open_ticket(self, ticket_id: str) -> TicketOrchestrator:
        """Fetch a ticket and return an orchestrator bound to this session."""
        ticket = await self.api.get_ticket(ticket_id)
        return TicketOrchestrator(ticket, api=self.api, reference=self.reference)

    async def dispose(self) -> None:
        """Clear the reference cache, sign out, and close the owned HTTP client."""
        if self._disposed:
            return
        self._disposed = True
        self.reference.dispose()
        self.tokens.sign_out()
        if self._owns_http:
            await self.http.aclose()
        logger.debug("Session disposed")


def create_session(
    settings: Settings | None = None,
    identity: IdentityProvider | None = None,
    username: str = "operator",
    http: httpx.AsyncClient | None = None,
) -> MaintenanceSession:
    """
    Create a session from settings.

    Args:
        settings: Configuration; defaults to the environment-derived settings.
        identity: Identity provider; defaults to a StaticIdentityProvider
            over settings.access_token.
        username: Account name used when a token is configured.
        http: Optional pre-configured httpx client.

    Returns:
        A signed-in session if an identity provider or access token is
        available, otherwise a signed-out one.
    """
    settings = settings or default_settings
    if identity is None:
        identity = StaticIdentityProvider(settings.access_token)
        account = Account(username=username) if settings.access_token else None
    else:
        account = Account(username=username)
    return MaintenanceSession(settings=settings, identity=identity, account=account, http=http)
