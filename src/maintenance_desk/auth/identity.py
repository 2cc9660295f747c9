"""
Identity provider seam for token acquisition.

The TokenManager never talks to an identity platform directly. It calls an
IdentityProvider, which offers the two acquisition styles the manager needs:
- acquire_token_silent(): use the cached session, no user interaction
- acquire_token_redirect(): hand control to the identity provider for an
  interactive sign-in. Completion arrives later through
  TokenManager.complete_redirect(), never as a return value.

Providers signal failure by raising IdentityError (or a subclass).
"""

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised by an identity provider when it cannot issue a token."""


class InteractionRequiredError(IdentityError):
    """Raised when only an interactive sign-in can produce a token."""


@dataclass(frozen=True)
class Account:
    """
    A signed-in account as known to the identity provider.

    Attributes:
        username: Login name (usually an email address).
        home_account_id: Provider-specific stable account identifier.
        name: Display name, if the provider supplied one.
    """

    username: str
    home_account_id: str = ""
    name: str = ""


@runtime_checkable
class IdentityProvider(Protocol):
    """Protocol for identity platforms that issue API access tokens."""

    async def acquire_token_silent(
        self, scopes: list[str], account: Account, force_refresh: bool = False
    ) -> str:
        """
        Acquire an access token without user interaction.

        Raises:
            IdentityError: If no token can be produced silently.
        """
        ...

    async def acquire_token_redirect(self, scopes: list[str], account: Account) -> None:
        """
        Start an interactive sign-in. Returns once control has been handed off.

        Raises:
            IdentityError: If the interactive flow could not be started.
        """
        ...


class StaticIdentityProvider:
    """
    Identity provider backed by a pre-issued access token.

    Used by the CLI, where the operator exports MAINTDESK_ACCESS_TOKEN
    obtained from the web sign-in. There is no browser to redirect, so the
    "interactive" step logs what the operator has to do.
    """

    def __init__(self, access_token: str | None) -> None:
        self._access_token = access_token

    def replace_token(self, access_token: str | None) -> None:
        """Swap in a newly issued token (e.g. after the operator signs in again)."""
        self._access_token = access_token

    async def acquire_token_silent(
        self, scopes: list[str], account: Account, force_refresh: bool = False
    ) -> str:
        if not self._access_token:
            raise InteractionRequiredError(
                f"No access token configured for {account.username}"
            )
        return self._access_token

    async def acquire_token_redirect(self, scopes: list[str], account: Account) -> None:
        logger.warning(
            f"Interactive sign-in required for scopes {', '.join(scopes)}: "
            "sign in through the web client and export MAINTDESK_ACCESS_TOKEN"
        )
