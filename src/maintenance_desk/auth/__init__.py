"""
Authentication for the maintenance API.

Exports:
    TokenManager: Per-scope token cache with silent/redirect acquisition
    ScopedTokenProvider: TokenProvider bound to one scope
    ApiScope: Named API scopes
    TokenState: Token lifecycle states
    decode_token_expiry: Read the exp claim from a bearer token
    Account: Signed-in account
    IdentityProvider: Protocol for identity platforms
    StaticIdentityProvider: Pre-issued token provider used by the CLI
    IdentityError, InteractionRequiredError: Provider failures
"""

from maintenance_desk.auth.identity import (
    Account,
    IdentityError,
    IdentityProvider,
    InteractionRequiredError,
    StaticIdentityProvider,
)
from maintenance_desk.auth.tokens import (
    ApiScope,
    ScopedTokenProvider,
    TokenManager,
    TokenState,
    decode_token_expiry,
)

__all__ = [
    "Account",
    "ApiScope",
    "IdentityError",
    "IdentityProvider",
    "InteractionRequiredError",
    "ScopedTokenProvider",
    "StaticIdentityProvider",
    "TokenManager",
    "TokenState",
    "decode_token_expiry",
]
