"""
Token lifecycle management for backend API scopes.

TokenManager supplies a currently-valid bearer token per named scope:
- A cached token is reused while its `exp` claim is more than the refresh
  skew (5 minutes by default) away.
- Otherwise a silent acquisition runs. If it raises, the manager falls back
  to an interactive redirect and returns None: the token arrives later via
  complete_redirect().
- Tokens whose claims cannot be decoded count as already expired.

Per-scope state machine:

    NO_ACCOUNT -> SILENT_ACQUIRE -> CACHED
                                 -> REDIRECT_PENDING -> CACHED

CACHED drops back to SILENT_ACQUIRE when the token enters the skew window,
and immediately on invalidate() or sign_out().

Tokens are held in memory only and are never logged.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import jwt

from maintenance_desk.auth.identity import Account, IdentityError, IdentityProvider

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_SKEW_SECONDS = 300

RefreshCallback = Callable[[], Awaitable[str | None]]


class ApiScope(str, Enum):
    """Named API scopes tokens are issued for."""

    MAINTENANCE_API = "MaintenanceApi"
    NOTIFICATION_HUB = "NotificationHub"


class TokenState(str, Enum):
    """Lifecycle state of a scope's token."""

    NO_ACCOUNT = "no_account"
    SILENT_ACQUIRE = "silent_acquire"
    CACHED = "cached"
    REDIRECT_PENDING = "redirect_pending"


def decode_token_expiry(token: str) -> float | None:
    """
    Read the `exp` claim (epoch seconds) from a JWT without verifying it.

    Signature verification is the backend's job; the client only needs to
    know when to stop reusing the token.

    Args:
        token: Bearer token string.

    Returns:
        Expiry as epoch seconds, or None if the token cannot be decoded or
        carries no numeric `exp` claim.
    """
    try:
        claims = jwt.decode(
            token,
            options={
                "verify_signature": False,
                "verify_exp": False,
                "verify_nbf": False,
                "verify_iat": False,
                "verify_aud": False,
                "verify_iss": False,
            },
        )
    except jwt.PyJWTError:
        return None

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


@dataclass
class CachedToken:
    """
    A bearer token plus its decoded expiry.

    Attributes:
        access_token: The opaque bearer string.
        expires_at: Epoch seconds from the `exp` claim, None if undecodable.
    """

    access_token: str
    expires_at: float | None

    @classmethod
    def from_token(cls, access_token: str) -> "CachedToken":
        return cls(access_token=access_token, expires_at=decode_token_expiry(access_token))

    def is_fresh(self, now: float, skew_seconds: float) -> bool:
        """True if the token expires more than `skew_seconds` after `now`."""
        if self.expires_at is None:
            return False
        return self.expires_at - now > skew_seconds


class TokenManager:
    """
    Acquires and caches bearer tokens per API scope.

    Example:
        manager = TokenManager(
            identity=StaticIdentityProvider(token),
            scopes={ApiScope.MAINTENANCE_API: ["api://maintenance-api/access_as_user"]},
        )
        manager.sign_in(Account(username="ops@example.com"))
        token = await manager.get_token(ApiScope.MAINTENANCE_API)
    """

    def __init__(
        self,
        identity: IdentityProvider,
        scopes: dict[ApiScope, list[str]],
        refresh_skew_seconds: float = DEFAULT_REFRESH_SKEW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            identity: Identity provider used for silent and redirect acquisition.
            scopes: OAuth scope strings requested for each named API scope.
            refresh_skew_seconds: Reuse a cached token only while it expires
                more than this many seconds from now.
            clock: Returns current epoch seconds (injectable for tests).
        """
        self.identity = identity
        self.scopes = scopes
        self.refresh_skew_seconds = refresh_skew_seconds
        self._clock = clock
        self._account: Account | None = None
        self._cache: dict[ApiScope, CachedToken] = {}
        self._states: dict[ApiScope, TokenState] = {}
        self._locks: dict[ApiScope, asyncio.Lock] = {}
        self._refresh_callback: RefreshCallback | None = None

    # -------------------------------------------------------------------------
    # Account lifecycle
    # -------------------------------------------------------------------------

    @property
    def account(self) -> Account | None:
        return self._account

    @property
    def is_authenticated(self) -> bool:
        return self._account is not None

    def sign_in(self, account: Account) -> None:
        """Set the active account. Switching accounts drops cached tokens."""
        if self._account is not None and self._account != account:
            self.invalidate()
        self._account = account

    def sign_out(self) -> None:
        """Forget the account, every cached token, and the refresh callback."""
        self._account = None
        self._refresh_callback = None
        self.invalidate()

    def state(self, scope: ApiScope) -> TokenState:
        """Current lifecycle state for `scope`."""
        if self._account is None:
            return TokenState.NO_ACCOUNT
        state = self._states.get(scope, TokenState.SILENT_ACQUIRE)
        if state == TokenState.CACHED:
            cached = self._cache.get(scope)
            if cached is None or not cached.is_fresh(self._clock(), self.refresh_skew_seconds):
                return TokenState.SILENT_ACQUIRE
        return state

    def invalidate(self, scope: ApiScope | None = None) -> None:
        """Drop the cached token for `scope`, or for every scope."""
        targets = [scope] if scope is not None else list({*self._cache, *self._states})
        for target in targets:
            self._cache.pop(target, None)
            self._states.pop(target, None)

    # -------------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------------

    async def get_token(self, scope: ApiScope) -> str | None:
        """
        Return a valid token for `scope`, acquiring one if needed.

        Returns:
            The bearer token, or None when there is no account or an
            interactive redirect has been started instead.
        """
        if self._account is None:
            return None

        cached = self._cache.get(scope)
        if cached and cached.is_fresh(self._clock(), self.refresh_skew_seconds):
            return cached.access_token

        async with self._lock(scope):
            # Another caller may have finished acquiring while we waited
            cached = self._cache.get(scope)
            if cached and cached.is_fresh(self._clock(), self.refresh_skew_seconds):
                return cached.access_token
            return await self._acquire(scope, force_refresh=False)

    async def refresh_token(self, scope: ApiScope) -> str | None:
        """
        Obtain a new token after the backend rejected the current one.

        The rejected token is discarded first. If a refresh callback is
        registered, the token it returns is cached and returned. Otherwise a
        forced silent acquisition runs (with the usual redirect fallback).
        """
        if self._account is None:
            self._refresh_callback = None
            return None

        if self._refresh_callback is None:
            async with self._lock(scope):
                self.invalidate(scope)
                return await self._acquire(scope, force_refresh=True)

        # Not under the scope lock: the callback may call get_token() itself
        self.invalidate(scope)
        access_token = await self._refresh_callback()
        if access_token:
            self._cache[scope] = CachedToken.from_token(access_token)
            self._states[scope] = TokenState.CACHED
        return access_token

    def register_refresh_callback(self, callback: RefreshCallback) -> None:
        """Install the refresh callback. Last registration wins."""
        self._refresh_callback = callback

    def complete_redirect(self, scope: ApiScope, access_token: str) -> None:
        """Record the token delivered when an interactive redirect completes."""
        self._cache[scope] = CachedToken.from_token(access_token)
        self._states[scope] = TokenState.CACHED
        logger.info(f"Redirect sign-in completed for {scope.value}")

    async def get_all_tokens(self) -> dict[ApiScope, str | None]:
        """
        Acquire a token for every configured scope concurrently.

        A failure in one scope yields None for that scope only.
        """
        scopes = list(self.scopes)
        results = await asyncio.gather(
            *(self.get_token(scope) for scope in scopes), return_exceptions=True
        )
        tokens: dict[ApiScope, str | None] = {}
        for scope, result in zip(scopes, results):
            if isinstance(result, Exception):
                logger.error(f"Token acquisition for {scope.value} failed: {result}")
                tokens[scope] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                tokens[scope] = result
        return tokens

    def provider_for(self, scope: ApiScope) -> "ScopedTokenProvider":
        """Return a TokenProvider bound to `scope`."""
        return ScopedTokenProvider(manager=self, scope=scope)

    async def _acquire(self, scope: ApiScope, force_refresh: bool) -> str | None:
        account = self._account
        if account is None:
            return None
        requested = self.scopes.get(scope, [])

        self._states[scope] = TokenState.SILENT_ACQUIRE
        try:
            access_token = await self.identity.acquire_token_silent(
                requested, account, force_refresh=force_refresh
            )
        except Exception as e:
            logger.warning(f"Silent token acquisition for {scope.value} failed: {e}")
            return await self._redirect(scope, requested, account)

        cached = CachedToken.from_token(access_token)
        if cached.expires_at is None:
            logger.warning(f"Token for {scope.value} has no readable expiry; it will not be reused")
        self._cache[scope] = cached
        self._states[scope] = TokenState.CACHED
        logger.debug(f"Token acquired for {scope.value}")
        return access_token

    async def _redirect(
        self, scope: ApiScope, requested: list[str], account: Account
    ) -> str | None:
        try:
            await self.identity.acquire_token_redirect(requested, account)
        except IdentityError as e:
            # State stays SILENT_ACQUIRE so the next get_token() tries again
            logger.error(f"Redirect token acquisition for {scope.value} failed: {e}")
            return None
        self._states[scope] = TokenState.REDIRECT_PENDING
        return None

    def _lock(self, scope: ApiScope) -> asyncio.Lock:
        lock = self._locks.get(scope)
        if lock is None:
            lock = self._locks[scope] = asyncio.Lock()
        return lock


@dataclass
class ScopedTokenProvider:
    """
    TokenProvider view of a TokenManager for a single scope.

    This is what gets injected into ResilientClient.
    """

    manager: TokenManager
    scope: ApiScope

    async def get_token(self) -> str | None:
        return await self.manager.get_token(self.scope)

    async def refresh_token(self) -> str | None:
        return await self.manager.refresh_token(self.scope)
