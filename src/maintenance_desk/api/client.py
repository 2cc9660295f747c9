"""
Authenticated HTTP client with bounded refresh-and-retry.

ResilientClient receives an injected httpx.AsyncClient with base_url set to
the maintenance API, plus a TokenProvider that supplies bearer tokens.

Retry policy:
- Only HTTP 401 triggers recovery.
- Recovery asks the token provider for a fresh token exactly once and, if
  one comes back, re-sends the same request exactly once.
- Anything else (other 4xx/5xx, a second 401, no refreshed token) is raised
  as ApiError with no further attempts.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from maintenance_desk.api.errors import ApplicationError, error_from_response

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenProvider(Protocol):
    """
    Source of bearer tokens for one API scope.

    get_token() returns a cached-or-silently-acquired token, or None when no
    token is available yet (signed out, or an interactive sign-in is pending).
    refresh_token() forces a new acquisition after the backend rejected the
    current token.
    """

    async def get_token(self) -> str | None:
        ...

    async def refresh_token(self) -> str | None:
        ...


@dataclass
class ResilientClient:
    """
    HTTP client that attaches bearer tokens and recovers once from a 401.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the API base.
        tokens: Token provider for the API scope. None sends every request
            without an Authorization header.

    Example:
        async with httpx.AsyncClient(base_url="https://maint.example.com") as http:
            client = ResilientClient(http=http, tokens=manager.provider_for(scope))
            payload = await client.get("/api/v1/tickets", params={"limit": 20})
    """

    http: httpx.AsyncClient
    tokens: TokenProvider | None = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the client's base_url.
            params: Query parameters; entries whose value is None are dropped.
            json: Optional JSON body.

        Returns:
            Decoded JSON body, or None for an empty body.

        Raises:
            ApiError: On non-2xx status after the single recovery attempt.
            ApplicationError: On a 2xx envelope with success=false.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}

        token = await self.tokens.get_token() if self.tokens else None
        response = await self._send(method, path, token, query, json)

        if response.status_code == 401 and self.tokens is not None:
            logger.info(f"{method} {path} returned 401, refreshing token")
            new_token = await self.tokens.refresh_token()
            if new_token:
                response = await self._send(method, path, new_token, query, json)
            else:
                logger.warning(f"Token refresh for {method} {path} yielded no token")

        if response.is_error:
            raise error_from_response(response)

        return self._decode(response)

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def _send(
        self,
        method: str,
        path: str,
        token: str | None,
        params: dict[str, Any],
        json: Any,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return await self.http.request(
            method, path, params=params or None, json=json, headers=headers
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        payload = response.json()
        if isinstance(payload, dict) and payload.get("success") is False:
            raise ApplicationError(payload)
        return payload
