"""
Exception classes for maintenance API calls and client-side guards.

This module defines the error taxonomy surfaced to callers:
- ApiError: Non-2xx HTTP response (including a 401 that refresh could not fix)
- ApplicationError: HTTP 2xx whose envelope says success=false
- PreconditionError: Client-side guard rejected an operation before any
  request was made
- InvalidTransitionError: The ticket's status does not allow the operation
- AssignmentResolutionError: None of the requested assignee names resolved

Per project patterns:
- Inherit from Exception for base exception type
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

import json
from typing import Any

import httpx


class ApiError(Exception):
    """
    Raised when the backend answers with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response
        message: Best-effort backend message, or "HTTP <status>"
        details: Parsed error body when it was JSON, else None
    """

    def __init__(self, status_code: int, message: str, details: Any = None) -> None:
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


class ApplicationError(Exception):
    """
    Raised when the backend answers 2xx but reports success=false.

    Attributes:
        payload: The full response envelope
    """

    def __init__(self, payload: Any) -> None:
        self.payload = payload
        reason = _extract_message(payload) if isinstance(payload, dict) else None
        super().__init__(f"API returned success=false{f': {reason}' if reason else ''}")


class PreconditionError(Exception):
    """
    Raised when a client-side guard rejects an operation.

    Never reaches the network. The caller reports `reason` to the user.

    Attributes:
        operation: Name of the rejected operation (e.g. "assign", "cancel")
        reason: Human-readable explanation
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cannot {operation}: {reason}")


class InvalidTransitionError(PreconditionError):
    """
    Raised when the ticket's current status does not expose the operation.

    Attributes:
        status: The ticket status the operation was attempted from
    """

    def __init__(self, operation: str, status: str) -> None:
        self.status = status
        super().__init__(operation, f"not allowed while ticket is {status}")


class AssignmentResolutionError(PreconditionError):
    """
    Raised when none of the requested assignee names resolved to a person.

    Attributes:
        names: The names that were attempted
    """

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__("assign", "no valid assignees found in directory")


def _extract_message(body: Any) -> str | None:
    """Pull a readable message out of a backend error body."""
    if not body:
        return None
    if isinstance(body, str):
        return body
    if not isinstance(body, dict):
        return json.dumps(body)
    if body.get("message"):
        return str(body["message"])
    error = body.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        return json.dumps(error)
    if body.get("details"):
        return str(body["details"])
    return json.dumps(body)


def error_from_response(response: httpx.Response) -> ApiError:
    """
    Build an ApiError from a failed response.

    Never raises: bodies that are not JSON degrade to the raw text, and an
    empty or unreadable body degrades to "HTTP <status>".

    Args:
        response: The non-2xx httpx response.

    Returns:
        ApiError carrying status, message, and parsed details.
    """
    status = response.status_code
    details: Any = None
    message: str | None = None
    try:
        details = response.json()
        message = _extract_message(details)
    except ValueError:
        # Includes JSONDecodeError and UnicodeDecodeError
        message = response.text.strip() or None

    if message:
        return ApiError(status, f"HTTP {status} - {message}", details)
    return ApiError(status, f"HTTP {status}", details)
