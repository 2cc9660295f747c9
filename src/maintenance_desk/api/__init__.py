"""
Maintenance backend API access.

Exports:
    ResilientClient: HTTP client with bearer tokens and one retry after 401
    TokenProvider: Protocol the client pulls tokens from
    MaintenanceApi: Typed endpoint methods
    TicketQuery: Ticket list filters
    ApiError, ApplicationError: Backend failures
    PreconditionError, InvalidTransitionError, AssignmentResolutionError:
        Client-side guard failures
"""

from maintenance_desk.api.client import ResilientClient, TokenProvider
from maintenance_desk.api.errors import (
    ApiError,
    ApplicationError,
    AssignmentResolutionError,
    InvalidTransitionError,
    PreconditionError,
)
from maintenance_desk.api.tickets import MaintenanceApi, TicketQuery

__all__ = [
    "ApiError",
    "ApplicationError",
    "AssignmentResolutionError",
    "InvalidTransitionError",
    "MaintenanceApi",
    "PreconditionError",
    "ResilientClient",
    "TicketQuery",
    "TokenProvider",
]
