"""
rallypoint.services.errors — Typed Service Failures
====================================================

Raised inside a service transaction so the session rolls back, then
surfaced unchanged to the caller.  The API layer maps each kind to an
HTTP status (see :data:`HTTP_STATUS`).
"""

from __future__ import annotations


class EngagementError(Exception):
    """Base class for every failure a service reports to its caller."""


class NotFoundError(EngagementError):
    """A referenced parent entity does not exist."""


class ConflictError(EngagementError):
    """A unique fact already exists, or changed underneath the action."""


class ValidationError(EngagementError):
    """Field constraints were violated."""


class ForbiddenError(EngagementError):
    """The entity's state disallows the action (locked thread, full post)."""


HTTP_STATUS: dict[type[EngagementError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 422,
    ForbiddenError: 403,
}


def http_status_for(exc: EngagementError) -> int:
    for cls in type(exc).__mro__:
        if cls in HTTP_STATUS:
            return HTTP_STATUS[cls]
    return 400
