"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- UUID parsing
- Reading the authenticated actor from a request

Actors are not stored in this service. Identity comes from the JWT
access token (read statelessly by JWTStatelessUserAuthentication), whose
``user_id`` claim is the actor id used by the workflow and ledger.

Usage:
    from core.helpers import get_actor_id, is_staff_actor

    actor_id = get_actor_id(request)
    if is_staff_actor(request):
        ...
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from rest_framework.exceptions import NotAuthenticated

if TYPE_CHECKING:
    from rest_framework.request import Request


def parse_uuid(value) -> uuid.UUID | None:
    """
    Parse a UUID from a string (or UUID).

    Returns:
        The UUID, or None when the value is not a valid UUID

    Example:
        parse_uuid("550e8400-e29b-41d4-a716-446655440000")  # UUID(...)
        parse_uuid("nope")  # None
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def get_actor_id(request: Request) -> uuid.UUID:
    """
    Return the authenticated actor's id as a UUID.

    Raises:
        NotAuthenticated: The token carries no usable user id
    """
    actor_id = parse_uuid(getattr(request.user, "id", None))
    if actor_id is None:
        raise NotAuthenticated("Token does not identify an actor")
    return actor_id


def is_staff_actor(request: Request) -> bool:
    """Whether the token marks the actor as platform staff."""
    return bool(getattr(request.user, "is_staff", False))
