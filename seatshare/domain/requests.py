"""Slot request lifecycle rules."""
from __future__ import annotations

from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


_TRANSITIONS = {
    RequestStatus.PENDING: frozenset(
        {RequestStatus.ASSIGNED, RequestStatus.REJECTED, RequestStatus.CANCELLED}
    ),
}


def can_transition(current: str | RequestStatus, target: str | RequestStatus) -> bool:
    """Return True when `current -> target` is an allowed lifecycle step."""
    try:
        source = RequestStatus(current)
        dest = RequestStatus(target)
    except ValueError:
        return False
    return dest in _TRANSITIONS.get(source, frozenset())
