# fms/notification/recipients.py
"""
Who hears about what. Pure functions over membership snapshots so the
visibility rules can be tested without a database.
"""

from typing import Iterable

from fms.directory.models import Role
from fms.directory.stores import Member

TICKET_EVENT_ROLES = frozenset({
    Role.MST, Role.PROPERTY_ADMIN, Role.SECURITY, Role.STAFF, Role.TENANT,
})
COMPLETION_ROLES = frozenset({Role.PROPERTY_ADMIN})
BOOKING_ROLES = frozenset({Role.PROPERTY_ADMIN, Role.STAFF})
BOOKING_SKILL = "technical"


def _unique(user_ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    ordered = []
    for uid in user_ids:
        if uid not in seen:
            seen.add(uid)
            ordered.append(uid)
    return ordered


def ticket_event_recipients(members: Iterable[Member], creator_id: int) -> list[int]:
    """
    Every non-tenant member in the allow-list, plus a tenant only when that
    tenant raised the ticket.
    """
    picked = []
    for m in members:
        if m.role not in TICKET_EVENT_ROLES:
            continue
        if m.role == Role.TENANT and m.user_id != creator_id:
            continue
        picked.append(m.user_id)
    return _unique(picked)


def completion_recipients(members: Iterable[Member], creator_id: int, creator_role: Role | None) -> list[int]:
    picked = [m.user_id for m in members if m.role in COMPLETION_ROLES]
    if creator_role == Role.TENANT:
        picked.append(creator_id)
    return _unique(picked)


def booking_recipients(members: Iterable[Member], technical_user_ids: set[int]) -> list[int]:
    picked = []
    for m in members:
        if m.role == Role.PROPERTY_ADMIN:
            picked.append(m.user_id)
        elif m.role == Role.STAFF and m.user_id in technical_user_ids:
            picked.append(m.user_id)
    return _unique(picked)


def split_assignee(recipient_ids: Iterable[int], assignee_id: int | None) -> tuple[int | None, list[int]]:
    """Separate the assignee from the broadcast list so nobody is told twice."""
    others = [uid for uid in _unique(recipient_ids) if uid != assignee_id]
    return assignee_id, others
