# fms/directory/stores.py
"""
Narrow store interfaces the assignment and notification code depends on,
plus their SQLAlchemy implementations.

The SQL stores never commit. Callers own the transaction so a claim and the
ticket write that depends on it land (or roll back) together.
"""

from dataclasses import dataclass
from typing import Collection, Iterable, Protocol

from sqlalchemy import update
from sqlalchemy.orm import Session

from fms.core.clock import utcnow
from fms.directory.models import (
    Category,
    ResolverAvailability,
    Role,
    SiteMembership,
    SkillGroup,
    User,
)


@dataclass(frozen=True)
class Member:
    user_id: int
    site_id: int
    role: Role


@dataclass(frozen=True)
class CategoryRef:
    code: str
    skill_group_id: int
    priority: str
    sla_hours: int


class MembershipStore(Protocol):
    def active_member(self, user_id: int, site_id: int) -> Member | None: ...

    def active_members(self, site_id: int, roles: Collection[Role]) -> list[Member]: ...


class AvailabilityStore(Protocol):
    def find_available(
        self, skill_group_id: int, site_id: int, exclude: Collection[int] = ()
    ) -> int | None: ...

    def claim(self, user_id: int, skill_group_id: int, site_id: int) -> bool: ...

    def release(self, user_id: int, skill_group_id: int, site_id: int) -> bool: ...

    def set_available(self, user_id: int, skill_group_id: int, site_id: int, available: bool) -> None: ...


class ReferenceDataStore(Protocol):
    def category_by_code(self, code: str) -> CategoryRef | None: ...

    def skill_group_by_code(self, code: str) -> int | None: ...


class SqlMembershipStore:
    def __init__(self, db: Session):
        self.db = db

    def active_member(self, user_id: int, site_id: int) -> Member | None:
        row = (
            self.db.query(SiteMembership)
            .filter(
                SiteMembership.user_id == user_id,
                SiteMembership.site_id == site_id,
                SiteMembership.is_active.is_(True),
            )
            .first()
        )
        if not row:
            return None
        role = Role.parse(row.role)
        if role is None:
            return None
        return Member(row.user_id, row.site_id, role)

    def active_members(self, site_id: int, roles: Collection[Role]) -> list[Member]:
        rows = (
            self.db.query(SiteMembership)
            .filter(SiteMembership.site_id == site_id, SiteMembership.is_active.is_(True))
            .order_by(SiteMembership.id)
            .all()
        )
        members = []
        for row in rows:
            role = Role.parse(row.role)
            if role is not None and role in roles:
                members.append(Member(row.user_id, row.site_id, role))
        return members

    def user_names(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        rows = self.db.query(User.id, User.full_name).filter(User.id.in_(ids)).all()
        return {uid: name for uid, name in rows}

    def users_with_skill(self, site_id: int, skill_code: str) -> set[int]:
        rows = (
            self.db.query(ResolverAvailability.user_id)
            .join(SkillGroup, SkillGroup.id == ResolverAvailability.skill_group_id)
            .filter(ResolverAvailability.site_id == site_id, SkillGroup.code == skill_code)
            .all()
        )
        return {uid for (uid,) in rows}


class SqlAvailabilityStore:
    def __init__(self, db: Session):
        self.db = db

    def find_available(
        self, skill_group_id: int, site_id: int, exclude: Collection[int] = ()
    ) -> int | None:
        query = self.db.query(ResolverAvailability.user_id).filter(
            ResolverAvailability.skill_group_id == skill_group_id,
            ResolverAvailability.site_id == site_id,
            ResolverAvailability.is_available.is_(True),
        )
        if exclude:
            query = query.filter(ResolverAvailability.user_id.notin_(list(exclude)))
        row = query.order_by(ResolverAvailability.id).first()
        return row[0] if row else None

    def claim(self, user_id: int, skill_group_id: int, site_id: int) -> bool:
        # Conditional update: only one caller can flip a given row to unavailable
        result = self.db.execute(
            update(ResolverAvailability)
            .where(
                ResolverAvailability.user_id == user_id,
                ResolverAvailability.skill_group_id == skill_group_id,
                ResolverAvailability.site_id == site_id,
                ResolverAvailability.is_available.is_(True),
            )
            .values(is_available=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release(self, user_id: int, skill_group_id: int, site_id: int) -> bool:
        """Give a claim back. Only flips an existing unavailable row; never creates one."""
        result = self.db.execute(
            update(ResolverAvailability)
            .where(
                ResolverAvailability.user_id == user_id,
                ResolverAvailability.skill_group_id == skill_group_id,
                ResolverAvailability.site_id == site_id,
                ResolverAvailability.is_available.is_(False),
            )
            .values(is_available=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_available(self, user_id: int, skill_group_id: int, site_id: int, available: bool) -> None:
        row = (
            self.db.query(ResolverAvailability)
            .filter(
                ResolverAvailability.user_id == user_id,
                ResolverAvailability.skill_group_id == skill_group_id,
                ResolverAvailability.site_id == site_id,
            )
            .first()
        )
        if row is None:
            row = ResolverAvailability(
                user_id=user_id, skill_group_id=skill_group_id, site_id=site_id
            )
            self.db.add(row)
        row.is_available = available
        row.updated_at = utcnow()
        self.db.flush()


class SqlReferenceDataStore:
    def __init__(self, db: Session):
        self.db = db

    def category_by_code(self, code: str) -> CategoryRef | None:
        row = self.db.query(Category).filter(Category.code == code).first()
        if not row:
            return None
        return CategoryRef(row.code, row.skill_group_id, row.priority, row.sla_hours)

    def skill_group_by_code(self, code: str) -> int | None:
        row = self.db.query(SkillGroup.id).filter(SkillGroup.code == code).first()
        return row[0] if row else None
