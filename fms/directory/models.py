# fms/directory/models.py
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from fms.core.clock import utcnow
from fms.core.database import Base


class Role(str, Enum):
    """Site membership roles. Compared as enum members, never as raw strings."""
    MST = "mst"
    PROPERTY_ADMIN = "property_admin"
    SECURITY = "security"
    STAFF = "staff"
    TENANT = "tenant"

    @classmethod
    def parse(cls, value: "str | Role | None") -> "Role | None":
        if value is None:
            return None
        if isinstance(value, Role):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=True)


class SiteMembership(Base):
    __tablename__ = "site_memberships"
    __table_args__ = (UniqueConstraint("user_id", "site_id", name="uq_membership_user_site"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    role = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class SkillGroup(Base):
    __tablename__ = "skill_groups"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)


class Category(Base):
    # Global reference data, looked up by code and never by site
    __tablename__ = "issue_categories"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    skill_group_id = Column(Integer, ForeignKey("skill_groups.id"), nullable=False)
    priority = Column(String, default=Priority.MEDIUM.value, nullable=False)
    sla_hours = Column(Integer, default=24, nullable=False)


class ResolverAvailability(Base):
    __tablename__ = "resolver_availability"
    __table_args__ = (
        UniqueConstraint("user_id", "skill_group_id", "site_id", name="uq_availability_user_skill_site"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    skill_group_id = Column(Integer, ForeignKey("skill_groups.id"), nullable=False)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
