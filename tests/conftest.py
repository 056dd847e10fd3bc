# tests/conftest.py
import os
import tempfile
from datetime import timedelta

# Point the app at a throwaway database before anything imports fms
_tmpdir = tempfile.mkdtemp(prefix="fms-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["SEED_REFERENCE_DATA"] = "false"
os.environ["PUSH_GATEWAY_URL"] = ""

import pytest
from fastapi.testclient import TestClient

from fms.core.clock import utcnow
from fms.core.database import Base, SessionLocal, engine
from fms.directory.models import ResolverAvailability, Role, Site, SiteMembership, SkillGroup, User
from fms.directory.seed import seed_reference_data
from fms.main import app
from fms.notification.models import PushEndpoint
from fms.notification.services import FanoutDispatcher, get_fanout
from tests.fakes import RecordingTransport


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_reference_data(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def push():
    return RecordingTransport()


@pytest.fixture()
def client(db, push):
    app.dependency_overrides[get_fanout] = lambda: FanoutDispatcher(SessionLocal, push)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class Factory:
    def __init__(self, db):
        self.db = db

    def skill_group(self, code):
        return self.db.query(SkillGroup).filter(SkillGroup.code == code).one().id

    def site(self, name="Tower A", code=None):
        site = Site(name=name, code=code or name.lower().replace(" ", "-"))
        self.db.add(site)
        self.db.commit()
        return site.id

    def user(self, name, site_id=None, role=None, active=True):
        user = User(full_name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
        self.db.add(user)
        self.db.commit()
        if site_id is not None and role is not None:
            self.member(user.id, site_id, role, active)
        return user.id

    def member(self, user_id, site_id, role: Role, active=True):
        self.db.add(SiteMembership(user_id=user_id, site_id=site_id, role=role.value, is_active=active))
        self.db.commit()

    def available(self, user_id, skill_code, site_id, available=True):
        self.db.add(ResolverAvailability(
            user_id=user_id,
            skill_group_id=self.skill_group(skill_code),
            site_id=site_id,
            is_available=available,
        ))
        self.db.commit()

    def endpoint(self, user_id, token, fingerprint=None, age_minutes=0, active=True):
        ep = PushEndpoint(
            user_id=user_id,
            token=token,
            browser_fingerprint=fingerprint,
            is_active=active,
            updated_at=utcnow() - timedelta(minutes=age_minutes),
        )
        self.db.add(ep)
        self.db.commit()
        return ep.id


@pytest.fixture()
def factory(db):
    return Factory(db)
