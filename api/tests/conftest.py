"""Shared test fixtures.

Route tests run against the real FastAPI app with the database session and the
authenticated user swapped out through dependency overrides. Store reads are
patched per test, so nothing here needs a running Postgres.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from centrobook.core.database import get_db
from centrobook.core.dependencies import get_current_user
from centrobook.main import app
from centrobook.models.user import CenterRole, UserRole

CENTER_ID = 1
COURT_ID = 7


class FakeSession:
    """Just enough of AsyncSession for the write path: add, flush (assigns ids)."""

    def __init__(self):
        self.added = []
        self._next_id = 100

    def add(self, obj):
        self.added.append(obj)

    def add_all(self, objs):
        self.added.extend(objs)

    async def flush(self):
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = self._next_id
                self._next_id += 1

    async def execute(self, *args, **kwargs):
        raise AssertionError("Unexpected query; patch the store function instead")


def make_user(role=UserRole.STAFF, center_role=None, user_id=1):
    links = []
    if center_role is not None:
        links.append(SimpleNamespace(center_id=CENTER_ID, role=center_role, is_active=True))
    return SimpleNamespace(id=user_id, role=role, center_roles=links, is_active=True)


def make_center(**settings):
    return SimpleNamespace(
        id=CENTER_ID,
        name="Test Center",
        timezone="Europe/Madrid",
        day_start="06:00",
        night_start="18:00",
        settings=settings,
    )


def make_court(center=None, hourly_rate="20.00", lighting="5.00"):
    center = center or make_center()
    return SimpleNamespace(
        id=COURT_ID,
        center_id=center.id,
        center=center,
        name="Pista 1",
        hourly_rate=Decimal(hourly_rate),
        has_lighting=lighting is not None,
        lighting_extra_per_hour=Decimal(lighting) if lighting is not None else None,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def manager():
    return make_user(center_role=CenterRole.MANAGER)


@pytest.fixture
def receptionist():
    return make_user(center_role=CenterRole.RECEPTION, user_id=2)


@pytest.fixture
def court():
    return make_court()


@pytest.fixture
async def client(session):
    app.dependency_overrides[get_db] = lambda: session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Make every request authenticate as `user`."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login
