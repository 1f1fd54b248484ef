"""
Shared fixtures: in-memory SQLite database, app clients with their own
cookie jars, and a notification sender that records instead of mailing.
"""

from __future__ import annotations

import os

os.environ.setdefault("TH_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TH_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("TH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TH_SMTP_HOST", "")

import uuid  # noqa: E402
from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.credentials import CredentialIssuer  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.errors import NotificationError  # noqa: E402
from app.core.notifications import NotificationSender, get_notification_sender  # noqa: E402
from app.core.session import CSRF_COOKIE, CSRF_HEADER  # noqa: E402
from app.main import app  # noqa: E402
from app.services.store import IdentityStore  # noqa: E402

PASSWORD = "correct-horse-42"


# ---------------------------------------------------------------------------
# Notification double
# ---------------------------------------------------------------------------

@dataclass
class SentInvite:
    email: str
    name: str
    password: str
    role: str
    token: str


class RecordingSender(NotificationSender):
    """Keeps every invite in memory; set ``fail`` to simulate an SMTP outage."""

    def __init__(self):
        super().__init__()
        self.sent: list[SentInvite] = []
        self.fail = False

    async def send_invite(self, email, name, password, role, token):
        if self.fail:
            raise NotificationError("SMTP unavailable")
        self.sent.append(SentInvite(email, name, password, role, token))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db):
    return IdentityStore(db)


@pytest.fixture
def issuer(db):
    return CredentialIssuer(db)


@pytest.fixture
def sender():
    return RecordingSender()


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------

@pytest.fixture
async def make_client(session_factory, sender):
    """Factory for clients with independent cookie jars (one per actor).

    Each client echoes its CSRF cookie in the CSRF header, as the web app does.
    """

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_notification_sender] = lambda: sender

    clients: list[AsyncClient] = []

    async def _make() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="https://test")

        async def add_csrf(request):
            token = client.cookies.get(CSRF_COOKIE)
            if token:
                request.headers[CSRF_HEADER] = token

        client.event_hooks = {"request": [add_csrf], "response": []}
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()


@pytest.fixture
async def client(make_client):
    return await make_client()


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

@dataclass
class Actor:
    client: AsyncClient
    email: str
    profile_id: uuid.UUID
    role: str
    organization_id: uuid.UUID | None = None


async def signup(client, email, *, role="owner", organization_id=None, name=None, password=PASSWORD):
    body = {"email": email, "password": password, "name": name or email.split("@")[0], "role": role}
    if organization_id is not None:
        body["organization_id"] = str(organization_id)
    return await client.post("/auth/signup", json=body)


async def login(client, email, password=PASSWORD):
    return await client.post("/auth/login", json={"email": email, "password": password})


async def sign_in_as(client, email, password=PASSWORD) -> Actor:
    resp = await login(client, email, password)
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    org_id = data["organization_id"]
    return Actor(
        client=client,
        email=email,
        profile_id=uuid.UUID(data["profile_id"]),
        role=data["role"],
        organization_id=uuid.UUID(org_id) if org_id else None,
    )


@pytest.fixture
def new_actor(make_client):
    """Register and sign in an actor; owners also create an organization."""

    async def _new(email, *, role="owner", organization_id=None, organization_name=None) -> Actor:
        client = await make_client()
        resp = await signup(client, email, role=role, organization_id=organization_id)
        assert resp.status_code == 201, resp.text
        actor = await sign_in_as(client, email)
        if role == "owner" and organization_name:
            resp = await client.post("/api/v1/organizations", json={"name": organization_name})
            assert resp.status_code == 201, resp.text
            actor.organization_id = uuid.UUID(resp.json()["data"]["id"])
        return actor

    return _new


@pytest.fixture
async def owner(new_actor) -> Actor:
    return await new_actor("owner@acme.example.com", organization_name="Acme")


@pytest.fixture
async def admin(new_actor, owner) -> Actor:
    return await new_actor("admin@acme.example.com", role="admin", organization_id=owner.organization_id)


@pytest.fixture
async def member(new_actor, owner) -> Actor:
    return await new_actor("member@acme.example.com", role="member", organization_id=owner.organization_id)
