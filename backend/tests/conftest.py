"""
Pytest configuration and fixtures for chat tests.

Every test gets a fresh in-memory SQLite database seeded with a small golf
community:

    alice  follows bob
    carol  follows alice
    dave   follows nobody and belongs to no club

    Pinehurst (account user-club): alice member, bob member+manager,
    carol manager-owner. Augusta (account user-augusta): empty.
"""

from collections import defaultdict
from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clubchat.chat.service import ChatService
from clubchat.core.auth import create_access_token
from clubchat.core.realtime import RoomBroadcaster
from clubchat.db.session import Base, get_db
from clubchat.models import ClubRoles, Follow, GolfClub, GolfClubRoleAssignment, Roles, User
from clubchat.routes.realtime import ChatGateway
from clubchat.services.notification import NotificationService


class FakeSocketServer:
    """Records what the gateway does to a Socket.IO server."""

    def __init__(self):
        self.handlers = {}
        self.sessions = {}
        self.rooms = defaultdict(set)
        self.emitted = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = dict(session)

    async def get_session(self, sid, namespace=None):
        return self.sessions[sid]

    async def enter_room(self, sid, room, namespace=None):
        self.rooms[room].add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms[room].discard(sid)

    async def emit(self, event, data=None, to=None, room=None, skip_sid=None, namespace=None):
        self.emitted.append({"event": event, "data": data, "room": to or room})

    def events(self, name):
        return [e for e in self.emitted if e["event"] == name]


class RecordingPublisher:
    """Stands in for the per-user Socket.IO publisher of the notification service."""

    def __init__(self):
        self.calls = []

    async def __call__(self, user_id, event, data):
        self.calls.append((user_id, event, data))

    def recipients(self, notification_type=None):
        return [
            user_id for user_id, _, data in self.calls
            if notification_type is None or data["type"] == notification_type
        ]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db) -> SimpleNamespace:
    """Seed users, follows and clubs; returns their ids."""
    ids = SimpleNamespace(
        alice="user-alice",
        bob="user-bob",
        carol="user-carol",
        dave="user-dave",
        club_account="user-club",
        augusta_account="user-augusta",
        club="club-pinehurst",
        augusta="club-augusta",
        admin="user-admin",
    )

    for user_id, username in [
        (ids.alice, "alice"),
        (ids.bob, "bob"),
        (ids.carol, "carol"),
        (ids.dave, "dave"),
    ]:
        db.add(User(
            id=user_id,
            username=username,
            email=f"{username}@example.com",
            display_name=username.title(),
            role=Roles.GOLFER,
        ))
    db.add(User(id=ids.club_account, username="pinehurst", display_name="Pinehurst", role=Roles.GOLF_CLUB))
    db.add(User(id=ids.augusta_account, username="augusta", display_name="Augusta", role=Roles.GOLF_CLUB))
    db.add(User(id=ids.admin, username="admin", display_name="Admin", role=Roles.ADMIN))

    db.add(Follow(follower_user_id=ids.alice, following_user_id=ids.bob))
    db.add(Follow(follower_user_id=ids.carol, following_user_id=ids.alice))

    db.add(GolfClub(id=ids.club, name="Pinehurst", club_user_id=ids.club_account, manager_user_id=ids.carol))
    db.add(GolfClub(id=ids.augusta, name="Augusta", club_user_id=ids.augusta_account))
    db.flush()
    db.add(GolfClubRoleAssignment(
        club_id=ids.club,
        golfer_user_id=ids.alice,
        roles=[ClubRoles.CLUB_MEMBER],
        created_at=datetime(2024, 1, 1),
    ))
    db.add(GolfClubRoleAssignment(
        club_id=ids.club,
        golfer_user_id=ids.bob,
        roles=[ClubRoles.CLUB_MEMBER, ClubRoles.CLUB_MANAGER],
        created_at=datetime(2024, 1, 2),
    ))
    db.commit()
    return ids


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(db, seed, publisher) -> ChatService:
    return ChatService(db, notifier=NotificationService(db, publisher=publisher))


@pytest.fixture
def socket_server() -> FakeSocketServer:
    return FakeSocketServer()


@pytest.fixture
def gateway(socket_server, session_factory, seed) -> ChatGateway:
    gateway = ChatGateway(socket_server, session_factory=session_factory)
    gateway.register()
    return gateway


def token_for(user_id: str) -> str:
    return create_access_token({"sub": user_id, "email": f"{user_id}@example.com"})


@pytest.fixture
def tokens():
    return token_for


@pytest.fixture
def auth_headers():
    def build(user_id: str) -> dict:
        return {"Authorization": f"Bearer {token_for(user_id)}"}
    return build


@pytest.fixture
def client(session_factory, socket_server, seed):
    from main import fastapi_app
    from clubchat.routes.chat import get_broadcaster

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_broadcaster] = lambda: RoomBroadcaster(socket_server)
    try:
        with TestClient(fastapi_app) as test_client:
            yield test_client
    finally:
        fastapi_app.dependency_overrides.clear()
