import os
import sys

# Ensure backend package is on sys.path for imports during tests
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# 設定必須在匯入 app 之前
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import itertools

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, enable_sqlite_savepoints, get_db, utc_now
from app.core.security import create_access_token, get_password_hash
from app.core.websocket_manager import manager
from app.main import app
from app.models.bid import Bid, BidStatusEnum
from app.models.project import Project, ProjectStatusEnum
from app.models.user import User, UserRoleEnum

PASSWORD = "secret123"
_user_seq = itertools.count(1)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_connections():
    manager.active_connections.clear()
    yield
    manager.active_connections.clear()


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def user_password():
    return PASSWORD

@pytest.fixture
def make_user(db):
    async def _make_user(role: UserRoleEnum, name: str = None, email: str = None) -> User:
        count = next(_user_seq)
        user = User(
            name=name or f"{role.value}-{count}",
            email=email or f"{role.value}{count}@example.com",
            password_hash=get_password_hash(PASSWORD),
            role=role,
        )
        db.add(user)
        await db.commit()
        return user
    return _make_user


@pytest.fixture
async def client_user(make_user):
    return await make_user(UserRoleEnum.client, name="Alice Client", email="alice@example.com")


@pytest.fixture
async def freelancer(make_user):
    return await make_user(UserRoleEnum.freelancer, name="Bob Freelancer", email="bob@example.com")


@pytest.fixture
async def other_freelancer(make_user):
    return await make_user(UserRoleEnum.freelancer, name="Carol Freelancer", email="carol@example.com")


@pytest.fixture
async def admin_user(make_user):
    return await make_user(UserRoleEnum.admin, name="Admin", email="admin@example.com")


@pytest.fixture
def make_project(db):
    async def _make_project(client: User, **overrides) -> Project:
        values = dict(
            client_id=client.user_id,
            title="Build a landing page",
            description="Need a responsive landing page for a product launch.",
            min_budget=500,
            max_budget=1000,
            duration=14,
            skills=["html", "css"],
            status=ProjectStatusEnum.open,
            progress=0,
            bid_ids=[],
        )
        values.update(overrides)
        project = Project(**values)
        db.add(project)
        await db.commit()
        return project
    return _make_project


@pytest.fixture
def make_bid(db):
    async def _make_bid(project: Project, freelancer: User, **overrides) -> Bid:
        values = dict(
            project_id=project.project_id,
            freelancer_id=freelancer.user_id,
            amount=800,
            proposal="I have built many landing pages and can deliver this one quickly and well.",
            delivery_time=10,
            status=BidStatusEnum.pending,
        )
        values.update(overrides)
        bid = Bid(**values)
        db.add(bid)
        await db.commit()
        return bid
    return _make_bid


@pytest.fixture
def make_in_progress_project(make_project):
    async def _make(client: User, freelancer: User, amount: float = 800, **overrides) -> Project:
        values = dict(
            status=ProjectStatusEnum.in_progress,
            selected_freelancer_id=freelancer.user_id,
            final_bid_amount=amount,
            start_date=utc_now(),
        )
        values.update(overrides)
        return await make_project(client, **values)
    return _make


def _auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email, "user_id": user.user_id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers


class FakeWebSocket:
    """只記錄送出的訊息，fail=True 時模擬已斷線"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, message: str):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)


@pytest.fixture
def fake_websocket():
    return FakeWebSocket
