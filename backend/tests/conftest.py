import uuid
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from wanshiwu.database import Base, get_db
from wanshiwu.main import app
from wanshiwu.core.constants import UserRole, UserStatus, ServiceField
from wanshiwu.core.security import create_access_token
from wanshiwu.models.user import User

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# pysqlite defers BEGIN; emit it ourselves so SAVEPOINTs behave
@event.listens_for(engine.sync_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine.sync_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, role: UserRole, status: UserStatus, name: str) -> User:
    user = User(
        id=f"uid-{uuid.uuid4().hex[:12]}",
        email=f"{uuid.uuid4().hex[:8]}@wanshiwu.test",
        role=role,
        status=status,
        display_name=name,
        phone="91234567",
        age="30",
        fields=[ServiceField.LIFE_HELPER.value],
        skills=[],
        availability=[],
        target_audience=[],
        completed_tasks=0,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.ADMIN, UserStatus.APPROVED, "管理員")


@pytest_asyncio.fixture
async def volunteer_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.VOLUNTEER, UserStatus.APPROVED, "陳大文")


@pytest_asyncio.fixture
async def other_volunteer(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.VOLUNTEER, UserStatus.APPROVED, "李小明")


@pytest_asyncio.fixture
async def pending_volunteer(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.VOLUNTEER, UserStatus.PENDING, "張三")


def get_auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


def request_payload(**overrides) -> dict:
    payload = {
        "requester": {
            "name": "黃婆婆",
            "phone": "9123 4567",
            "age": "78",
            "district": "深水埗",
        },
        "description": "想搵人陪我去覆診",
        "fields": ["生活助手"],
        "appreciation": "請飲茶",
    }
    payload.update(overrides)
    return payload


async def submit_request(client: AsyncClient, **overrides) -> str:
    response = await client.post("/api/v1/requests/submit", json=request_payload(**overrides))
    assert response.status_code == 201
    return response.json()["id"]


async def move_request(client: AsyncClient, admin: User, request_id: str, *statuses: str):
    response = None
    for status in statuses:
        response = await client.patch(
            f"/api/v1/requests/{request_id}",
            headers=get_auth_headers(admin),
            json={"status": status},
        )
        assert response.status_code == 200, response.text
    return response
