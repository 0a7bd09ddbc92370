import os
import uuid

# Settings are read at import time, give them something before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hostd-test.sqlite3")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.security import create_access_token, hash_password
from app.core.utils import random_chars
from app.main import app
from app.core import models
from app.core.schemas import UserRole
from app.core.database import Base, get_db
from app.core.datasource import LocalDatasource, get_datasource


# Fresh sqlite file per test, tables created straight from the models
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite3'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


# Create session and rollback once it is done
@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    TestingSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with TestingSessionLocal() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest_asyncio.fixture(scope="function")
async def datasource(tmp_path):
    return LocalDatasource(tmp_path / "uploads")


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, datasource):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_datasource] = lambda: datasource

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# Factory for users, unique username per call unless one is given
@pytest_asyncio.fixture(scope="function")
async def make_user(db_session: AsyncSession):
    async def _make_user(username=None, role=UserRole.USER.value):
        user = models.User(
            username=username or f"user_{uuid.uuid4().hex[:8]}",
            password=hash_password("password123"),
            token=random_chars(32),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


# Factory for stored objects
@pytest_asyncio.fixture(scope="function")
async def make_image(db_session: AsyncSession):
    async def _make_image(owner, mimetype="image/png", views=0):
        image = models.Image(
            file=f"{uuid.uuid4().hex}.bin",
            mimetype=mimetype,
            views=views,
            user_id=owner.id,
        )
        db_session.add(image)
        await db_session.commit()
        return image

    return _make_image


# User
@pytest_asyncio.fixture(scope="function")
async def test_user(make_user):
    return await make_user(role=UserRole.USER.value)


# Admin
@pytest_asyncio.fixture(scope="function")
async def test_admin(make_user):
    return await make_user(role=UserRole.ADMIN.value)


# Token for user
@pytest_asyncio.fixture(scope="function")
async def auth_headers_user(test_user):
    token = create_access_token(test_user.id, test_user.role)
    return {"Authorization": f"Bearer {token}"}


# Token for admin
@pytest_asyncio.fixture(scope="function")
async def auth_headers_admin(test_admin):
    token = create_access_token(test_admin.id, test_admin.role)
    return {"Authorization": f"Bearer {token}"}
