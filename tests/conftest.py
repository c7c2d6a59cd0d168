"""
Shared pytest fixtures – in-memory SQLite for unit tests (no real Postgres needed).
"""
from __future__ import annotations

import os

from cryptography.fernet import Fernet

# Configure test env before any courier_bridge import
os.environ.setdefault("CONFIG_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret-32chars-xxxxx")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["EXTENSION_API_KEY"] = "test-extension"
os.environ["EXTENSION_API_SECRET"] = "test-extension-secret"
os.environ["EXTENSION_BASE_URL"] = "https://bridge.example.com"
os.environ["WEBHOOK_SHARED_SECRET"] = ""
os.environ.pop("WEBHOOK_BEARER_TOKEN", None)
os.environ.pop("BOBGO_TOKEN", None)

from typing import AsyncGenerator  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from courier_bridge.admin.crypto import encrypt  # noqa: E402
from courier_bridge.database import get_db  # noqa: E402
from courier_bridge.main import app  # noqa: E402
from courier_bridge.models import Base, Configuration, PlatformSession  # noqa: E402

# Use aiosqlite for tests (no Postgres needed)
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

COMPANY_ID = "11874"


@pytest_asyncio.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def seed_configuration(factory: async_sessionmaker, company_id: str = COMPANY_ID, **fields) -> None:
    values = {
        "company_name": "Acme Outdoor",
        "street_address": "1 Main Road",
        "local_area": "Rosebank",
        "city": "Johannesburg",
        "zone": "Gauteng",
        "country": "South Africa",
        "country_code": "ZA",
        "postal_code": "2196",
        "delivery_partner_url": "https://courier.test",
        "delivery_partner_api_token_encrypted": encrypt("courier-token"),
    }
    values.update(fields)
    async with factory() as session:
        session.add(Configuration(fynd_company_id=company_id, **values))
        await session.commit()


async def seed_platform_session(factory: async_sessionmaker, company_id: str = COMPANY_ID) -> None:
    async with factory() as session:
        session.add(
            PlatformSession(
                company_id=company_id,
                access_token_encrypted=encrypt("platform-access-token"),
                refresh_token_encrypted=encrypt("platform-refresh-token"),
                expires_at=None,
            )
        )
        await session.commit()
