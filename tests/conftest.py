"""
Shared fixtures.

Every test gets its own throwaway SQLite database (aiosqlite) built
from the model metadata, plus a `factory` that inserts reference rows
and principals, and an HTTP client wired to the same database.
"""

import os

# Must be set before anything under `portal` is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from portal.core.database import get_db
from portal.core.security import create_access_token, hash_password
from portal.main import create_app
from portal.models import (
    ADMIN_ACCESS_ID,
    AccessKind,
    Base,
    Company,
    Device,
    DeviceStatus,
    Group,
    User,
)

DEFAULT_PASSWORD = "Desfibrilador1"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class Factory:
    """Inserts and commits rows so both services and the API see them."""

    def __init__(self, session):
        self.session = session
        self._review_base = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def group(self, group_code: str, name: str | None = None) -> Group:
        return await self._save(
            Group(id=uuid.uuid4(), group_code=group_code, name=name or group_code)
        )

    async def company(
        self,
        company_code: str,
        name: str,
        group: Group,
    ) -> Company:
        company = await self._save(
            Company(
                id=uuid.uuid4(),
                company_code=company_code,
                name=name,
                group_code=group.group_code,
            )
        )
        await self.session.refresh(company, ["group"])
        return company

    async def device(
        self,
        serial_number: str,
        *,
        group_name: str = "ABANCA",
        company_name: str = "ABANCA SERVICIOS",
        review_in_days: int = 30,
        contract_id: str | None = None,
        status: DeviceStatus = DeviceStatus.ACTIVE,
    ) -> Device:
        return await self._save(
            Device(
                id=uuid.uuid4(),
                serial_number=serial_number,
                contract_id=contract_id,
                company_name=company_name,
                group_name=group_name,
                location="Recepción",
                province="Madrid",
                installed_at=self._review_base - timedelta(days=365),
                next_review_at=self._review_base + timedelta(days=review_in_days),
                status=status,
            )
        )

    async def user(
        self,
        email: str,
        access_kind: AccessKind = AccessKind.ADMIN,
        access_id: str = ADMIN_ACCESS_ID,
        *,
        password: str = DEFAULT_PASSWORD,
        active: bool = True,
        **fields,
    ) -> User:
        return await self._save(
            User(
                id=uuid.uuid4(),
                email=email,
                password_hash=hash_password(password),
                first_name=fields.pop("first_name", "Ana"),
                last_name=fields.pop("last_name", "García"),
                access_kind=access_kind,
                access_id=access_id,
                active=active,
                **fields,
            )
        )


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
async def admin(factory):
    return await factory.user("admin@salvavidas.es", first_name="Admin", last_name="Portal")


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(session_factory):
    app = create_app()

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
