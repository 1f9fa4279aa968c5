"""Async test fixtures for DealDesk tests using SQLite."""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dealdesk.database import enable_sqlite_foreign_keys, get_db
from dealdesk.models import Base, OrganizationMember, Role, User
from dealdesk.security.tokens import TokenClaims, hash_password
from dealdesk.services import auth_svc, lead_svc, organization_svc, pipeline_svc, plan_svc
from dealdesk.tenant.context import TenantContext


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        await plan_svc.ensure_default_plans(session)
        yield session


@pytest_asyncio.fixture
async def owner(db: AsyncSession) -> User:
    user = User(
        email="owner@example.com",
        name="Olivia Owner",
        password_hash=hash_password("ownerpass123"),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def org(db: AsyncSession, owner: User):
    return await organization_svc.create_organization(db, owner.id, "Acme Corp")


@pytest_asyncio.fixture
async def ctx(db: AsyncSession, owner: User, org) -> TenantContext:
    claims = TokenClaims(user_id=owner.id, organization_id=org.id, expires_at=0)
    return await auth_svc.resolve_context(db, claims)


@pytest.fixture
def make_member(db: AsyncSession, org):
    """Add a user to ``org`` with the given role, bypassing invites."""

    async def _make(role: Role = Role.MEMBER, email: str | None = None) -> TenantContext:
        user = User(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name="Teammate",
            password_hash=hash_password("teampass123"),
        )
        db.add(user)
        await db.flush()
        member = OrganizationMember(user_id=user.id, organization_id=org.id, role=role.value)
        db.add(member)
        await db.commit()
        return TenantContext(
            user_id=user.id, organization_id=org.id, member_id=member.id, role=role
        )

    return _make


@pytest_asyncio.fixture
async def pipeline(db: AsyncSession, org):
    return await pipeline_svc.create_pipeline(db, org.id, "Sales", is_default=True)


@pytest_asyncio.fixture
async def lead(db: AsyncSession, org):
    return await lead_svc.create_lead(db, org.id, "+15550001", name="Jane Roe")


@pytest.fixture
def auth_headers(owner: User, org) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_svc.issue_token(owner.id, org.id)}"}


@pytest_asyncio.fixture
async def client(engine):
    """HTTPX async test client against the DealDesk app."""
    from dealdesk.app import app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
