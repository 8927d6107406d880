"""
Shared fixtures.

Environment variables are set before qrmenu is imported so the cached
settings, the Celery app and the payment service singleton all pick up the
test configuration: in-memory SQLite, eager Celery, an instant mock payment
provider and cheap bcrypt.
"""

import os
import tempfile
from decimal import Decimal
from types import SimpleNamespace

os.environ.update({
    "ENV_MODE": "development",
    "DEBUG": "false",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "REDIS_URL": "redis://localhost:6390/0",
    "CELERY_TASK_ALWAYS_EAGER": "true",
    "DATA_DIRECTORY": tempfile.mkdtemp(prefix="qrmenu-ledger-"),
    "FRONTEND_URL": "http://menu.test",
    "JWT_SECRET": "test-access-secret-0123456789abcdef",
    "JWT_REFRESH_SECRET": "test-refresh-secret-0123456789abcdef",
    "BCRYPT_ROUNDS": "4",
    "MOCK_PAYMENT_FAILURE_RATE": "0",
    "MOCK_PAYMENT_MIN_LATENCY": "0",
    "MOCK_PAYMENT_MAX_LATENCY": "0",
})

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrmenu.core.config import get_settings
from qrmenu.database import Base, get_db
from qrmenu.main import app
from qrmenu.models import User, UserRole
from qrmenu.schemas import CategoryCreate, MenuItemCreate, TableCreate
from qrmenu.services.auth import TokenService, hash_password
from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.tables import TableRegistry


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# ACCOUNTS
# =============================================================================

async def create_user(db, role: UserRole, email: str, password: str = "secret123") -> User:
    user = User(
        name=f"{role.value.title()} User",
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


def bearer(user: User) -> dict[str, str]:
    tokens = TokenService(get_settings()).issue(user)
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
async def admin(db):
    return await create_user(db, UserRole.ADMIN, "admin@restaurant.com")


@pytest.fixture
async def staff(db):
    return await create_user(db, UserRole.STAFF, "staff@restaurant.com")


@pytest.fixture
async def customer(db):
    return await create_user(db, UserRole.CUSTOMER, "rohan@example.com")


@pytest.fixture
async def other_customer(db):
    return await create_user(db, UserRole.CUSTOMER, "sneha@example.com")


# =============================================================================
# MENU & TABLES
# =============================================================================

@pytest.fixture
async def menu(db):
    """Category "Mains" with Burger (8.00) and Fries (3.50); active table T1."""
    catalog = MenuCatalog(db)
    mains = await catalog.create_category(CategoryCreate(name="Mains", display_order=1))
    burger = await catalog.create_item(MenuItemCreate(
        name="Burger",
        description="Beef patty with cheddar",
        price=Decimal("8.00"),
        category_id=mains.id,
        tags=["beef", "Classic"],
    ))
    fries = await catalog.create_item(MenuItemCreate(
        name="Fries",
        description="Crispy potato fries",
        price=Decimal("3.50"),
        category_id=mains.id,
        tags=["vegan", "side"],
        is_vegan=True,
    ))
    table = await TableRegistry(db).create(TableCreate(number="T1"))
    return SimpleNamespace(category=mains, burger=burger, fries=fries, table=table)
