"""Test configuration and fixtures"""

import os

# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from hms_api.main import app
from hms_api.database import Base, get_db
from hms_api.models.property import Property, PropertyType
from hms_api.models.role import Role
from hms_api.models.user import User, UserType
from hms_api.services.seed import seed_roles_and_permissions
from hms_api.services.tokens import create_access_token, get_password_hash


def auth_headers(user: User) -> dict:
    """Bearer header for a user"""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


async def make_user(db: AsyncSession, email: str, password: str, user_type: UserType,
                    role_name: str, property_id=None, full_name="Test User") -> User:
    result = await db.execute(select(Role).where(Role.name == role_name))
    role = result.scalar_one()

    user = User(
        full_name=full_name,
        email=email,
        password_hash=get_password_hash(password),
        user_type=user_type,
        property_id=property_id,
        is_active=True,
    )
    user.roles = [role]
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def test_db():
    """Create test database with default roles and permissions"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        await seed_roles_and_permissions(session)
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def hotel(test_db):
    """Create a hotel property"""
    prop = Property(
        code="GRAND-HTL",
        name="Grand Palace Hotel",
        property_type=PropertyType.HOTEL,
        city="Mumbai",
        country="India",
    )
    test_db.add(prop)
    await test_db.commit()
    return prop


@pytest.fixture
async def restaurant(test_db):
    """Create a restaurant property"""
    prop = Property(
        code="SPICE-RST",
        name="Spice Route Kitchen",
        property_type=PropertyType.RESTAURANT,
        city="Pune",
        country="India",
    )
    test_db.add(prop)
    await test_db.commit()
    return prop


@pytest.fixture
async def master_admin(test_db):
    """Create the Master Admin"""
    return await make_user(
        test_db,
        email="admin@admin.com",
        password="Admin@123",
        user_type=UserType.MASTER_ADMIN,
        role_name="Master Admin",
        full_name="Master Admin",
    )


@pytest.fixture
async def property_admin(test_db, hotel):
    """Create the hotel's Property Admin"""
    return await make_user(
        test_db,
        email="manager@grandpalace.com",
        password="Manager@123",
        user_type=UserType.PROPERTY_ADMIN,
        role_name="Property Admin",
        property_id=hotel.id,
        full_name="Hotel Manager",
    )


@pytest.fixture
async def staff_user(test_db, hotel):
    """Create a staff member at the hotel"""
    return await make_user(
        test_db,
        email="frontdesk@grandpalace.com",
        password="Staff@1234",
        user_type=UserType.STAFF,
        role_name="Service Staff",
        property_id=hotel.id,
        full_name="Front Desk",
    )


@pytest.fixture
async def restaurant_admin(test_db, restaurant):
    """Create the restaurant's Property Admin"""
    return await make_user(
        test_db,
        email="owner@spiceroute.com",
        password="Owner@1234",
        user_type=UserType.PROPERTY_ADMIN,
        role_name="Property Admin",
        property_id=restaurant.id,
        full_name="Restaurant Owner",
    )


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_client(client, master_admin):
    """Create Master Admin authenticated test client"""
    client.headers.update(auth_headers(master_admin))
    return client


@pytest.fixture
async def property_admin_client(client, property_admin):
    """Create Property Admin authenticated test client"""
    client.headers.update(auth_headers(property_admin))
    return client


@pytest.fixture
async def staff_client(client, staff_user):
    """Create staff authenticated test client"""
    client.headers.update(auth_headers(staff_user))
    return client
