"""
Pytest configuration and fixtures for the marketplace backend tests.
"""
import os
import uuid
from decimal import Decimal

# Set up test environment variables before importing anything else
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("DATABASE_URL", None)

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config import BusinessRules, get_db
from models import Base, Order, RetailerInventory, User, UserRole, WholesalerInventory
from routers.inventory.helpers import InventoryHelpers
from routers.orders.engine import TransactionEngine
from routers.orders.helpers import OrderHelpers
from routers.products.helpers import ProductHelpers
from utils.transactions import transaction


@pytest.fixture
async def engine():
    """In-memory SQLite database with a fresh schema per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def rules():
    return BusinessRules()


@pytest.fixture
def inventory(rules):
    return InventoryHelpers(rules)


@pytest.fixture
def catalog(rules):
    return ProductHelpers(rules)


@pytest.fixture
def ledger():
    return OrderHelpers()


@pytest.fixture
def order_engine(rules, inventory, ledger):
    return TransactionEngine(rules, inventory, ledger)


class Seeder:
    """Creates users and stocked products; hands back ids only."""

    def __init__(self, session, catalog):
        self.session = session
        self.catalog = catalog

    async def user(self, role: UserRole, name: str = None) -> uuid.UUID:
        user_id = uuid.uuid4()
        self.session.add(User(
            id=user_id,
            name=name or f"{role.value}-{user_id.hex[:6]}",
            email=f"{user_id.hex}@example.com",
            role=role
        ))
        await self.session.commit()
        return user_id

    async def product(
        self,
        seller_id,
        role: UserRole,
        stock: int = 100,
        price="10.00",
        name: str = "Rice 1kg",
        category: str = "grocery",
        **inventory_settings
    ) -> uuid.UUID:
        async with transaction(self.session, "seed product"):
            product, _ = await self.catalog.create_product(
                self.session,
                seller_id,
                role,
                name=name,
                price=Decimal(price),
                category=category,
                initial_stock=stock,
                **inventory_settings
            )
        return product.id

    async def retailer_stock(self, retailer_id, product_id):
        self.session.expire_all()
        return await self.session.scalar(
            select(RetailerInventory).where(
                RetailerInventory.retailer_id == retailer_id,
                RetailerInventory.product_id == product_id
            )
        )

    async def wholesaler_stock(self, wholesaler_id, product_id):
        self.session.expire_all()
        return await self.session.scalar(
            select(WholesalerInventory).where(
                WholesalerInventory.wholesaler_id == wholesaler_id,
                WholesalerInventory.product_id == product_id
            )
        )

    async def orders(self, **filters):
        self.session.expire_all()
        result = await self.session.execute(select(Order).filter_by(**filters))
        return result.scalars().all()


@pytest.fixture
def seed(db, catalog):
    return Seeder(db, catalog)


@pytest.fixture
async def client(session_factory):
    """ASGI client backed by the test database; auth goes through real JWT verification."""
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(user_id, role: UserRole = None, **claims) -> str:
    payload = {"sub": str(user_id), "email": f"{uuid.UUID(str(user_id)).hex}@example.com", **claims}
    if role is not None:
        payload["role"] = role.value
    return jwt.encode(payload, os.environ["JWT_SECRET_KEY"], algorithm="HS256")


def auth_headers(user_id, role: UserRole = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}
