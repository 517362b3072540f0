import os
from dataclasses import dataclass
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 0))
# Seconds to wait for a pooled connection before giving up
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", 10))


@dataclass(frozen=True)
class BusinessRules:
    """
    Marketplace thresholds shared by the catalog, inventory and order engine.
    Built once from the environment and passed to each helper at construction.
    """
    absolute_wholesale_minimum: int = 10  # platform floor, never less than 10 units
    default_wholesale_minimum: int = 25   # suggested MOQ for new wholesale listings
    default_reorder_level: int = 10       # low-stock threshold for retailers

    def __post_init__(self):
        if self.absolute_wholesale_minimum < 1:
            raise ValueError("absolute_wholesale_minimum must be at least 1")
        if self.default_wholesale_minimum < self.absolute_wholesale_minimum:
            raise ValueError(
                "default_wholesale_minimum cannot be below absolute_wholesale_minimum"
            )
        if self.default_reorder_level < 0:
            raise ValueError("default_reorder_level cannot be negative")


def get_business_rules() -> BusinessRules:
    return BusinessRules(
        absolute_wholesale_minimum=int(os.getenv("ABSOLUTE_WHOLESALE_MINIMUM", 10)),
        default_wholesale_minimum=int(os.getenv("DEFAULT_WHOLESALE_MINIMUM", 25)),
        default_reorder_level=int(os.getenv("DEFAULT_REORDER_LEVEL", 10)),
    )


if DATABASE_URL:
    sync_engine = create_engine(DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://"))

    asyncpg_url = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    if "?" in asyncpg_url:
        base_url = asyncpg_url.split("?")[0]
    else:
        base_url = asyncpg_url

    asyncpg_url = f"{base_url}?prepared_statement_cache_size=0"

    async_engine = create_async_engine(
        asyncpg_url,
        echo=False,
        pool_pre_ping=False,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT
    )

    AsyncSessionLocal = sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
else:
    sync_engine = None
    async_engine = None
    AsyncSessionLocal = None

async def get_db():
    if AsyncSessionLocal is None:
        raise Exception("Database not configured")
    async with AsyncSessionLocal() as session:
        yield session

def get_sync_engine():
    if sync_engine is None:
        raise Exception("Database not configured")
    return sync_engine

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
