from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, TimeoutError as PoolTimeoutError
from fastapi import HTTPException
from utils.errors import Conflict, InternalError, StoreUnavailable
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transaction(db: AsyncSession, operation: str = "operation"):
    """
    Commit on clean exit, roll back on any exception.

    Marketplace errors are re-raised unchanged so callers see the rule that
    failed; constraint violations and pool exhaustion are translated.
    """
    try:
        yield db
        await db.commit()
    except HTTPException:
        await db.rollback()
        logger.info(f"Rolled back {operation}")
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Constraint violation during {operation}: {str(e.orig)}")
        raise Conflict(f"{operation.capitalize()} violates a data constraint")
    except PoolTimeoutError as e:
        await db.rollback()
        logger.error(f"Connection pool exhausted during {operation}: {str(e)}")
        raise StoreUnavailable("Database is busy, please retry")
    except Exception as e:
        await db.rollback()
        logger.error(f"Unexpected error during {operation}: {str(e)}")
        raise InternalError(f"Failed to complete {operation}")
    except BaseException:
        # Cancelled request
        await db.rollback()
        logger.warning(f"Rolled back {operation} on cancellation")
        raise
