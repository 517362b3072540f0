from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import User
from .schemas import CurrentUserResponse
from .helpers import auth_helpers
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer()

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Get current user from JWT token"""
    token = credentials.credentials
    current_user = auth_helpers.verify_token(token)

    if current_user["role"] is None:
        # Fallback: Get role from database
        logger.info(f"No role in JWT for user {current_user['user_id']}, checking database...")
        result = await db.execute(
            select(User.role).where(User.id == current_user["user_id"])
        )
        role = result.scalar_one_or_none()
        if role is None:
            logger.warning(f"No user found for {current_user['user_id']}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unknown user"
            )
        current_user["role"] = role

    request.state.current_user = current_user
    return current_user

@router.get("/me", response_model=CurrentUserResponse)
async def get_me(current_user = Depends(get_current_user)):
    """Identity the marketplace will act on behalf of"""
    return CurrentUserResponse(
        user_id=str(current_user["user_id"]),
        email=current_user.get("email"),
        role=current_user["role"].value
    )
