from fastapi import HTTPException, status
from config import JWT_SECRET_KEY, JWT_ALGORITHM
from models import UserRole
import jwt
import logging
import uuid

logger = logging.getLogger(__name__)

class AuthHelpers:
    """Helper functions for verifying identities issued by the auth service"""

    def __init__(self, secret_key: str = None, algorithm: str = None):
        self._secret_key = secret_key
        self._algorithm = algorithm

    @property
    def secret_key(self) -> str:
        return self._secret_key or JWT_SECRET_KEY

    @property
    def algorithm(self) -> str:
        return self._algorithm or JWT_ALGORITHM

    def verify_token(self, token: str) -> dict:
        """
        Verify JWT token locally
        Returns {"user_id": UUID, "role": UserRole or None, "email": str or None}
        """
        if not self.secret_key:
            logger.error("JWT_SECRET_KEY is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Authentication is not configured"
            )

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": True,
                    "verify_signature": True,
                    "verify_aud": False
                }
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token expired"
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token"
            )

        raw_user_id = payload.get("sub") or payload.get("id")
        if not raw_user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID"
            )

        try:
            user_id = uuid.UUID(str(raw_user_id))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: malformed user ID"
            )

        role = payload.get("role")
        if role is not None:
            try:
                role = UserRole(role)
            except ValueError:
                logger.warning(f"Token for user {user_id} carries unknown role {role}")
                role = None

        return {
            "user_id": user_id,
            "email": payload.get("email"),
            "role": role,
        }

auth_helpers = AuthHelpers()
