"""
Bearer JWT authentication for FastAPI.

Supports two modes:
1. Token mode: Verifies HMAC-signed JWTs (when AUTH_SECRET_KEY is set)
2. Single-user mode: Falls back to user_id=1 for self-hosted usage
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from loan_ledger.core.config import get_settings
from loan_ledger.db.connection import get_db_session
from loan_ledger.db.models import User

logger = logging.getLogger(__name__)

# Security scheme - optional so it doesn't fail when no auth is configured
security = HTTPBearer(auto_error=False)


def _verify_token(token: str) -> dict:
    """
    Verify a JWT and return the decoded payload.

    Raises:
        HTTPException: If token is invalid or expired
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _get_or_create_user(db: Session, subject: str, email: Optional[str] = None) -> User:
    """
    Get existing user by token subject or create a new one.

    Args:
        db: Database session
        subject: JWT 'sub' claim
        email: Optional email from JWT

    Returns:
        User instance
    """
    user = db.query(User).filter_by(external_subject=subject).first()
    if user:
        return user

    # Auto-create user on first authentication
    user = User(
        name=email or f"user_{subject[:8]}",
        email=email,
        external_subject=subject,
    )
    db.add(user)
    db.flush()  # Get the ID without committing
    logger.info(f"Created user {user.id} for subject {subject}")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db_session),
) -> User:
    """
    FastAPI dependency that returns the current authenticated user.

    In token mode (AUTH_SECRET_KEY set):
        - Verifies JWT from Authorization header
        - Returns user mapped to the 'sub' claim (auto-creates on first auth)

    In single-user mode (no AUTH_SECRET_KEY):
        - Returns user with id=1
        - No authentication required
    """
    if not get_settings().auth_secret_key:
        user = db.query(User).filter_by(id=1).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Default user (id=1) not found. Run database initialization first.",
            )
        return user

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = _verify_token(credentials.credentials)
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject",
        )

    user = _get_or_create_user(db, str(subject), payload.get("email"))
    db.commit()
    return user
