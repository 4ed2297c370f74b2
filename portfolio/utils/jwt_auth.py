"""
JWT token authentication for the CMS.
Tokens are issued on admin login and read from the cms_token cookie or a Bearer header.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import HTTPException, status, Header, Request
from jose import JWTError, jwt

from portfolio.config import settings
from portfolio.utils.auth import verify_admin_password

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
COOKIE_NAME = "cms_token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to include in the token
        expires_delta: Optional custom lifetime; defaults to JWT_EXPIRE_MINUTES
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Decode and validate an access token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token", "detail": "Authentication token is invalid or expired"}
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token type", "detail": "Token is not an access token"}
        )

    return payload


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (fallback to cookie)")
) -> dict:
    """
    FastAPI dependency guarding admin routes.
    Reads the httpOnly cookie first and falls back to the Authorization header.
    """
    token = request.cookies.get(COOKIE_NAME)

    if not token and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "detail": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    return verify_token(token)


def authenticate_user(password: str) -> dict:
    """
    Check the admin password and return the claims for a new token.

    Raises:
        HTTPException: 401 on a wrong password, 500 when no admin hash is configured
    """
    try:
        valid = verify_admin_password(password)
    except ValueError as e:
        logger.error(f"Admin login attempted without configuration: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication not configured", "detail": str(e)}
        )

    if not valid:
        logger.warning("Failed admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid credentials", "detail": "Incorrect password"}
        )

    return {
        "role": "admin",
        "sub": "cms_admin"
    }
