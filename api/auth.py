"""
Authentication for the FastAPI API.

Passwords are stored as bcrypt hashes; sessions are stateless HS256 JWTs
passed in the Authorization header.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from api.config import config
from api.exceptions import AuthenticationError
from api.models import TokenData

logger = structlog.get_logger(__name__)

# The header may carry the bare token or "Bearer <token>"
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor, defaults to the configured value

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds or config.password_hash_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.error("Password verification failed", error=str(e))
        return False


def create_access_token(user_id: str, email: str, name: Optional[str] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User identifier, stored as the ``sub`` claim
        email: User's email
        name: User's display name
        expires_delta: Lifetime, defaults to ``access_token_expire_minutes``

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.access_token_expire_minutes))

    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str) -> Dict:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthenticationError: If the token is expired or otherwise invalid
    """
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except ExpiredSignatureError:
        logger.warning("Expired token presented")
        raise AuthenticationError("Token expired")
    except InvalidTokenError as e:
        logger.warning("Invalid token presented", error=str(e))
        raise AuthenticationError("Invalid token")

    if not payload.get("sub") or not payload.get("email"):
        logger.warning("Token missing identity claims")
        raise AuthenticationError("Invalid token")
    return payload


def get_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an Authorization header value."""
    if not authorization:
        return None
    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip() or None
    return authorization.strip()


async def verify_token(authorization: Optional[str] = Depends(authorization_header)) -> TokenData:
    """
    Verify the caller's token.

    Returns:
        Identity of the caller

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    token = get_token_from_header(authorization)
    if not token:
        logger.warning("Request without token")
        raise AuthenticationError("Access denied, token missing")

    payload = decode_access_token(token)
    return TokenData(user_id=payload["sub"], email=payload["email"], name=payload.get("name"))
