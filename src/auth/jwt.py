"""
JWT token handling.

Operator tokens are issued by the surrounding platform; this service only
verifies them. create_access_token exists for scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from src.config import settings

TOKEN_TYPE = "access"


def create_access_token(
    operator_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        operator_id: Operator identifier from the platform
        role: Operator role (organizer, venue_admin, ...)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=12))

    payload = {
        "sub": str(operator_id),
        "role": role,
        "exp": expire,
        "type": TOKEN_TYPE,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Returns:
        Dict with 'operator_id' and 'role', or None if the token is
        invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type", TOKEN_TYPE) != TOKEN_TYPE:
        return None

    operator_id = payload.get("sub")
    role = payload.get("role")
    if not operator_id or not role:
        return None

    return {
        "operator_id": str(operator_id),
        "role": role,
    }


def get_token_from_request(request) -> Optional[str]:
    """
    Extract a JWT from the Authorization header or the access_token cookie.
    """
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()

    return request.cookies.get("access_token")
