"""
JWT verification for actor identity.

Tokens are issued by the external auth provider and arrive either as a
bearer Authorization header or as the access_token cookie.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from src.config import settings

TOKEN_TYPE = "access"
DEFAULT_EXPIRE_HOURS = 12


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Used by tooling and tests; production tokens come from the auth provider.

    Args:
        user_id: User's database ID
        role: User's role (director/sales_rep/...)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=DEFAULT_EXPIRE_HOURS))

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
        "type": TOKEN_TYPE,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict with 'user_id' and 'role',
        or None if token is invalid/expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        if payload.get("type") != TOKEN_TYPE:
            return None

        user_id = payload.get("sub")
        role = payload.get("role")

        if not user_id or not role:
            return None

        return {
            "user_id": int(user_id),
            "role": role,
        }

    except (JWTError, ValueError):
        return None


def get_token_from_request(request) -> Optional[str]:
    """
    Extract the JWT from the Authorization header, falling back to the cookie.

    Args:
        request: FastAPI Request object

    Returns:
        Token string or None
    """
    authorization = request.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get("access_token")
