"""Authentication module."""

from src.auth.dependencies import get_current_user, require_director, require_seller
from src.auth.jwt import create_access_token, verify_token

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_user",
    "require_director",
    "require_seller",
]
