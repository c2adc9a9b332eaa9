"""Authentication module."""

from src.auth.dependencies import Operator, get_current_operator, require_closeout_operator
from src.auth.jwt import create_access_token, verify_token

__all__ = [
    "create_access_token",
    "verify_token",
    "Operator",
    "get_current_operator",
    "require_closeout_operator",
]
