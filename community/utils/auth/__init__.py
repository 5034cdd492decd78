"""Authentication utilities."""

from .tokens import create_token, create_access_token
from .dependencies import get_current_user, require_admin, oauth2_scheme

__all__ = [
    "create_token",
    "create_access_token",
    "get_current_user",
    "require_admin",
    "oauth2_scheme",
]
