"""
SQLAlchemy database models.

Import any model from this module:
    from community.db.models import User
"""

# Base class (must be imported first)
from .base import Base

# User models
from .user import User, new_identity_id

__all__ = [
    "Base",
    "User",
    "new_identity_id",
]
