from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class IdentitySummary(BaseModel):
    id: str
    username: Optional[str] = None
    full_name: str

    class Config:
        from_attributes = True


class IdentityProfile(IdentitySummary):
    bio: Optional[str] = None
    created_at: Optional[datetime] = None
    follower_count: int
    following_count: int
