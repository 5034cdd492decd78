from pydantic import BaseModel

from community.schemas.user import IdentitySummary


class FollowActionResponse(BaseModel):
    ok: bool = True
    message: str
    target_id: str
    target_name: str
    following: bool
    follower_count: int
    following_count: int


class FollowStatusResponse(BaseModel):
    is_following: bool
    actor_id: str
    following_count: int
    target_id: str
    target_name: str
    follower_count: int


class FollowListResponse(BaseModel):
    identity_id: str
    total: int
    limit: int
    offset: int
    count: int
    items: list[IdentitySummary]


class PairCheckResponse(BaseModel):
    follower_id: str
    follower_name: str
    following_count: int
    follows_target: bool
    target_id: str
    target_name: str
    follower_count: int
    has_follower: bool
    is_following: bool
    is_consistent: bool

    class Config:
        from_attributes = True


class AuditFindingOut(BaseModel):
    kind: str
    follower_id: str
    target_id: str
    authoritative_side: str | None = None
    fixed: bool


class AuditReportResponse(BaseModel):
    identity_id: str
    dry_run: bool
    checked: int
    found: int
    fixed: int
    findings: list[AuditFindingOut]
