"""Read-only follow status, listing and pair diagnostics."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import User
from community.relationship.errors import NotFound
from community.relationship.refs import parse_identity_ref
from community.relationship.store import get_identity, page_identities

log = logging.getLogger(__name__)


@dataclass
class FollowStatus:
    actor_id: str
    target_id: str
    target_name: str
    is_following: bool
    following_count: int
    follower_count: int


@dataclass
class IdentityPage:
    identity_id: str
    total: int
    limit: int
    offset: int
    dangling: int
    items: list[User] = field(default_factory=list)


@dataclass
class PairCheck:
    follower_id: str
    follower_name: str
    following_count: int
    follows_target: bool
    target_id: str
    target_name: str
    follower_count: int
    has_follower: bool

    @property
    def is_following(self) -> bool:
        return self.follows_target

    @property
    def is_consistent(self) -> bool:
        return self.follows_target == self.has_follower


async def _require(db: AsyncSession, identity_id: str, role: str) -> User:
    user = await get_identity(db, identity_id)
    if user is None:
        raise NotFound(role, identity_id)
    return user


async def get_follow_status(db: AsyncSession, actor_id: str, target_id: str) -> FollowStatus:
    target_ref = parse_identity_ref(target_id)
    actor_ref = parse_identity_ref(actor_id)

    target = await _require(db, target_ref, "target")
    actor = await _require(db, actor_ref, "actor")

    return FollowStatus(
        actor_id=actor_ref,
        target_id=target_ref,
        target_name=target.full_name,
        is_following=target_ref in (actor.following or []),
        following_count=actor.following_count,
        follower_count=target.follower_count,
    )


async def _list(db: AsyncSession, identity_id: str, attr: str, limit: int, offset: int) -> IdentityPage:
    ref = parse_identity_ref(identity_id)
    user = await _require(db, ref, "user")
    refs = list(getattr(user, attr) or [])

    total, items = await page_identities(db, refs, limit=limit, offset=offset)
    dangling = len(set(refs)) - total
    if dangling:
        log.warning("%s of %s has %d dangling reference(s)", attr, ref, dangling)

    return IdentityPage(
        identity_id=ref,
        total=total,
        limit=limit,
        offset=offset,
        dangling=dangling,
        items=items,
    )


async def list_followers(db: AsyncSession, identity_id: str, *, limit: int = 20, offset: int = 0) -> IdentityPage:
    return await _list(db, identity_id, "followers", limit, offset)


async def list_following(db: AsyncSession, identity_id: str, *, limit: int = 20, offset: int = 0) -> IdentityPage:
    return await _list(db, identity_id, "following", limit, offset)


async def check_pair(db: AsyncSession, follower_id: str, target_id: str) -> PairCheck:
    """Compare both mirrors of a single follower -> target relationship."""
    follower_ref = parse_identity_ref(follower_id)
    target_ref = parse_identity_ref(target_id)

    follower = await _require(db, follower_ref, "follower")
    target = await _require(db, target_ref, "target")

    check = PairCheck(
        follower_id=follower_ref,
        follower_name=follower.full_name,
        following_count=follower.following_count,
        follows_target=target_ref in (follower.following or []),
        target_id=target_ref,
        target_name=target.full_name,
        follower_count=target.follower_count,
        has_follower=follower_ref in (target.followers or []),
    )
    if not check.is_consistent:
        log.warning(
            "Pair %s -> %s is inconsistent (following=%s, followers=%s)",
            follower_ref, target_ref, check.follows_target, check.has_follower,
        )
    return check
