"""
Follow / unfollow mutations.

Both operations update two rows (the actor's ``following`` and the
target's ``followers``) inside a single transaction, with the pair locked
in id order. Preconditions are checked in a fixed order and fail fast:

1. malformed target reference
2. self reference
3. target missing
4. actor missing
5. relationship already present (follow) / absent (unfollow)

Nothing here retries; a failed commit is rolled back and re-raised.
"""

import logging
import time
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import User
from community.relationship.errors import (
    AlreadyExists,
    NotFollowing,
    NotFound,
    RelationshipError,
    SelfReferenceNotAllowed,
)
from community.relationship.refs import parse_identity_ref
from community.relationship.store import lock_identities, with_member, without_member

log = logging.getLogger(__name__)


@dataclass
class FollowResult:
    actor_id: str
    target_id: str
    target_name: str
    following: bool
    follower_count: int
    following_count: int


def _validate_pair(actor_id: str, target_id: str, verb: str) -> tuple[str, str]:
    target_ref = parse_identity_ref(target_id)
    actor_ref = parse_identity_ref(actor_id)
    if actor_ref == target_ref:
        raise SelfReferenceNotAllowed(
            f"You cannot {verb} yourself",
            details={"id": target_ref},
        )
    return actor_ref, target_ref


async def _lock_pair(db: AsyncSession, actor_ref: str, target_ref: str) -> tuple[User, User]:
    rows = await lock_identities(db, [actor_ref, target_ref])
    target = rows.get(target_ref)
    if target is None:
        raise NotFound("target", target_ref)
    actor = rows.get(actor_ref)
    if actor is None:
        raise NotFound("actor", actor_ref)
    return actor, target


async def follow(db: AsyncSession, actor_id: str, target_id: str) -> FollowResult:
    start = time.perf_counter()
    actor_ref, target_ref = _validate_pair(actor_id, target_id, "follow")
    log.info("Follow request: %s -> %s", actor_ref, target_ref)

    try:
        actor, target = await _lock_pair(db, actor_ref, target_ref)
        if target_ref in (actor.following or []):
            raise AlreadyExists(
                "You are already following this user",
                details={"target_id": target_ref},
            )

        actor.following = with_member(actor.following, target_ref)
        target.followers = with_member(target.followers, actor_ref)
        await db.commit()
    except RelationshipError as e:
        await db.rollback()
        log.info("Follow rejected %s -> %s: %s", actor_ref, target_ref, e.code)
        raise
    except Exception:
        await db.rollback()
        log.error("Follow failed %s -> %s", actor_ref, target_ref, exc_info=True)
        raise

    log.info(
        "Follow completed in %.1fms: %s followed %s",
        (time.perf_counter() - start) * 1000, actor_ref, target_ref,
    )
    return FollowResult(
        actor_id=actor_ref,
        target_id=target_ref,
        target_name=target.full_name,
        following=True,
        follower_count=target.follower_count,
        following_count=actor.following_count,
    )


async def unfollow(db: AsyncSession, actor_id: str, target_id: str) -> FollowResult:
    start = time.perf_counter()
    actor_ref, target_ref = _validate_pair(actor_id, target_id, "unfollow")
    log.info("Unfollow request: %s -> %s", actor_ref, target_ref)

    try:
        actor, target = await _lock_pair(db, actor_ref, target_ref)
        if target_ref not in (actor.following or []):
            raise NotFollowing(
                "You are not following this user",
                details={"target_id": target_ref},
            )

        actor.following = without_member(actor.following, target_ref)
        target.followers = without_member(target.followers, actor_ref)
        await db.commit()
    except RelationshipError as e:
        await db.rollback()
        log.info("Unfollow rejected %s -> %s: %s", actor_ref, target_ref, e.code)
        raise
    except Exception:
        await db.rollback()
        log.error("Unfollow failed %s -> %s", actor_ref, target_ref, exc_info=True)
        raise

    log.info(
        "Unfollow completed in %.1fms: %s unfollowed %s",
        (time.perf_counter() - start) * 1000, actor_ref, target_ref,
    )
    return FollowResult(
        actor_id=actor_ref,
        target_id=target_ref,
        target_name=target.full_name,
        following=False,
        follower_count=target.follower_count,
        following_count=actor.following_count,
    )
