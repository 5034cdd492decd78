"""Identity store primitives shared by the engine, status queries and auditor."""

from typing import AsyncIterator, Iterable, Sequence

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import User


async def get_identity(db: AsyncSession, identity_id: str) -> User | None:
    return await db.get(User, identity_id)


async def lock_identities(db: AsyncSession, identity_ids: Iterable[str]) -> dict[str, User]:
    """
    Load the given identities with row locks, in ascending id order.

    Locking in a fixed order keeps two requests on the same pair from
    deadlocking. Rows already present in the session are refreshed so the
    caller always decides on the locked state.
    """
    ids = sorted(set(identity_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(User)
        .where(User.id.in_(ids))
        .order_by(User.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {u.id: u for u in result.scalars().all()}


async def find_referencing(db: AsyncSession, identity_id: str, *, lock: bool = False) -> list[User]:
    """Identities whose ``followers`` or ``following`` mention ``identity_id``."""
    needle = f'%"{identity_id}"%'
    stmt = (
        select(User)
        .where(
            User.id != identity_id,
            or_(
                cast(User.followers, String).like(needle),
                cast(User.following, String).like(needle),
            ),
        )
        .order_by(User.id)
        .execution_options(populate_existing=True)
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    # LIKE is only a prefilter; confirm real membership.
    return [
        u for u in result.scalars().all()
        if identity_id in (u.followers or []) or identity_id in (u.following or [])
    ]


def with_member(refs: Sequence[str] | None, ref: str) -> list[str]:
    """Insert-if-absent. Returns a new list so the JSON column is flagged dirty."""
    current = list(refs or [])
    if ref not in current:
        current.append(ref)
    return current


def without_member(refs: Sequence[str] | None, ref: str) -> list[str]:
    """Remove-if-present; removing an absent reference is a no-op."""
    return [r for r in (refs or []) if r != ref]


def dedupe(refs: Sequence[str] | None) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for r in refs or []:
        if r not in seen:
            seen.add(r)
            out.append(r)
    return out


async def page_identities(
    db: AsyncSession,
    identity_ids: Sequence[str],
    *,
    limit: int,
    offset: int,
) -> tuple[int, list[User]]:
    """
    Resolve a page of referenced identities ordered by display name, then id.

    References that do not resolve are silently excluded; ``total`` counts
    only the resolved ones so pages stay consistent with each other.
    """
    ids = list(dict.fromkeys(identity_ids))
    if not ids:
        return 0, []

    total = await db.scalar(select(func.count()).select_from(User).where(User.id.in_(ids)))
    result = await db.execute(
        select(User)
        .where(User.id.in_(ids))
        .order_by(User.full_name, User.id)
        .offset(offset)
        .limit(limit)
    )
    return int(total or 0), list(result.scalars().all())


async def iter_identity_ids(db: AsyncSession, batch_size: int) -> AsyncIterator[list[str]]:
    """Yield all identity ids in ascending batches (keyset pagination)."""
    last: str | None = None
    while True:
        stmt = select(User.id).order_by(User.id).limit(batch_size)
        if last is not None:
            stmt = stmt.where(User.id > last)
        batch = list((await db.execute(stmt)).scalars().all())
        if not batch:
            return
        yield batch
        last = batch[-1]
