"""Tests for follow / unfollow mutations.

asyncio_mode = auto (pyproject.toml), so no @pytest.mark.asyncio needed.
"""

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from community.relationship.engine import FollowResult, follow, unfollow
from community.relationship.errors import (
    AlreadyExists,
    InvalidReference,
    NotFollowing,
    NotFound,
    SelfReferenceNotAllowed,
)


@pytest.fixture
async def pair(make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    return alice.id, bob.id


class TestFollow:
    async def test_alice_follows_bob(self, db, pair, reload):
        a, b = pair
        result = await follow(db, a, b)

        assert result.following is True
        assert result.target_id == b
        assert result.target_name == "Bob"
        assert result.follower_count == 1
        assert result.following_count == 1

        alice, bob = await reload(a), await reload(b)
        assert alice.following == [b]
        assert bob.followers == [a]
        assert alice.followers == []
        assert bob.following == []

    async def test_duplicate_follow_rejected_and_store_unchanged(self, db, pair, reload):
        a, b = pair
        await follow(db, a, b)

        with pytest.raises(AlreadyExists):
            await follow(db, a, b)

        alice, bob = await reload(a), await reload(b)
        assert alice.following == [b]
        assert bob.followers == [a]

    async def test_self_follow_rejected(self, db, pair, reload):
        a, _ = pair
        with pytest.raises(SelfReferenceNotAllowed):
            await follow(db, a, a)

        alice = await reload(a)
        assert alice.following == []
        assert alice.followers == []

    async def test_self_follow_rejected_for_unknown_identity(self, db):
        ghost = str(uuid.uuid4())
        with pytest.raises(SelfReferenceNotAllowed):
            await follow(db, ghost, ghost)

    async def test_self_reference_detected_after_normalisation(self, db, pair):
        a, _ = pair
        with pytest.raises(SelfReferenceNotAllowed):
            await follow(db, a, a.upper())

    async def test_malformed_target(self, db, pair):
        a, _ = pair
        with pytest.raises(InvalidReference):
            await follow(db, a, "not-an-id")

    async def test_malformed_target_checked_before_self_reference(self, db):
        with pytest.raises(InvalidReference):
            await follow(db, "garbage", "garbage")

    async def test_missing_target(self, db, pair):
        a, _ = pair
        with pytest.raises(NotFound) as exc:
            await follow(db, a, str(uuid.uuid4()))
        assert exc.value.role == "target"

    async def test_missing_actor(self, db, pair, reload):
        _, b = pair
        with pytest.raises(NotFound) as exc:
            await follow(db, str(uuid.uuid4()), b)
        assert exc.value.role == "actor"
        assert (await reload(b)).followers == []

    async def test_target_checked_before_actor(self, db):
        with pytest.raises(NotFound) as exc:
            await follow(db, str(uuid.uuid4()), str(uuid.uuid4()))
        assert exc.value.role == "target"

    async def test_follow_converges_half_written_relationship(self, db, pair, reload):
        a, b = pair
        bob = await reload(b)
        bob.followers = [a]
        await db.commit()

        await follow(db, a, b)

        alice, bob = await reload(a), await reload(b)
        assert alice.following == [b]
        assert bob.followers == [a]


class TestUnfollow:
    async def test_round_trip_restores_state(self, db, pair, make_user, reload):
        a, b = pair
        carol = await make_user("Carol")
        c = carol.id
        await follow(db, c, b)
        await follow(db, a, c)

        before_alice = list((await reload(a)).following)
        before_bob = list((await reload(b)).followers)

        await follow(db, a, b)
        result = await unfollow(db, a, b)

        assert result.following is False
        assert result.target_name == "Bob"
        assert (await reload(a)).following == before_alice
        assert (await reload(b)).followers == before_bob

    async def test_unfollow_when_absent(self, db, pair, reload):
        a, b = pair
        with pytest.raises(NotFollowing):
            await unfollow(db, a, b)

        alice, bob = await reload(a), await reload(b)
        assert alice.following == []
        assert bob.followers == []

    async def test_self_unfollow_rejected(self, db, pair):
        a, _ = pair
        with pytest.raises(SelfReferenceNotAllowed):
            await unfollow(db, a, a)

    async def test_unfollow_missing_target(self, db, pair):
        a, _ = pair
        with pytest.raises(NotFound):
            await unfollow(db, a, str(uuid.uuid4()))

    async def test_unfollow_tolerates_missing_mirror(self, db, pair, reload):
        a, b = pair
        alice = await reload(a)
        alice.following = [b]
        await db.commit()

        await unfollow(db, a, b)

        assert (await reload(a)).following == []
        assert (await reload(b)).followers == []


class TestInvariant:
    async def test_mirrors_hold_after_mixed_sequence(self, db, make_user, reload):
        users = [(await make_user(f"U{i}")).id for i in range(4)]
        ops = [
            (follow, 0, 1), (follow, 1, 0), (follow, 2, 0), (follow, 3, 0),
            (unfollow, 2, 0), (follow, 0, 3), (follow, 2, 1), (unfollow, 1, 0),
            (follow, 1, 0), (unfollow, 0, 1),
        ]
        for op, x, y in ops:
            await op(db, users[x], users[y])

        loaded = {uid: await reload(uid) for uid in users}
        for x in users:
            for y in users:
                assert (x in loaded[y].followers) == (y in loaded[x].following)
            assert len(set(loaded[x].followers)) == len(loaded[x].followers)
            assert len(set(loaded[x].following)) == len(loaded[x].following)


class TestAtomicity:
    @pytest.mark.parametrize(
        "failure",
        [OperationalError("UPDATE users", {}, Exception("disk I/O error")), RuntimeError("boom")],
    )
    async def test_failed_follow_commit_leaves_both_rows_unchanged(self, db, pair, reload, failure):
        a, b = pair
        with patch.object(db, "commit", AsyncMock(side_effect=failure)):
            with pytest.raises(type(failure)):
                await follow(db, a, b)

        alice, bob = await reload(a), await reload(b)
        assert alice.following == []
        assert bob.followers == []

    async def test_failed_unfollow_commit_leaves_both_rows_unchanged(self, db, pair, reload):
        a, b = pair
        await follow(db, a, b)

        failure = OperationalError("UPDATE users", {}, Exception("database is locked"))
        with patch.object(db, "commit", AsyncMock(side_effect=failure)):
            with pytest.raises(OperationalError):
                await unfollow(db, a, b)

        alice, bob = await reload(a), await reload(b)
        assert alice.following == [b]
        assert bob.followers == [a]

    async def test_store_usable_after_failed_commit(self, db, pair, reload):
        a, b = pair
        with patch.object(db, "commit", AsyncMock(side_effect=RuntimeError("boom"))):
            with pytest.raises(RuntimeError):
                await follow(db, a, b)

        await follow(db, a, b)
        assert (await reload(b)).followers == [a]


class TestConcurrentMutations:
    """Sessions on separate connections racing on the same identities."""

    ACCEPTED = (FollowResult, AlreadyExists, NotFollowing)

    async def _race(self, session_factory, *calls):
        async def _run(op, actor_id, target_id):
            async with session_factory() as session:
                return await op(session, actor_id, target_id)

        return await asyncio.gather(*(_run(*c) for c in calls), return_exceptions=True)

    async def test_identical_follows_never_duplicate(self, locking_session_factory, seed, load):
        a, b = await seed("Alice", "Bob")

        outcomes = []
        for _ in range(3):
            outcomes += await self._race(locking_session_factory, (follow, a, b), (follow, a, b))

        for r in outcomes:
            assert isinstance(r, self.ACCEPTED), r
        assert sum(isinstance(r, FollowResult) for r in outcomes) == 1

        alice, bob = await load(a, b)
        assert alice.following == [b]
        assert bob.followers == [a]

    async def test_follow_racing_unfollow_keeps_mirrors(self, locking_session_factory, seed, load):
        a, b, c = await seed("Alice", "Bob", "Carol")
        async with locking_session_factory() as session:
            await follow(session, a, b)

        for _ in range(3):
            results = await self._race(
                locking_session_factory,
                (unfollow, a, b), (follow, a, b), (follow, c, b), (unfollow, c, b),
            )
            for r in results:
                assert isinstance(r, self.ACCEPTED), r

        users = await load(a, b, c)
        for x in users:
            assert len(set(x.followers)) == len(x.followers)
            assert len(set(x.following)) == len(x.following)
            for y in users:
                assert (x.id in y.followers) == (y.id in x.following), (x.id, y.id)
