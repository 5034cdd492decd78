"""
Detect and repair drift between the mirrored ``followers`` / ``following`` sets.

The existing reference is always treated as authoritative: a missing
mirror is added, never the other way round. Only references to identities
that no longer exist (and self references, which the engine never writes)
are removed. Running an audit twice is a no-op the second time.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from community.relationship.errors import InconsistentState, NotFound
from community.relationship.refs import parse_identity_ref
from community.relationship.store import (
    dedupe,
    find_referencing,
    iter_identity_ids,
    lock_identities,
    with_member,
    without_member,
)

log = logging.getLogger(__name__)

MISSING_FOLLOWER = "missing_follower"
MISSING_FOLLOWING = "missing_following"
DANGLING_FOLLOWING = "dangling_following"
DANGLING_FOLLOWER = "dangling_follower"
DUPLICATE_REFERENCE = "duplicate_reference"
SELF_REFERENCE = "self_reference"


@dataclass
class AuditFinding:
    kind: str
    follower_id: str
    target_id: str
    # Which set held the trusted reference; None when the reference was pruned.
    authoritative_side: str | None
    fixed: bool = False


@dataclass
class AuditReport:
    identity_id: str
    dry_run: bool
    # Distinct counterpart identities examined.
    checked: int = 0
    findings: list[AuditFinding] = field(default_factory=list)

    @property
    def found(self) -> int:
        return len(self.findings)

    @property
    def fixed(self) -> int:
        return sum(1 for f in self.findings if f.fixed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity_id": self.identity_id,
            "dry_run": self.dry_run,
            "checked": self.checked,
            "found": self.found,
            "fixed": self.fixed,
            "findings": [asdict(f) for f in self.findings],
        }


@dataclass
class SweepSummary:
    dry_run: bool
    audited: int = 0
    skipped: int = 0
    found: int = 0
    fixed: int = 0
    drifted: list[str] = field(default_factory=list)


class _Working:
    """Mutable copies of the sets under audit, so dry runs never touch ORM state."""

    def __init__(self, rows):
        self.rows = rows
        self.sets = {
            uid: {"followers": list(u.followers or []), "following": list(u.following or [])}
            for uid, u in rows.items()
        }
        self.dirty: set[str] = set()

    def exists(self, uid: str) -> bool:
        return uid in self.sets

    def get(self, uid: str, attr: str) -> list[str]:
        return self.sets[uid][attr]

    def put(self, uid: str, attr: str, refs: list[str]) -> None:
        if refs != self.sets[uid][attr]:
            self.sets[uid][attr] = refs
            self.dirty.add(uid)

    def flush(self) -> None:
        for uid in self.dirty:
            user = self.rows[uid]
            user.followers = list(self.sets[uid]["followers"])
            user.following = list(self.sets[uid]["following"])


def _note(report: AuditReport, kind: str, follower_id: str, target_id: str, side: str | None) -> None:
    drift = InconsistentState(kind, follower_id, target_id)
    log.warning("[AUDIT] %s (authoritative=%s)", drift, side)
    report.findings.append(
        AuditFinding(
            kind=kind,
            follower_id=follower_id,
            target_id=target_id,
            authoritative_side=side,
            fixed=not report.dry_run,
        )
    )


def _collapse_duplicates(w: _Working, ref: str, report: AuditReport) -> None:
    for attr in ("following", "followers"):
        refs = w.get(ref, attr)
        unique = dedupe(refs)
        if len(unique) == len(refs):
            continue
        for other in {r for r in refs if refs.count(r) > 1}:
            pair = (ref, other) if attr == "following" else (other, ref)
            _note(report, DUPLICATE_REFERENCE, *pair, attr)
        w.put(ref, attr, unique)


def _drop_self_references(w: _Working, ref: str, report: AuditReport) -> None:
    for attr in ("following", "followers"):
        if ref in w.get(ref, attr):
            _note(report, SELF_REFERENCE, ref, ref, None)
            w.put(ref, attr, without_member(w.get(ref, attr), ref))


def _check_outbound(w: _Working, ref: str, report: AuditReport) -> None:
    for target in list(w.get(ref, "following")):
        if not w.exists(target):
            _note(report, DANGLING_FOLLOWING, ref, target, None)
            w.put(ref, "following", without_member(w.get(ref, "following"), target))
        elif ref not in w.get(target, "followers"):
            _note(report, MISSING_FOLLOWER, ref, target, "following")
            w.put(target, "followers", with_member(w.get(target, "followers"), ref))

    for follower in list(w.get(ref, "followers")):
        if not w.exists(follower):
            _note(report, DANGLING_FOLLOWER, follower, ref, None)
            w.put(ref, "followers", without_member(w.get(ref, "followers"), follower))
        elif ref not in w.get(follower, "following"):
            _note(report, MISSING_FOLLOWING, follower, ref, "followers")
            w.put(follower, "following", with_member(w.get(follower, "following"), ref))


def _check_inbound(w: _Working, ref: str, inbound: list[str], report: AuditReport) -> None:
    # Others that mention this identity while its own sets do not mirror them.
    for other in inbound:
        if not w.exists(other):
            continue
        if ref in w.get(other, "following") and other not in w.get(ref, "followers"):
            _note(report, MISSING_FOLLOWER, other, ref, "following")
            w.put(ref, "followers", with_member(w.get(ref, "followers"), other))
        if ref in w.get(other, "followers") and other not in w.get(ref, "following"):
            _note(report, MISSING_FOLLOWING, ref, other, "followers")
            w.put(ref, "following", with_member(w.get(ref, "following"), other))


async def _lock_neighbourhood(db: AsyncSession, ref: str) -> tuple[dict, list[str]]:
    """
    Lock the identity and every identity related to it, judged on locked state.

    A follow committed between reads can add references the previous pass
    never loaded, so the locked set grows until it covers everything the
    locked rows mention. Only a reference still missing from ``rows`` after
    that is dangling.
    """
    wanted = {ref}
    while True:
        rows = await lock_identities(db, wanted)
        subject = rows.get(ref)
        if subject is None:
            raise NotFound("user", ref)

        inbound = [u.id for u in await find_referencing(db, ref, lock=True)]
        missing = {*(subject.following or []), *(subject.followers or []), *inbound} - wanted
        if not missing:
            return rows, inbound
        wanted |= missing


async def audit_identity(db: AsyncSession, identity_id: str, *, repair: bool = True) -> AuditReport:
    """
    Audit every relationship touching one identity.

    Checks the identity's own ``following`` and ``followers`` against the
    referenced identities, and looks up identities that reference it from
    their side. With ``repair=False`` the findings are reported but
    nothing is written.
    """
    ref = parse_identity_ref(identity_id)
    report = AuditReport(identity_id=ref, dry_run=not repair)

    try:
        rows, inbound = await _lock_neighbourhood(db, ref)

        w = _Working(rows)
        report.checked = len({*w.get(ref, "following"), *w.get(ref, "followers"), *inbound} - {ref})

        _collapse_duplicates(w, ref, report)
        _drop_self_references(w, ref, report)
        _check_outbound(w, ref, report)
        _check_inbound(w, ref, inbound, report)

        if repair and w.dirty:
            w.flush()
            await db.commit()
        else:
            await db.rollback()
    except Exception:
        await db.rollback()
        raise

    if report.found:
        log.info("[AUDIT] %s: found=%d fixed=%d dry_run=%s", ref, report.found, report.fixed, report.dry_run)
    else:
        log.debug("[AUDIT] %s is consistent (%d references checked)", ref, report.checked)
    return report


async def audit_all(db: AsyncSession, *, batch_size: int = 200, repair: bool = True) -> SweepSummary:
    summary = SweepSummary(dry_run=not repair)
    async for batch in iter_identity_ids(db, batch_size):
        for identity_id in batch:
            try:
                report = await audit_identity(db, identity_id, repair=repair)
            except NotFound:
                # Deleted while the sweep was running.
                summary.skipped += 1
                continue
            summary.audited += 1
            summary.found += report.found
            summary.fixed += report.fixed
            if report.found:
                summary.drifted.append(identity_id)

    log.info(
        "[AUDIT] sweep done: audited=%d skipped=%d found=%d fixed=%d dry_run=%s",
        summary.audited, summary.skipped, summary.found, summary.fixed, summary.dry_run,
    )
    return summary
