"""
Follow relationships between users.

Relationships are stored as mirrored ``followers`` / ``following`` sets on
the two user rows. This package keeps the two mirrors in step:

- engine: follow / unfollow, both sides in one transaction
- status: read-only follow status, follower/following listings, pair checks
- auditor: detect and repair drift between the mirrors
"""

from .errors import (
    AlreadyExists,
    InconsistentState,
    InvalidReference,
    NotFollowing,
    NotFound,
    RelationshipError,
    SelfReferenceNotAllowed,
)
from .engine import FollowResult, follow, unfollow
from .status import FollowStatus, IdentityPage, PairCheck, check_pair, get_follow_status, list_followers, list_following
from .auditor import AuditFinding, AuditReport, SweepSummary, audit_all, audit_identity
