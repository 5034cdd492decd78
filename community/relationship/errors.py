"""Failure kinds raised by the relationship engine, status queries and auditor."""

from typing import Any


class RelationshipError(Exception):
    status_code = 400
    code = "RELATIONSHIP_ERROR"
    # Benign errors are rendered as informational (the client reconciles).
    benign = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": False,
            "error": self.code,
            "message": self.message,
            "severity": "info" if self.benign else "error",
            "details": self.details,
        }


class InvalidReference(RelationshipError):
    code = "INVALID_REFERENCE"


class SelfReferenceNotAllowed(RelationshipError):
    code = "SELF_REFERENCE_NOT_ALLOWED"


class NotFound(RelationshipError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, role: str, identity_id: str):
        label = "User" if role == "user" else f"{role.capitalize()} user"
        super().__init__(
            f"{label} not found",
            details={"role": role, "id": identity_id},
        )
        self.role = role
        self.identity_id = identity_id


class AlreadyExists(RelationshipError):
    status_code = 409
    code = "ALREADY_FOLLOWING"
    benign = True


class NotFollowing(RelationshipError):
    status_code = 409
    code = "NOT_FOLLOWING"
    benign = True


class InconsistentState(RelationshipError):
    """Drift between mirrored sets. Only the auditor reports this, and it is never rendered."""

    status_code = 500
    code = "INCONSISTENT_STATE"

    def __init__(self, kind: str, identity_id: str, counterpart_id: str):
        super().__init__(
            f"{kind}: {identity_id} <-> {counterpart_id}",
            details={"kind": kind, "identity_id": identity_id, "counterpart_id": counterpart_id},
        )
        self.kind = kind
        self.identity_id = identity_id
        self.counterpart_id = counterpart_id
