import uuid

from community.relationship.errors import InvalidReference


def parse_identity_ref(raw: object) -> str:
    """Normalise an identity reference to its canonical UUID string or raise InvalidReference."""
    if isinstance(raw, uuid.UUID):
        return str(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidReference("Invalid user ID format", details={"id": raw if isinstance(raw, str) else None})
    try:
        return str(uuid.UUID(raw.strip()))
    except ValueError:
        raise InvalidReference("Invalid user ID format", details={"id": raw})
