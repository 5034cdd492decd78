from datetime import datetime, timedelta, timezone
from jose import jwt
from community.core.config import settings

def create_token(data: dict, secret: str | None = None, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user_id: str, role: str = "user") -> str:
    return create_token({"sub": user_id, "role": role})
