from datetime import datetime, timedelta, timezone

import jwt

from backend.core.config import AuthSettings


def create_access_token(subject: str, settings: AuthSettings, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes if expires_minutes is not None else settings.expires_minutes
    now = datetime.now(timezone.utc)
    payload = {"sub": subject, "exp": now + timedelta(minutes=expire_minutes), "iat": now}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: AuthSettings) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
