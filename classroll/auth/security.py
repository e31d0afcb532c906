from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import jwt

from classroll.core.config import settings


def create_access_token(user_id: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Signed bearer token for `user_id`. Login lives elsewhere; this is what it is expected to issue."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a bearer token. Raises jose.JWTError when invalid or expired."""
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )
