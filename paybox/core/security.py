import hmac
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .config import settings

ALGORITHM = "HS256"
ROLES = ("user", "admin")


def create_access_token(user_id: str, role: str = "user", expires_minutes: int | None = None) -> str:
    """Bearer token for a marketplace user; the identity provider issues these in production."""
    if role not in ROLES:
        raise ValueError(f"unknown role: {role}")
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


def admin_secret_matches(provided: str | None) -> bool:
    """Constant-time comparison against ADMIN_SECRET; an unset secret never matches."""
    expected = (settings.admin_secret or "").encode("utf-8")
    if not expected:
        return False
    return hmac.compare_digest((provided or "").encode("utf-8"), expected)
