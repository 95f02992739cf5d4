"""
Rate limiting (SlowAPI).

Authenticated calls are counted per user (token ``sub``) so a seller behind a
shared NAT does not throttle the buyer; anonymous calls fall back to the client
IP, honouring X-Forwarded-For behind a proxy.
"""
from fastapi import Request

from slowapi import Limiter

from .config import settings
from .security import decode_access_token


def create_limit() -> str:
    """Read per request so the limit follows the live settings."""
    return f"{settings.rate_limit_create_per_minute}/minute"


def default_limit() -> str:
    return f"{settings.rate_limit_per_minute}/minute"


def client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def rate_key(request: Request) -> str:
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        payload = decode_access_token(token.strip())
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"
    return f"ip:{client_ip(request)}"


limiter = Limiter(key_func=rate_key, default_limits=[default_limit])
