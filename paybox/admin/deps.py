"""Admin auth: admin bearer token, or X-Admin-Secret for operator tooling."""
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from paybox.api.deps import _actor_from_token, security
from paybox.core.config import settings
from paybox.core.security import admin_secret_matches
from paybox.services.state_machine import Actor

ADMIN_SECRET_ACTOR_ID = "admin"


def get_admin_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_admin_secret: str | None = Header(None, alias="X-Admin-Secret"),
) -> Actor:
    if x_admin_secret is not None:
        if not (settings.admin_secret or "").strip():
            raise HTTPException(status_code=503, detail="Admin access not configured (ADMIN_SECRET missing).")
        if not admin_secret_matches(x_admin_secret):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized.")
        return Actor(id=ADMIN_SECRET_ACTOR_ID, role="admin")
    actor = _actor_from_token(credentials)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized.")
    return actor
