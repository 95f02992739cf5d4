from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from paybox.core.clock import Clock, utc_now
from paybox.core.database import get_db
from paybox.core.security import decode_access_token
from paybox.models.payment_box import USER_ID_LENGTH
from paybox.services.events import feed
from paybox.services.ledger import PaymentBoxLedger
from paybox.services.state_machine import Actor

security = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    return utc_now


def get_ledger(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> PaymentBoxLedger:
    return PaymentBoxLedger(db, clock=clock, events=feed)


def _actor_from_token(credentials: HTTPAuthorizationCredentials | None) -> Actor | None:
    if not credentials:
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub") or len(str(payload["sub"])) > USER_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )
    role = payload.get("role") or "user"
    if role not in ("user", "admin"):
        role = "user"
    return Actor(id=str(payload["sub"]), role=role)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    actor = _actor_from_token(credentials)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor
