from datetime import datetime

from sqlmodel import Field, SQLModel

from paybox.core.clock import utc_now
from paybox.models.columns import UTCDateTime


class PaymentBoxTransition(SQLModel, table=True):
    """Audit row written in the same commit as the guarded status update."""

    id: int | None = Field(default=None, primary_key=True)
    box_id: str = Field(index=True, max_length=32)
    action: str = Field(index=True, max_length=32)
    from_status: str = Field(max_length=32)
    from_phase: str = Field(max_length=32)
    to_status: str = Field(max_length=32)
    to_phase: str = Field(max_length=32)
    actor_id: str = Field(max_length=64)
    actor_role: str = Field(max_length=16)  # user | admin
    reason: str = Field(default="", max_length=240)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
