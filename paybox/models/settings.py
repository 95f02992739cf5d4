from datetime import datetime

from sqlmodel import Field, SQLModel

from paybox.core.clock import utc_now
from paybox.models.columns import UTCDateTime


class PaymentBoxSettings(SQLModel, table=True):
    """Admin-managed payment instructions shown inside every new box (single row)."""

    id: int | None = Field(default=None, primary_key=True)
    content: str | None = None  # where/how to pay
    image_url: str | None = None  # QR code or bank card image
    has_fee: bool = True
    transaction_fee: str | None = Field(default=None, max_length=64)  # free text, e.g. "2%"
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
