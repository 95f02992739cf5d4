import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from paybox.core.clock import utc_now
from paybox.models.columns import UTCDateTime


class BoxStatus(str, Enum):
    PENDING = "pending"
    BUYER_PAID = "buyer_paid"
    ADMIN_CONFIRMED = "admin_confirmed"
    REFUND_REQUESTED = "refund_requested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    REFUNDED = "refunded"


class BoxPhase(str, Enum):
    """Explicit sub-state; several phases share one ``BoxStatus``."""

    PENDING = "pending"
    DURATION_SELECTED = "duration_selected"
    BUYER_PAID = "buyer_paid"
    ADMIN_CONFIRMED = "admin_confirmed"
    SELLER_COMPLETED = "seller_completed"
    BUYER_CONFIRMED = "buyer_confirmed"
    SELLER_REQUESTED_PAYOUT = "seller_requested_payout"
    REFUND_REQUESTED = "refund_requested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    REFUNDED = "refunded"


PHASE_STATUS: dict[BoxPhase, BoxStatus] = {
    BoxPhase.PENDING: BoxStatus.PENDING,
    BoxPhase.DURATION_SELECTED: BoxStatus.PENDING,
    BoxPhase.BUYER_PAID: BoxStatus.BUYER_PAID,
    BoxPhase.ADMIN_CONFIRMED: BoxStatus.ADMIN_CONFIRMED,
    BoxPhase.SELLER_COMPLETED: BoxStatus.ADMIN_CONFIRMED,
    BoxPhase.BUYER_CONFIRMED: BoxStatus.ADMIN_CONFIRMED,
    BoxPhase.SELLER_REQUESTED_PAYOUT: BoxStatus.ADMIN_CONFIRMED,
    BoxPhase.REFUND_REQUESTED: BoxStatus.REFUND_REQUESTED,
    BoxPhase.COMPLETED: BoxStatus.COMPLETED,
    BoxPhase.CANCELLED: BoxStatus.CANCELLED,
    BoxPhase.REJECTED: BoxStatus.REJECTED,
    BoxPhase.REFUNDED: BoxStatus.REFUNDED,
}

TERMINAL_STATUSES = frozenset(
    {BoxStatus.COMPLETED, BoxStatus.CANCELLED, BoxStatus.REJECTED, BoxStatus.REFUNDED}
)


# Column widths that request input is checked against
USER_ID_LENGTH = 64
BANK_ACCOUNT_LENGTH = 64
BANK_NAME_LENGTH = 128
FEE_LENGTH = 64


def _new_box_id() -> str:
    return uuid.uuid4().hex


class PaymentBox(SQLModel, table=True):
    """Escrowed transaction between a seller (sender) and a buyer (receiver)."""

    id: str = Field(default_factory=_new_box_id, primary_key=True, max_length=32)
    sender_id: str = Field(index=True, max_length=USER_ID_LENGTH)  # seller
    receiver_id: str = Field(index=True, max_length=USER_ID_LENGTH)  # buyer
    status: str = Field(default=BoxStatus.PENDING.value, index=True, max_length=32)
    phase: str = Field(default=BoxPhase.PENDING.value, index=True, max_length=32)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Duration chosen by the buyer
    confirmed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    payment_duration: str | None = Field(default=None, max_length=16)  # 24h | 3days | 7days | 1month | custom | no_time
    payment_duration_days: int | None = None

    bill_image_url: str | None = None
    admin_confirmed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    transaction_start_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    seller_completed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    buyer_confirmed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    seller_confirmed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)  # payout requested
    seller_bank_account: str | None = Field(default=None, max_length=BANK_ACCOUNT_LENGTH)
    seller_bank_name: str | None = Field(default=None, max_length=BANK_NAME_LENGTH)
    completed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    seller_cancelled_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    seller_rejection_reason: str | None = None
    seller_rejection_bank_account: str | None = Field(default=None, max_length=BANK_ACCOUNT_LENGTH)
    seller_rejection_bank_name: str | None = Field(default=None, max_length=BANK_NAME_LENGTH)

    refund_requested_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    refund_approved_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    refund_reason: str | None = None
    buyer_bank_account: str | None = Field(default=None, max_length=BANK_ACCOUNT_LENGTH)
    buyer_bank_name: str | None = Field(default=None, max_length=BANK_NAME_LENGTH)

    # Arbitration notes
    admin_message: str | None = None
    admin_message_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    admin_seller_message: str | None = None
    admin_seller_message_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    buyer_reply: str | None = None
    buyer_reply_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    # Snapshot of PaymentBoxSettings when the box was opened
    content: str | None = None
    image_url: str | None = None
    has_fee: bool | None = None
    transaction_fee: str | None = Field(default=None, max_length=FEE_LENGTH)

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}
