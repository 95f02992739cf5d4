from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

from paybox.models.payment_box import FEE_LENGTH


class CreateBoxRequest(BaseModel):
    """Seller opens a transaction request towards a buyer."""
    receiver_id: str


class SelectDurationRequest(BaseModel):
    """Buyer picks the window: 24h | 3days | 7days | 1month | custom | no_time."""
    payment_duration: str
    custom_days: StrictInt | None = None


class MarkPaidRequest(BaseModel):
    bill_image_url: str | None = None  # proof of payment, already uploaded


class RejectRequest(BaseModel):
    """Buyer rejects a pending box; seller rejects a claimed payment (reason required)."""
    reason: str | None = None
    bank_account: str | None = None
    bank_name: str | None = None


class ConfirmReceiptRequest(BaseModel):
    received: bool = False


class RefundRequest(BaseModel):
    reason: str | None = None
    bank_account: str | None = None
    bank_name: str | None = None


class PayoutRequest(BaseModel):
    bank_account: str | None = None
    bank_name: str | None = None


class MessageRequest(BaseModel):
    message: str | None = None


class PaymentBoxResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    status: str
    phase: str
    created_at: datetime
    confirmed_at: datetime | None = None
    payment_duration: str | None = None
    payment_duration_days: int | None = None
    bill_image_url: str | None = None
    admin_confirmed_at: datetime | None = None
    transaction_start_at: datetime | None = None
    seller_completed_at: datetime | None = None
    buyer_confirmed_at: datetime | None = None
    seller_confirmed_at: datetime | None = None
    seller_bank_account: str | None = None
    seller_bank_name: str | None = None
    completed_at: datetime | None = None
    seller_cancelled_at: datetime | None = None
    seller_rejection_reason: str | None = None
    seller_rejection_bank_account: str | None = None
    seller_rejection_bank_name: str | None = None
    refund_requested_at: datetime | None = None
    refund_approved_at: datetime | None = None
    refund_reason: str | None = None
    buyer_bank_account: str | None = None
    buyer_bank_name: str | None = None
    admin_message: str | None = None
    admin_message_at: datetime | None = None
    admin_seller_message: str | None = None
    admin_seller_message_at: datetime | None = None
    buyer_reply: str | None = None
    buyer_reply_at: datetime | None = None
    content: str | None = None
    image_url: str | None = None
    has_fee: bool | None = None
    transaction_fee: str | None = None
    # computed at read time
    remaining_days: int | None = None
    expired: bool = False
    window_ends_at: datetime | None = None
    available_actions: list[str] = []


class TransitionResponse(BaseModel):
    action: str
    from_status: str
    from_phase: str
    to_status: str
    to_phase: str
    actor_id: str
    actor_role: str
    reason: str = ""
    created_at: datetime


class AdminBoxDetail(BaseModel):
    box: PaymentBoxResponse
    history: list[TransitionResponse]


class ChangeEvent(BaseModel):
    seq: int
    id: str
    ts: str
    type: str
    box_id: str
    status: str
    phase: str | None = None
    actor_id: str | None = None


class ChangesResponse(BaseModel):
    events: list[ChangeEvent]
    cursor: int


class SettingsRequest(BaseModel):
    content: str | None = None
    image_url: str | None = None
    has_fee: bool = True
    transaction_fee: str | None = Field(default=None, max_length=FEE_LENGTH)


class SettingsResponse(BaseModel):
    content: str | None = None
    image_url: str | None = None
    has_fee: bool = True
    transaction_fee: str | None = None
    updated_at: datetime | None = None
