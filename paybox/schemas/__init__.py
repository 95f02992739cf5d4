from .payment_box import (
    AdminBoxDetail,
    ChangesResponse,
    ConfirmReceiptRequest,
    CreateBoxRequest,
    MarkPaidRequest,
    MessageRequest,
    PaymentBoxResponse,
    PayoutRequest,
    RefundRequest,
    RejectRequest,
    SelectDurationRequest,
    SettingsRequest,
    SettingsResponse,
    TransitionResponse,
)

__all__ = [
    "AdminBoxDetail",
    "ChangesResponse",
    "ConfirmReceiptRequest",
    "CreateBoxRequest",
    "MarkPaidRequest",
    "MessageRequest",
    "PaymentBoxResponse",
    "PayoutRequest",
    "RefundRequest",
    "RejectRequest",
    "SelectDurationRequest",
    "SettingsRequest",
    "SettingsResponse",
    "TransitionResponse",
]
