from .payment_box import PHASE_STATUS, TERMINAL_STATUSES, BoxPhase, BoxStatus, PaymentBox
from .settings import PaymentBoxSettings
from .transition import PaymentBoxTransition

__all__ = [
    "BoxPhase",
    "BoxStatus",
    "PaymentBox",
    "PaymentBoxSettings",
    "PaymentBoxTransition",
    "PHASE_STATUS",
    "TERMINAL_STATUSES",
]
