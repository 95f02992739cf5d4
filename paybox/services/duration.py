"""Payment duration value object and the countdown that follows admin confirmation."""
from dataclasses import dataclass
from datetime import datetime, timedelta

from paybox.core.config import settings
from paybox.core.errors import MissingFieldError

# Fixed choices offered to the buyer -> day count
FIXED_DURATION_DAYS = {
    "24h": 1,
    "3days": 3,
    "7days": 7,
    "1month": 30,
}
CUSTOM = "custom"
NO_TIME = "no_time"
DURATION_KINDS = (*FIXED_DURATION_DAYS, CUSTOM, NO_TIME)


@dataclass(frozen=True)
class PaymentDuration:
    kind: str
    days: int

    def __post_init__(self):
        if self.kind in FIXED_DURATION_DAYS:
            if self.days != FIXED_DURATION_DAYS[self.kind]:
                raise MissingFieldError(
                    f"{self.kind} is {FIXED_DURATION_DAYS[self.kind]} day(s), not {self.days}",
                    field="payment_duration_days",
                )
        elif self.kind == CUSTOM:
            limit = settings.max_custom_duration_days
            if isinstance(self.days, bool) or not isinstance(self.days, int) or not (1 <= self.days <= limit):
                raise MissingFieldError(
                    f"custom duration must be between 1 and {limit} days",
                    field="custom_days",
                )
        elif self.kind == NO_TIME:
            if self.days != 0:
                raise MissingFieldError("no_time carries no day count", field="payment_duration_days")
        else:
            raise MissingFieldError(f"unknown payment duration: {self.kind!r}", field="payment_duration")

    @classmethod
    def from_choice(cls, kind: str | None, custom_days: int | None = None) -> "PaymentDuration":
        """Build from what the buyer picked; ``custom_days`` only matters for ``custom``."""
        kind = (kind or "").strip()
        if not kind:
            raise MissingFieldError("payment duration not chosen", field="payment_duration")
        if kind in FIXED_DURATION_DAYS:
            return cls(kind, FIXED_DURATION_DAYS[kind])
        if kind == CUSTOM:
            if custom_days is None:
                raise MissingFieldError("custom duration needs a day count", field="custom_days")
            return cls(kind, custom_days)
        if kind == NO_TIME:
            return cls(kind, 0)
        raise MissingFieldError(f"unknown payment duration: {kind!r}", field="payment_duration")

    @property
    def has_countdown(self) -> bool:
        return self.kind != NO_TIME


def days_elapsed(start: datetime, now: datetime) -> int:
    """Whole days since ``start``; negative when ``now`` precedes it."""
    delta = now - start
    seconds = delta.total_seconds()
    # truncated toward zero
    return int(seconds // 86400) if seconds >= 0 else -int(-seconds // 86400)


def remaining_days(
    transaction_start_at: datetime | None,
    payment_duration_days: int | None,
    now: datetime,
    payment_duration: str | None = None,
) -> int | None:
    """Days left in the window, floored at 0. None while there is no countdown."""
    if transaction_start_at is None or payment_duration_days is None:
        return None
    if payment_duration == NO_TIME:
        return None
    return max(0, payment_duration_days - days_elapsed(transaction_start_at, now))


def is_expired(
    transaction_start_at: datetime | None,
    payment_duration_days: int | None,
    now: datetime,
    payment_duration: str | None = None,
) -> bool:
    left = remaining_days(transaction_start_at, payment_duration_days, now, payment_duration)
    return left is not None and left <= 0


def window_ends_at(transaction_start_at: datetime | None, payment_duration_days: int | None) -> datetime | None:
    if transaction_start_at is None or not payment_duration_days:
        return None
    return transaction_start_at + timedelta(days=payment_duration_days)
