"""Admin payment-box settings (single row) and the snapshot copied into new boxes."""
from datetime import datetime

from sqlmodel import Session, select

from paybox.core.clock import utc_now
from paybox.models import PaymentBoxSettings


def get_settings(db: Session) -> PaymentBoxSettings | None:
    return db.exec(select(PaymentBoxSettings).order_by(PaymentBoxSettings.id.asc())).first()


def update_settings(
    db: Session,
    content: str | None,
    image_url: str | None,
    has_fee: bool,
    transaction_fee: str | None,
    now: datetime | None = None,
) -> PaymentBoxSettings:
    """Update the existing row or insert the first one."""
    now = now or utc_now()
    row = get_settings(db)
    if row is None:
        row = PaymentBoxSettings(created_at=now)
    row.content = (content or "").strip() or None
    row.image_url = (image_url or "").strip() or None
    row.has_fee = bool(has_fee)
    row.transaction_fee = (transaction_fee or "").strip() or None
    row.updated_at = now
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def snapshot_fields(db: Session) -> dict:
    row = get_settings(db)
    if row is None:
        return {}
    return {
        "content": row.content,
        "image_url": row.image_url,
        "has_fee": row.has_fee,
        "transaction_fee": row.transaction_fee if row.has_fee else None,
    }
