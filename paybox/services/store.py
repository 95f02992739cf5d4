"""Persistence for payment boxes: create, get, conditional update, query, delete."""
import logging
from typing import Any, Iterable

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import Session, select

from paybox.core.errors import NotFoundError, StaleStateError
from paybox.models import PaymentBox, PaymentBoxTransition

log = logging.getLogger("paybox.store")


class BoxStore:
    def __init__(self, db: Session):
        self.db = db

    def create(self, fields: dict[str, Any], audit: PaymentBoxTransition | None = None) -> PaymentBox:
        box = PaymentBox(**fields)
        self.db.add(box)
        if audit is not None:
            audit.box_id = box.id
            self.db.add(audit)
        self.db.commit()
        self.db.refresh(box)
        return box

    def get(self, box_id: str) -> PaymentBox:
        """Authoritative read; bypasses whatever the session already holds."""
        box = self.db.get(PaymentBox, box_id, populate_existing=True)
        if box is None:
            raise NotFoundError("payment box not found", box_id=box_id)
        return box

    def update(
        self,
        box_id: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
        audit: PaymentBoxTransition | None = None,
    ) -> PaymentBox:
        """
        ``UPDATE paymentbox SET ... WHERE id = ? AND <expected columns match>``.

        The audit row is committed together with the update. Zero matched rows
        means the box is gone (NotFoundError) or was moved by someone else
        since it was read (StaleStateError).
        """
        stmt = sa_update(PaymentBox).where(PaymentBox.id == box_id)
        for column, value in (expected or {}).items():
            stmt = stmt.where(getattr(PaymentBox, column) == value)
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            self.db.rollback()
            if self.db.get(PaymentBox, box_id) is None:
                raise NotFoundError("payment box not found", box_id=box_id)
            log.warning("Stale write rejected: box=%s expected=%s", box_id, expected)
            raise StaleStateError("payment box changed meanwhile; reload and retry", box_id=box_id)
        if audit is not None:
            self.db.add(audit)
        self.db.commit()
        return self.get(box_id)

    def query(self, order_desc: bool = True, limit: int | None = None, **filters: Any) -> list[PaymentBox]:
        """Equality filters; list/tuple/set values become membership filters."""
        stmt = select(PaymentBox)
        for column, value in filters.items():
            if value is None:
                continue
            attr = getattr(PaymentBox, column)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(attr.in_(list(value)))
            else:
                stmt = stmt.where(attr == value)
        stmt = stmt.order_by(PaymentBox.created_at.desc() if order_desc else PaymentBox.created_at.asc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.exec(stmt).all())

    def for_participant(self, user_id: str, statuses: Iterable[str] | None = None) -> list[PaymentBox]:
        """Boxes where the user is either seller or buyer."""
        stmt = select(PaymentBox).where(
            (PaymentBox.sender_id == user_id) | (PaymentBox.receiver_id == user_id)
        )
        if statuses:
            stmt = stmt.where(PaymentBox.status.in_(list(statuses)))
        stmt = stmt.order_by(PaymentBox.created_at.desc())
        return list(self.db.exec(stmt).all())

    def delete(self, box_id: str) -> None:
        result = self.db.execute(sa_delete(PaymentBox).where(PaymentBox.id == box_id))
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError("payment box not found", box_id=box_id)
        # transition rows are kept as the audit trail of the deleted box
        self.db.commit()

    def history(self, box_id: str) -> list[PaymentBoxTransition]:
        stmt = (
            select(PaymentBoxTransition)
            .where(PaymentBoxTransition.box_id == box_id)
            .order_by(PaymentBoxTransition.id.asc())
        )
        return list(self.db.exec(stmt).all())
