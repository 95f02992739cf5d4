"""
Payment-box ledger: the only place boxes are mutated.

Every operation re-reads the box, runs the pure state machine and writes the
result with a compare-and-set on (status, phase), so guard decisions are never
based on a cached or client-side view of the box.
"""
import logging
from typing import Any, Iterable

from sqlmodel import Session

from paybox.core.clock import Clock, utc_now
from paybox.core.errors import InvalidActorError, InvalidStateError, MissingFieldError, PayBoxError
from paybox.models import BoxPhase, PaymentBox, PaymentBoxTransition
from paybox.services import box_settings
from paybox.services.duration import is_expired, remaining_days, window_ends_at
from paybox.services.events import ChangeFeed, feed
from paybox.services.state_machine import (
    Action,
    Actor,
    available_actions,
    derive_phase,
    is_terminal,
    open_box,
    transition,
)
from paybox.services.store import BoxStore

log = logging.getLogger("paybox.ledger")

# Boxes waiting on the arbitrator
ATTENTION_PHASES = (
    BoxPhase.BUYER_PAID.value,
    BoxPhase.REFUND_REQUESTED.value,
    BoxPhase.SELLER_REQUESTED_PAYOUT.value,
)


class PaymentBoxLedger:
    def __init__(self, db: Session, clock: Clock = utc_now, events: ChangeFeed | None = None):
        self.db = db
        self.store = BoxStore(db)
        self.clock = clock
        self.events = events if events is not None else feed

    # -- reads ---------------------------------------------------------------

    def _load(self, box_id: str) -> PaymentBox:
        return self.store.get(box_id)

    def get_box(self, box_id: str, actor: Actor) -> PaymentBox:
        box = self._load(box_id)
        if not actor.is_admin and actor.id not in (box.sender_id, box.receiver_id):
            raise InvalidActorError("not a participant of this box", box_id=box_id)
        return box

    def list_for_user(self, actor: Actor, statuses: Iterable[str] | None = None) -> list[PaymentBox]:
        return self.store.for_participant(actor.id, statuses)

    def list_for_admin(self, actor: Actor, statuses: Iterable[str] | None = None) -> list[PaymentBox]:
        """With no status filter: boxes that need an arbitrator decision."""
        self._require_admin(actor)
        statuses = list(statuses or [])
        if statuses:
            return self.store.query(status=statuses)
        return self.store.query(phase=list(ATTENTION_PHASES))

    def history(self, box_id: str, actor: Actor) -> list[PaymentBoxTransition]:
        self._require_admin(actor)
        return self.store.history(box_id)

    def describe(self, box: PaymentBox, actor: Actor) -> dict[str, Any]:
        """Box plus the values computed lazily at read time."""
        now = self.clock()
        data = box.model_dump()
        data["phase"] = derive_phase(box).value
        data["remaining_days"] = remaining_days(
            box.transaction_start_at, box.payment_duration_days, now, box.payment_duration
        )
        data["expired"] = is_expired(box.transaction_start_at, box.payment_duration_days, now, box.payment_duration)
        data["window_ends_at"] = window_ends_at(box.transaction_start_at, box.payment_duration_days)
        data["available_actions"] = [a.value for a in available_actions(box, actor)]
        return data

    # -- transitions ---------------------------------------------------------

    def create_box(self, actor: Actor, receiver_id: str | None) -> PaymentBox:
        now = self.clock()
        fields = open_box(actor, receiver_id)
        fields["created_at"] = now
        fields.update(box_settings.snapshot_fields(self.db))
        audit = PaymentBoxTransition(
            box_id="",
            action="create",
            from_status="",
            from_phase="",
            to_status=fields["status"],
            to_phase=fields["phase"],
            actor_id=actor.id,
            actor_role=actor.role,
            created_at=now,
        )
        box = self.store.create(fields, audit=audit)
        log.info("Box created: box=%s seller=%s buyer=%s", box.id, box.sender_id, box.receiver_id)
        self.events.publish(box, "create", actor.id, now)
        return box

    def apply(self, box_id: str, action: Action, actor: Actor, inputs: dict[str, Any] | None = None) -> PaymentBox:
        box = self._load(box_id)
        now = self.clock()
        try:
            changes = transition(box, action, actor, now, inputs)
        except PayBoxError as exc:
            log.info(
                "Transition rejected: box=%s action=%s actor=%s code=%s detail=%s",
                box_id,
                action.value,
                actor.id,
                exc.code,
                exc.message,
            )
            raise
        reason = (inputs or {}).get("reason") or ""
        audit = PaymentBoxTransition(
            box_id=box.id,
            action=action.value,
            from_status=box.status,
            from_phase=derive_phase(box).value,
            to_status=changes["status"],
            to_phase=changes["phase"],
            actor_id=actor.id,
            actor_role=actor.role,
            reason=str(reason)[:240],
            created_at=now,
        )
        updated = self.store.update(
            box.id,
            changes,
            expected={"status": box.status, "phase": box.phase},
            audit=audit,
        )
        log.info(
            "Transition applied: box=%s action=%s actor=%s %s -> %s",
            box.id,
            action.value,
            actor.id,
            audit.from_phase,
            updated.phase,
        )
        self.events.publish(updated, action.value, actor.id, now)
        return updated

    def select_duration(
        self, box_id: str, actor: Actor, payment_duration: str | None, custom_days: int | None = None
    ) -> PaymentBox:
        return self.apply(
            box_id,
            Action.SELECT_DURATION,
            actor,
            {"payment_duration": payment_duration, "custom_days": custom_days},
        )

    def mark_paid(self, box_id: str, actor: Actor, bill_image_url: str | None = None) -> PaymentBox:
        return self.apply(box_id, Action.MARK_PAID, actor, {"bill_image_url": bill_image_url})

    def admin_confirm(self, box_id: str, actor: Actor) -> PaymentBox:
        return self.apply(box_id, Action.ADMIN_CONFIRM, actor)

    def reject(
        self,
        box_id: str,
        actor: Actor,
        reason: str | None = None,
        bank_account: str | None = None,
        bank_name: str | None = None,
    ) -> PaymentBox:
        return self.apply(
            box_id,
            Action.REJECT,
            actor,
            {"reason": reason, "bank_account": bank_account, "bank_name": bank_name},
        )

    def cancel(self, box_id: str, actor: Actor) -> PaymentBox:
        return self.apply(box_id, Action.CANCEL, actor)

    def seller_complete(self, box_id: str, actor: Actor) -> PaymentBox:
        return self.apply(box_id, Action.SELLER_COMPLETE, actor)

    def confirm_receipt(self, box_id: str, actor: Actor, received: bool = False) -> PaymentBox:
        return self.apply(box_id, Action.CONFIRM_RECEIPT, actor, {"received": received})

    def request_refund(
        self,
        box_id: str,
        actor: Actor,
        reason: str | None,
        bank_account: str | None,
        bank_name: str | None,
    ) -> PaymentBox:
        return self.apply(
            box_id,
            Action.REQUEST_REFUND,
            actor,
            {"reason": reason, "bank_account": bank_account, "bank_name": bank_name},
        )

    def approve_refund(self, box_id: str, actor: Actor) -> PaymentBox:
        return self.apply(box_id, Action.APPROVE_REFUND, actor)

    def request_payout(
        self, box_id: str, actor: Actor, bank_account: str | None, bank_name: str | None
    ) -> PaymentBox:
        return self.apply(
            box_id,
            Action.REQUEST_PAYOUT,
            actor,
            {"bank_account": bank_account, "bank_name": bank_name},
        )

    def complete(self, box_id: str, actor: Actor) -> PaymentBox:
        return self.apply(box_id, Action.COMPLETE, actor)

    # -- notes and administration -------------------------------------------

    def _require_admin(self, actor: Actor) -> None:
        if not actor.is_admin:
            raise InvalidActorError("admin only")

    def _note(
        self,
        box: PaymentBox,
        field: str,
        message: str | None,
        actor: Actor,
        expected: dict[str, Any] | None = None,
    ) -> PaymentBox:
        message = (message or "").strip()
        if not message:
            raise MissingFieldError("message is required", field="message", box_id=box.id)
        now = self.clock()
        updated = self.store.update(box.id, {field: message[:2000], f"{field}_at": now}, expected=expected)
        log.info("Note saved: box=%s field=%s actor=%s", box.id, field, actor.id)
        self.events.publish(updated, field, actor.id, now)
        return updated

    def post_admin_message(self, box_id: str, actor: Actor, message: str | None) -> PaymentBox:
        """Arbitration note to the buyer; allowed on closed boxes as well."""
        self._require_admin(actor)
        return self._note(self._load(box_id), "admin_message", message, actor)

    def post_admin_seller_message(self, box_id: str, actor: Actor, message: str | None) -> PaymentBox:
        self._require_admin(actor)
        return self._note(self._load(box_id), "admin_seller_message", message, actor)

    def post_buyer_reply(self, box_id: str, actor: Actor, message: str | None) -> PaymentBox:
        box = self._load(box_id)
        if actor.id != box.receiver_id:
            raise InvalidActorError("only the buyer can reply", box_id=box_id)
        if is_terminal(box):
            raise InvalidStateError(f"box is {box.status}; no further changes allowed", box_id=box_id)
        # written only while the status is still the non-terminal one checked above
        return self._note(box, "buyer_reply", message, actor, expected={"status": box.status})

    def delete_box(self, box_id: str, actor: Actor) -> None:
        self._require_admin(actor)
        box = self._load(box_id)
        last_seen = PaymentBox(**box.model_dump())
        self.store.delete(box_id)
        log.info("Box deleted: box=%s status=%s actor=%s", box_id, last_seen.status, actor.id)
        self.events.publish(last_seen, "delete", actor.id, self.clock())
