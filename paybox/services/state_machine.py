"""
Payment-box state machine.

Pure functions only: nothing here reads the database or the wall clock. The
ledger loads a fresh record, asks :func:`transition` for the field changes and
writes them with a compare-and-set on the current status/phase.

Check order for every action:
1. terminal record        -> InvalidStateError
2. actor is not the party -> InvalidActorError
3. wrong source phase     -> InvalidStateError
4. missing/invalid input  -> MissingFieldError
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping

from paybox.core.errors import InvalidActorError, InvalidStateError, MissingFieldError
from paybox.models.payment_box import (
    BANK_ACCOUNT_LENGTH,
    BANK_NAME_LENGTH,
    PHASE_STATUS,
    TERMINAL_STATUSES,
    USER_ID_LENGTH,
    BoxPhase,
    BoxStatus,
)
from paybox.services.duration import PaymentDuration, is_expired

SELLER = "seller"
BUYER = "buyer"
ADMIN = "admin"

MAX_TEXT = 2000
# inputs stored in bounded columns are rejected, not cut
INPUT_LIMITS = {"bank_account": BANK_ACCOUNT_LENGTH, "bank_name": BANK_NAME_LENGTH}


class Action(str, Enum):
    SELECT_DURATION = "select_duration"
    MARK_PAID = "mark_paid"
    ADMIN_CONFIRM = "admin_confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    SELLER_COMPLETE = "seller_complete"
    CONFIRM_RECEIPT = "confirm_receipt"
    REQUEST_REFUND = "request_refund"
    APPROVE_REFUND = "approve_refund"
    REQUEST_PAYOUT = "request_payout"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Actor:
    id: str
    role: str = "user"  # user | admin

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Rule:
    party: str
    sources: frozenset
    target: BoxPhase


def _rule(party: str, sources, target: BoxPhase) -> Rule:
    return Rule(party, frozenset(sources), target)


RULES: dict[Action, tuple[Rule, ...]] = {
    Action.SELECT_DURATION: (_rule(BUYER, {BoxPhase.PENDING}, BoxPhase.DURATION_SELECTED),),
    Action.MARK_PAID: (_rule(BUYER, {BoxPhase.DURATION_SELECTED}, BoxPhase.BUYER_PAID),),
    Action.ADMIN_CONFIRM: (_rule(ADMIN, {BoxPhase.BUYER_PAID}, BoxPhase.ADMIN_CONFIRMED),),
    Action.REJECT: (
        _rule(BUYER, {BoxPhase.PENDING, BoxPhase.DURATION_SELECTED}, BoxPhase.REJECTED),
        _rule(SELLER, {BoxPhase.BUYER_PAID}, BoxPhase.REJECTED),
    ),
    Action.CANCEL: (
        _rule(
            SELLER,
            {BoxPhase.PENDING, BoxPhase.DURATION_SELECTED, BoxPhase.ADMIN_CONFIRMED},
            BoxPhase.CANCELLED,
        ),
    ),
    Action.SELLER_COMPLETE: (_rule(SELLER, {BoxPhase.ADMIN_CONFIRMED}, BoxPhase.SELLER_COMPLETED),),
    Action.CONFIRM_RECEIPT: (_rule(BUYER, {BoxPhase.SELLER_COMPLETED}, BoxPhase.BUYER_CONFIRMED),),
    Action.REQUEST_REFUND: (_rule(BUYER, {BoxPhase.ADMIN_CONFIRMED}, BoxPhase.REFUND_REQUESTED),),
    Action.APPROVE_REFUND: (_rule(ADMIN, {BoxPhase.REFUND_REQUESTED}, BoxPhase.REFUNDED),),
    Action.REQUEST_PAYOUT: (
        _rule(SELLER, {BoxPhase.BUYER_CONFIRMED}, BoxPhase.SELLER_REQUESTED_PAYOUT),
    ),
    Action.COMPLETE: (_rule(ADMIN, {BoxPhase.SELLER_REQUESTED_PAYOUT}, BoxPhase.COMPLETED),),
}


def derive_phase(box) -> BoxPhase:
    """
    Phase of a record. Rows written before the phase column existed only have
    the status string plus timestamps; the sub-phase is inferred from those.
    """
    if getattr(box, "phase", None):
        return BoxPhase(box.phase)
    status = BoxStatus(box.status)
    if status == BoxStatus.PENDING:
        if box.confirmed_at and box.payment_duration_days is not None:
            return BoxPhase.DURATION_SELECTED
        return BoxPhase.PENDING
    if status == BoxStatus.ADMIN_CONFIRMED:
        if box.seller_confirmed_at:
            return BoxPhase.SELLER_REQUESTED_PAYOUT
        if box.buyer_confirmed_at:
            return BoxPhase.BUYER_CONFIRMED
        if box.seller_completed_at:
            return BoxPhase.SELLER_COMPLETED
        return BoxPhase.ADMIN_CONFIRMED
    return BoxPhase(status.value)


def is_terminal(box) -> bool:
    return BoxStatus(box.status) in TERMINAL_STATUSES


def parties_of(box, actor: Actor) -> set[str]:
    parties = set()
    if actor.is_admin:
        parties.add(ADMIN)
    if actor.id == box.sender_id:
        parties.add(SELLER)
    if actor.id == box.receiver_id:
        parties.add(BUYER)
    return parties


def _text(inputs: Mapping[str, Any], name: str) -> str | None:
    value = inputs.get(name)
    if value is None:
        return None
    value = str(value).strip()
    limit = INPUT_LIMITS.get(name)
    if limit is not None and len(value) > limit:
        raise MissingFieldError(f"{name} must be at most {limit} characters", field=name)
    return value[:MAX_TEXT] or None


def _required(inputs: Mapping[str, Any], name: str, label: str) -> str:
    value = _text(inputs, name)
    if not value:
        raise MissingFieldError(f"{label} is required", field=name)
    return value


def _select_duration(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    duration = inputs.get("duration")
    if not isinstance(duration, PaymentDuration):
        duration = PaymentDuration.from_choice(inputs.get("payment_duration"), inputs.get("custom_days"))
    return {
        "payment_duration": duration.kind,
        "payment_duration_days": duration.days,
        "confirmed_at": now,
    }


def _mark_paid(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    if box.payment_duration_days is None:
        raise MissingFieldError("payment duration not chosen", field="payment_duration")
    changes = {}
    bill = _text(inputs, "bill_image_url")
    if bill:
        changes["bill_image_url"] = bill
    return changes


def _admin_confirm(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    # the countdown starts at the moment of confirmation, never before it
    return {"admin_confirmed_at": now, "transaction_start_at": now}


def _reject(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    if rule.party == BUYER:
        return {}
    return {
        "seller_rejection_reason": _required(inputs, "reason", "rejection reason"),
        "seller_rejection_bank_account": _text(inputs, "bank_account"),
        "seller_rejection_bank_name": _text(inputs, "bank_name"),
    }


def _cancel(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {"seller_cancelled_at": now}


def _seller_complete(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {"seller_completed_at": now}


def _confirm_receipt(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    # once the window has lapsed the buyer may confirm without attesting receipt
    expired = is_expired(box.transaction_start_at, box.payment_duration_days, now, box.payment_duration)
    if not inputs.get("received") and not expired:
        raise MissingFieldError(
            "confirm that the goods were received, or wait until the payment window ends",
            field="received",
        )
    return {"buyer_confirmed_at": now}


def _request_refund(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {
        "refund_reason": _required(inputs, "reason", "refund reason"),
        "buyer_bank_account": _required(inputs, "bank_account", "bank account"),
        "buyer_bank_name": _required(inputs, "bank_name", "bank name"),
        "refund_requested_at": now,
    }


def _approve_refund(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {"refund_approved_at": now}


def _request_payout(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {
        "seller_bank_account": _required(inputs, "bank_account", "bank account"),
        "seller_bank_name": _required(inputs, "bank_name", "bank name"),
        "seller_confirmed_at": now,
    }


def _complete(box, rule: Rule, now: datetime, inputs: Mapping[str, Any]) -> dict:
    return {"completed_at": now}


EFFECTS: dict[Action, Callable[..., dict]] = {
    Action.SELECT_DURATION: _select_duration,
    Action.MARK_PAID: _mark_paid,
    Action.ADMIN_CONFIRM: _admin_confirm,
    Action.REJECT: _reject,
    Action.CANCEL: _cancel,
    Action.SELLER_COMPLETE: _seller_complete,
    Action.CONFIRM_RECEIPT: _confirm_receipt,
    Action.REQUEST_REFUND: _request_refund,
    Action.APPROVE_REFUND: _approve_refund,
    Action.REQUEST_PAYOUT: _request_payout,
    Action.COMPLETE: _complete,
}


def resolve_rule(box, action: Action, actor: Actor) -> Rule:
    """Rule the actor may use for ``action`` on ``box``, or the guard error."""
    if is_terminal(box):
        raise InvalidStateError(f"box is {box.status}; no further changes allowed", box_id=box.id)
    parties = parties_of(box, actor)
    candidates = [r for r in RULES[action] if r.party in parties]
    if not candidates:
        raise InvalidActorError(f"{action.value} is not allowed for this user", box_id=box.id)
    phase = derive_phase(box)
    for rule in candidates:
        if phase in rule.sources:
            return rule
    if action == Action.MARK_PAID and phase == BoxPhase.PENDING:
        raise MissingFieldError("payment duration not chosen", field="payment_duration", box_id=box.id)
    raise InvalidStateError(f"{action.value} is not allowed while box is {phase.value}", box_id=box.id)


def transition(
    box,
    action: Action,
    actor: Actor,
    now: datetime,
    inputs: Mapping[str, Any] | None = None,
) -> dict:
    """
    Field changes that ``action`` by ``actor`` makes to ``box`` at ``now``.

    The box is never modified; guard violations raise a ``PayBoxError``.
    The returned dict always carries the new ``status`` and ``phase``.
    """
    rule = resolve_rule(box, action, actor)
    try:
        effect = EFFECTS[action](box, rule, now, inputs or {})
    except MissingFieldError as exc:
        exc.box_id = box.id
        raise
    changes = {"status": PHASE_STATUS[rule.target].value, "phase": rule.target.value}
    changes.update(effect)
    return changes


def available_actions(box, actor: Actor) -> list[Action]:
    """Actions whose actor and phase guards pass; inputs and the clock are not consulted."""
    if is_terminal(box):
        return []
    phase = derive_phase(box)
    parties = parties_of(box, actor)
    allowed = []
    for action, rules in RULES.items():
        if any(r.party in parties and phase in r.sources for r in rules):
            allowed.append(action)
    return allowed


def open_box(sender: Actor, receiver_id: str | None) -> dict:
    """Fields of a new box; the seller opens it towards a buyer."""
    receiver_id = (receiver_id or "").strip()
    if not receiver_id:
        raise MissingFieldError("receiver is required", field="receiver_id")
    if len(receiver_id) > USER_ID_LENGTH:
        raise MissingFieldError(f"receiver_id must be at most {USER_ID_LENGTH} characters", field="receiver_id")
    if receiver_id == sender.id:
        raise InvalidActorError("a box cannot be opened with yourself")
    return {
        "sender_id": sender.id,
        "receiver_id": receiver_id,
        "status": BoxStatus.PENDING.value,
        "phase": BoxPhase.PENDING.value,
    }
