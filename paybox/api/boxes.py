from fastapi import APIRouter, Depends, Query, Request

from paybox.api.deps import get_current_actor, get_ledger
from paybox.core.rate_limit import create_limit, limiter
from paybox.models import PaymentBox
from paybox.schemas import (
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
)
from paybox.services.events import feed
from paybox.services.ledger import PaymentBoxLedger
from paybox.services.state_machine import Actor

router = APIRouter(prefix="/boxes", tags=["boxes"])


def _view(ledger: PaymentBoxLedger, box: PaymentBox, actor: Actor) -> PaymentBoxResponse:
    return PaymentBoxResponse(**ledger.describe(box, actor))


@router.post("", response_model=PaymentBoxResponse, status_code=201)
@limiter.limit(create_limit)
def create_box(
    request: Request,
    body: CreateBoxRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    box = ledger.create_box(actor, body.receiver_id)
    return _view(ledger, box, actor)


@router.get("", response_model=list[PaymentBoxResponse])
def list_boxes(
    status: list[str] | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Boxes where the caller is seller or buyer, newest first."""
    return [_view(ledger, b, actor) for b in ledger.list_for_user(actor, status)]


@router.get("/changes", response_model=ChangesResponse)
def list_changes(
    after: int | None = Query(None, ge=0),
    actor: Actor = Depends(get_current_actor),
):
    """Polling endpoint for the change feed; pass the returned cursor back as ``after``."""
    events, cursor = feed.list_events(after=after, user_id=None if actor.is_admin else actor.id)
    return {"events": events, "cursor": cursor}


@router.get("/{box_id}", response_model=PaymentBoxResponse)
def get_box(
    box_id: str,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    return _view(ledger, ledger.get_box(box_id, actor), actor)


@router.post("/{box_id}/duration", response_model=PaymentBoxResponse)
def select_duration(
    box_id: str,
    body: SelectDurationRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    box = ledger.select_duration(box_id, actor, body.payment_duration, body.custom_days)
    return _view(ledger, box, actor)


@router.post("/{box_id}/paid", response_model=PaymentBoxResponse)
def mark_paid(
    box_id: str,
    body: MarkPaidRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    body = body or MarkPaidRequest()
    box = ledger.mark_paid(box_id, actor, body.bill_image_url)
    return _view(ledger, box, actor)


@router.post("/{box_id}/reject", response_model=PaymentBoxResponse)
def reject_box(
    box_id: str,
    body: RejectRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    body = body or RejectRequest()
    box = ledger.reject(box_id, actor, body.reason, body.bank_account, body.bank_name)
    return _view(ledger, box, actor)


@router.post("/{box_id}/cancel", response_model=PaymentBoxResponse)
def cancel_box(
    box_id: str,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    return _view(ledger, ledger.cancel(box_id, actor), actor)


@router.post("/{box_id}/handoff", response_model=PaymentBoxResponse)
def seller_complete(
    box_id: str,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Seller reports the goods/service as handed over."""
    return _view(ledger, ledger.seller_complete(box_id, actor), actor)


@router.post("/{box_id}/confirm-receipt", response_model=PaymentBoxResponse)
def confirm_receipt(
    box_id: str,
    body: ConfirmReceiptRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    body = body or ConfirmReceiptRequest()
    return _view(ledger, ledger.confirm_receipt(box_id, actor, body.received), actor)


@router.post("/{box_id}/refund", response_model=PaymentBoxResponse)
def request_refund(
    box_id: str,
    body: RefundRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    box = ledger.request_refund(box_id, actor, body.reason, body.bank_account, body.bank_name)
    return _view(ledger, box, actor)


@router.post("/{box_id}/payout", response_model=PaymentBoxResponse)
def request_payout(
    box_id: str,
    body: PayoutRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    box = ledger.request_payout(box_id, actor, body.bank_account, body.bank_name)
    return _view(ledger, box, actor)


@router.post("/{box_id}/reply", response_model=PaymentBoxResponse)
def buyer_reply(
    box_id: str,
    body: MessageRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Buyer answers the arbitrator's message."""
    return _view(ledger, ledger.post_buyer_reply(box_id, actor, body.message), actor)
