"""Arbitration: confirm payments, approve refunds, finalize payouts, notes, deletion."""
from fastapi import APIRouter, Depends, Query, Response

from paybox.admin.deps import get_admin_actor
from paybox.api.deps import get_ledger
from paybox.models import PaymentBox
from paybox.schemas import AdminBoxDetail, MessageRequest, PaymentBoxResponse, TransitionResponse
from paybox.services.ledger import PaymentBoxLedger
from paybox.services.state_machine import Actor

router = APIRouter()


def _view(ledger: PaymentBoxLedger, box: PaymentBox, actor: Actor) -> PaymentBoxResponse:
    return PaymentBoxResponse(**ledger.describe(box, actor))


@router.get("", response_model=list[PaymentBoxResponse])
@router.get("/", response_model=list[PaymentBoxResponse], include_in_schema=False)
def boxes_list(
    status: list[str] | None = Query(None),
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Without ``status``: boxes waiting on an admin decision (paid, refund requested, payout requested)."""
    return [_view(ledger, b, actor) for b in ledger.list_for_admin(actor, status)]


@router.get("/{box_id}", response_model=AdminBoxDetail)
def box_detail(
    box_id: str,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    box = ledger.get_box(box_id, actor)
    history = [TransitionResponse.model_validate(t, from_attributes=True) for t in ledger.history(box_id, actor)]
    return {"box": _view(ledger, box, actor), "history": history}


@router.post("/{box_id}/confirm", response_model=PaymentBoxResponse)
def box_confirm(
    box_id: str,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Buyer's payment arrived; starts the duration window."""
    return _view(ledger, ledger.admin_confirm(box_id, actor), actor)


@router.post("/{box_id}/refund/approve", response_model=PaymentBoxResponse)
def box_approve_refund(
    box_id: str,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    return _view(ledger, ledger.approve_refund(box_id, actor), actor)


@router.post("/{box_id}/complete", response_model=PaymentBoxResponse)
def box_complete(
    box_id: str,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    """Seller has been paid out."""
    return _view(ledger, ledger.complete(box_id, actor), actor)


@router.post("/{box_id}/message", response_model=PaymentBoxResponse)
def box_message_buyer(
    box_id: str,
    body: MessageRequest,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    return _view(ledger, ledger.post_admin_message(box_id, actor, body.message), actor)


@router.post("/{box_id}/seller-message", response_model=PaymentBoxResponse)
def box_message_seller(
    box_id: str,
    body: MessageRequest,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    return _view(ledger, ledger.post_admin_seller_message(box_id, actor, body.message), actor)


@router.delete("/{box_id}", status_code=204)
def box_delete(
    box_id: str,
    actor: Actor = Depends(get_admin_actor),
    ledger: PaymentBoxLedger = Depends(get_ledger),
):
    ledger.delete_box(box_id, actor)
    return Response(status_code=204)
