"""Racing writers: the conditional update lets exactly one of them win."""
import pytest
from sqlmodel import Session

from paybox.core.errors import ConflictError, InvalidStateError, StaleStateError
from paybox.models import PaymentBox
from paybox.services.ledger import PaymentBoxLedger


@pytest.fixture
def second_ledger(db_engine, clock, events):
    with Session(db_engine) as session:
        yield PaymentBoxLedger(session, clock=clock, events=events)


def _freeze_read(ledger, box):
    """Make ``ledger`` act on the snapshot it read before the other writer committed."""
    snapshot = PaymentBox(**box.model_dump())
    ledger._load = lambda box_id: snapshot


def _confirmed_box(ledger, seller, buyer, admin):
    box = ledger.create_box(seller, buyer.id)
    ledger.select_duration(box.id, buyer, "7days")
    ledger.mark_paid(box.id, buyer)
    return ledger.admin_confirm(box.id, admin)


def test_refund_request_loses_against_handoff(ledger, second_ledger, seller, buyer, admin):
    box = _confirmed_box(ledger, seller, buyer, admin)
    _freeze_read(second_ledger, box)

    ledger.seller_complete(box.id, seller)
    with pytest.raises(StaleStateError) as exc:
        second_ledger.request_refund(box.id, buyer, "never arrived", "1", "ACB")
    assert exc.value.status_code == 409

    stored = ledger.store.get(box.id)
    assert stored.phase == "seller_completed"
    assert stored.refund_requested_at is None
    actions = [t.action for t in ledger.history(box.id, admin)]
    assert actions.count("request_refund") == 0
    assert actions[-1] == "seller_complete"


def test_handoff_loses_against_refund_request(ledger, second_ledger, seller, buyer, admin):
    box = _confirmed_box(ledger, seller, buyer, admin)
    _freeze_read(second_ledger, box)

    ledger.request_refund(box.id, buyer, "wrong item", "1", "ACB")
    with pytest.raises(ConflictError):
        second_ledger.seller_complete(box.id, seller)

    stored = ledger.store.get(box.id)
    assert stored.status == "refund_requested"
    assert stored.seller_completed_at is None


def test_cancel_and_refund_race(ledger, second_ledger, events, seller, buyer, admin):
    box = _confirmed_box(ledger, seller, buyer, admin)
    _freeze_read(second_ledger, box)
    before, _ = events.list_events()

    ledger.cancel(box.id, seller)
    with pytest.raises(StaleStateError):
        second_ledger.request_refund(box.id, buyer, "r", "1", "b")

    after, _ = events.list_events()
    assert [e["type"] for e in after[len(before):]] == ["cancel"]
    assert ledger.store.get(box.id).status == "cancelled"


def test_fresh_read_sees_terminal_state(ledger, second_ledger, seller, buyer, admin):
    box = _confirmed_box(ledger, seller, buyer, admin)
    ledger.cancel(box.id, seller)
    with pytest.raises(InvalidStateError):
        second_ledger.request_refund(box.id, buyer, "r", "1", "b")


def test_buyer_reply_loses_against_cancel(ledger, second_ledger, seller, buyer):
    box = ledger.create_box(seller, buyer.id)
    _freeze_read(second_ledger, box)

    ledger.cancel(box.id, seller)
    with pytest.raises(StaleStateError):
        second_ledger.post_buyer_reply(box.id, buyer, "late reply")

    stored = ledger.store.get(box.id)
    assert stored.status == "cancelled"
    assert stored.buyer_reply is None
    assert stored.buyer_reply_at is None
