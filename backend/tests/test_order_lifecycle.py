import pytest
from sqlalchemy import event, text

from backend.app.db.models.core_types import MovementType, OrderStatus
from backend.app.db.models.models_v1 import ResellerOrder, StockMovement
from backend.services import orders
from backend.services.errors import AmbiguousItem, Conflict, InsufficientStock

from factories import make_product, make_reseller_order, qty


def test_completing_twice_deducts_once(db_session, locations):
    """
    GIVEN FGC-006 with 10 on hand and an order for 1 unit
    WHEN the order is completed twice
    THEN stock drops by 1, not 2
    """
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 1)])
    db_session.commit()

    # ---------- ACT ----------
    first = orders.complete_order(db_session, order)
    db_session.commit()
    second = orders.complete_order(db_session, order)
    db_session.commit()

    # ---------- ASSERT ----------
    assert first.applied is True
    assert second.applied is False
    assert qty(db_session, p, ftf) == 9
    assert order.status == OrderStatus.completed
    assert order.is_deducted is True
    assert order.completed_at is not None

    moves = db_session.query(StockMovement).filter_by(product_id=p.id).all()
    assert [(m.movement_type, m.quantity_delta) for m in moves] == [(MovementType.order_deduction, -1)]


def test_stale_session_cannot_deduct_again(session_factory, db_session, locations):
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 4)])
    db_session.commit()
    order_id = order.id

    a = session_factory()
    b = session_factory()
    try:
        order_a = a.get(ResellerOrder, order_id)
        order_b = b.get(ResellerOrder, order_id)
        assert order_b.is_deducted is False

        # ---------- ACT ----------
        res_a = orders.complete_order(a, order_a)
        a.commit()
        # b still holds the pre-completion snapshot in memory
        res_b = orders.complete_order(b, order_b)
        b.commit()
    finally:
        a.close()
        b.close()

    # ---------- ASSERT ----------
    assert res_a.applied is True
    assert res_b.applied is False
    assert qty(db_session, p, ftf) == 6


def test_line_falls_back_to_description_when_sku_renamed(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-003", "Milky Chocolate Cup", {ftf: 20})
    order = make_reseller_order(db_session, ftf, [("OLD-CUP-3", "milky chocolate cup", 10)])
    db_session.commit()

    result = orders.complete_order(db_session, order)
    db_session.commit()

    assert result.applied is True
    assert result.unmatched == []
    assert qty(db_session, p, ftf) == 10


def test_ambiguous_description_rolls_back_everything(db_session, locations):
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    ok = make_product(db_session, "FGC-001", "Cafe Mocha Cup", {ftf: 50})
    make_product(db_session, "FGC-002", "Vanilla Cup", {ftf: 50})
    make_product(db_session, "FGC-902", "Vanilla Cup", {ftf: 50})
    order = make_reseller_order(
        db_session,
        ftf,
        [("FGC-001", "Cafe Mocha Cup", 10), ("GONE-1", "Vanilla Cup", 10)],
    )
    db_session.commit()
    order_id = order.id

    # ---------- ACT ----------
    with pytest.raises(AmbiguousItem):
        orders.complete_order(db_session, order)
    db_session.rollback()

    # ---------- ASSERT ----------
    order = db_session.get(ResellerOrder, order_id)
    assert order.is_deducted is False
    assert order.status == OrderStatus.unread
    assert qty(db_session, ok, ftf) == 50


def test_unmatched_lines_are_skipped_and_reported(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGP-001", "Cafe Mocha Pint", {ftf: 5})
    order = make_reseller_order(
        db_session,
        ftf,
        [("FGP-001", "Cafe Mocha Pint", 2), ("XMAS-01", "Holiday Log Cake", 1)],
    )
    db_session.commit()

    result = orders.complete_order(db_session, order)
    db_session.commit()

    assert result.applied is True
    assert result.unmatched == ["XMAS-01"]
    assert qty(db_session, p, ftf) == 3


def test_insufficient_stock_applies_nothing(db_session, locations):
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    a = make_product(db_session, "FGC-001", "Cafe Mocha Cup", {ftf: 100})
    b = make_product(db_session, "FGT-001", "Cafe Mocha Tray", {ftf: 1})
    order = make_reseller_order(
        db_session,
        ftf,
        [("FGC-001", "Cafe Mocha Cup", 10), ("FGT-001", "Cafe Mocha Tray", 5)],
    )
    db_session.commit()
    order_id = order.id

    # ---------- ACT ----------
    with pytest.raises(InsufficientStock):
        orders.complete_order(db_session, order)
    db_session.rollback()

    # ---------- ASSERT ----------
    assert qty(db_session, a, ftf) == 100
    assert qty(db_session, b, ftf) == 1
    assert db_session.get(ResellerOrder, order_id).is_deducted is False
    assert db_session.query(StockMovement).count() == 0


def test_cancel_completed_order_restocks_once(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 3)])
    db_session.commit()

    orders.complete_order(db_session, order)
    db_session.commit()
    assert qty(db_session, p, ftf) == 7

    assert orders.cancel_order(db_session, order) is True
    db_session.commit()
    assert orders.cancel_order(db_session, order) is False
    db_session.commit()

    assert qty(db_session, p, ftf) == 10
    assert order.status == OrderStatus.cancelled
    assert order.is_deducted is False


def test_cancel_picks_up_a_completion_that_lands_midway(db_session, locations):
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 3)])
    db_session.commit()

    updates = []

    @event.listens_for(db_session, "do_orm_execute")
    def _complete_elsewhere(state):
        if not state.is_update:
            return
        updates.append(state.statement)
        if len(updates) == 2:
            # another request commits its completion between the two UPDATEs
            state.session.connection().execute(
                text("UPDATE reseller_orders SET status = 'completed', is_deducted = 1 WHERE id = :id"),
                {"id": order.id},
            )

    # ---------- ACT ----------
    restored = orders.cancel_order(db_session, order)
    db_session.commit()

    # ---------- ASSERT ----------
    assert restored is True
    assert len(updates) == 3
    fresh = db_session.get(ResellerOrder, order.id)
    assert fresh.status == OrderStatus.cancelled
    assert fresh.is_deducted is False


def test_cancelled_is_terminal(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 3)])
    db_session.commit()

    orders.cancel_order(db_session, order)
    db_session.commit()

    with pytest.raises(Conflict):
        orders.complete_order(db_session, order)
    with pytest.raises(Conflict):
        orders.change_status(db_session, order, OrderStatus.read)


def test_status_transitions(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 1)])
    db_session.commit()

    orders.mark_read(db_session, order)
    assert order.status == OrderStatus.read
    # same status again is a no-op
    assert orders.change_status(db_session, order, OrderStatus.read).applied is False

    orders.change_status(db_session, order, OrderStatus.completed)
    db_session.commit()

    with pytest.raises(Conflict):
        orders.change_status(db_session, order, OrderStatus.unread)


def test_completed_order_cannot_be_edited(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 1)])
    db_session.commit()

    orders.complete_order(db_session, order)
    db_session.commit()

    with pytest.raises(Conflict):
        orders.update_order_lines(db_session, order, {"FGC-006": 2})


def test_delete_deducted_order_restocks_first(db_session, locations):
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 4)])
    db_session.commit()
    orders.complete_order(db_session, order)
    db_session.commit()

    orders.delete_order(db_session, order)
    db_session.commit()

    assert db_session.query(ResellerOrder).count() == 0
    assert qty(db_session, p, ftf) == 10


def test_api_status_patch_is_idempotent(client, db_session, locations):
    ftf = locations["FTF Manufacturing"]
    p = make_product(db_session, "FGC-006", "Ube Cup", {ftf: 10})
    order = make_reseller_order(db_session, ftf, [("FGC-006", "Ube Cup", 1)])
    db_session.commit()

    r1 = client.patch(f"/v1/reseller-orders/{order.id}/status", json={"status": "Completed"})
    r2 = client.patch(f"/v1/reseller-orders/{order.id}/status", json={"status": "Completed"})

    assert r1.status_code == 200, r1.text
    assert r1.json()["applied"] is True
    assert r2.json() == {"id": order.id, "status": "Completed", "applied": False, "unmatched": []}
    assert qty(db_session, p, ftf) == 9

    r3 = client.patch(f"/v1/reseller-orders/{order.id}/status", json={"status": "Unread"})
    assert r3.status_code == 409
