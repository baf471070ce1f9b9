from decimal import Decimal
import logging

from perfume_admin.models import Order
from perfume_admin.services import reconciliation
from perfume_admin.services.gateway import GatewayPayment
from perfume_admin.services.reconciliation import Outcome, customer_snapshot, reconcile_payment


def test_items_are_created_with_the_order_and_add_up(db, gateway, product):
    gateway.add(id="MP-50", transaction_amount=175.5, additional_info={"items": [
        {"id": str(product.id), "title": product.name, "quantity": "2", "unit_price": "75.00"},
        {"id": "sku-travel", "title": "Decant 10ml", "quantity": 1, "unit_price": 25.5},
    ]})

    result = reconcile_payment(db, gateway, "MP-50")

    assert result.outcome == Outcome.CREATED
    order = result.order
    assert len(order.items) == 2
    assert sum(i.subtotal for i in order.items) == order.total_amount == Decimal("175.50")
    linked, unlinked = sorted(order.items, key=lambda i: i.product_id is None)
    assert linked.product_id == product.id
    assert linked.display_name == "Sauvage EDT 100ml"
    assert unlinked.product_id is None
    assert unlinked.title == "Decant 10ml"


def test_item_prices_are_snapshots(db, gateway, product):
    gateway.add(id="MP-51", transaction_amount=75, additional_info={"items": [
        {"id": str(product.id), "quantity": 1, "unit_price": 75},
    ]})
    order = reconcile_payment(db, gateway, "MP-51").order

    product.price = Decimal("120.00")
    db.commit()
    db.expire_all()

    assert order.items[0].unit_price == Decimal("75.00")
    assert order.total_amount == Decimal("75.00")


def test_total_mismatch_keeps_order_with_note_for_admin(db, gateway, caplog):
    gateway.add(id="MP-52", transaction_amount=100, additional_info={"items": [
        {"quantity": 3, "unit_price": 30},
    ]})

    with caplog.at_level(logging.CRITICAL, logger="perfume_admin.services.orders"):
        result = reconcile_payment(db, gateway, "MP-52")

    assert result.outcome == Outcome.CREATED
    order = db.query(Order).one()
    assert order.total_amount == Decimal("100.00")
    assert [(i.quantity, i.unit_price) for i in order.items] == [(3, Decimal("30.00"))]
    assert "90.00" in order.internal_notes
    assert "100.00" in order.internal_notes
    assert any(r.levelno == logging.CRITICAL and "MP-52" in r.getMessage() for r in caplog.records)


def test_matching_total_leaves_notes_empty(db, gateway):
    gateway.add(id="MP-56", transaction_amount=90, additional_info={"items": [
        {"quantity": 3, "unit_price": 30},
    ]})

    assert reconcile_payment(db, gateway, "MP-56").order.internal_notes is None


def test_rounding_within_a_cent_is_accepted(db, gateway):
    gateway.add(id="MP-53", transaction_amount=33.34, additional_info={"items": [
        {"quantity": 3, "unit_price": "11.11"},
    ]})

    assert reconcile_payment(db, gateway, "MP-53").outcome == Outcome.CREATED


def test_duplicate_returns_existing_order(db, gateway):
    gateway.add(id="MP-54", transaction_amount=10)

    first = reconcile_payment(db, gateway, "MP-54")
    second = reconcile_payment(db, gateway, "MP-54")

    assert second.outcome == Outcome.DUPLICATE
    assert second.order.id == first.order.id
    assert db.query(Order).count() == 1


def test_concurrent_insert_is_resolved_as_duplicate(db, gateway, make_order, monkeypatch):
    gateway.add(id="MP-55", transaction_amount=10)
    winner = make_order(payment_id="MP-55", total="10.00")

    # проверка на существование промахивается, ловит уникальный индекс
    calls = []

    def racing_lookup(session, payment_id):
        calls.append(payment_id)
        if len(calls) == 1:
            return None
        return session.query(Order).filter(Order.payment_id == payment_id).first()

    monkeypatch.setattr(reconciliation, "get_order_by_payment", racing_lookup)

    result = reconcile_payment(db, gateway, "MP-55")

    assert result.outcome == Outcome.DUPLICATE
    assert result.order.id == winner.id
    assert db.query(Order).count() == 1


def test_customer_snapshot_merges_payer_shipping_and_metadata():
    payment = GatewayPayment.model_validate({
        "id": 1,
        "status": "approved",
        "transaction_amount": 10,
        "payment_method_id": "visa",
        "payer": {
            "email": "ana@example.com",
            "first_name": "Ana",
            "last_name": "Pérez",
            "phone": {"area_code": "598", "number": 99123456},
            "identification": {"type": "CI", "number": 12345678},
        },
        "additional_info": {"shipments": {"receiver_address": {
            "street_name": "Av. Italia", "street_number": "1234",
            "city_name": "Montevideo", "state_name": "Montevideo",
        }}},
        "metadata": {"customer": {"shipping_type": "sucursal", "dac_ues": "DAC Centro", "unknown": "x"}},
    })

    details = customer_snapshot(payment)

    assert details == {
        "name": "Ana Pérez",
        "email": "ana@example.com",
        "phone": "59899123456",
        "cedula": "12345678",
        "address": "Av. Italia 1234",
        "city": "Montevideo",
        "department": "Montevideo",
        "shipping_type": "sucursal",
        "dac_ues": "DAC Centro",
        "payment_method": "visa",
    }
