import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from perfume_admin.models import OrderStatusLog


def test_list_orders_newest_first_with_items(client, make_order, product):
    older = make_order(payment_id="MP-1", items=[(product, 1, "75.00")], total="75.00")
    newer = make_order(payment_id="MP-2", status="shipped")

    response = client.get("/admin/orders")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [o["id"] for o in data] == [newer.id, older.id]
    item = data[1]["order_items"][0]
    assert item["product_name"] == "Sauvage EDT 100ml"
    assert item["subtotal"] == 75.0


def test_list_orders_filtered_by_status(client, make_order):
    make_order(payment_id="MP-1", status="paid")
    shipped = make_order(payment_id="MP-2", status="shipped")

    response = client.get("/admin/orders", params={"status": "shipped"})

    assert [o["id"] for o in response.json()["data"]] == [shipped.id]


def test_list_orders_rejects_unknown_status(client):
    assert client.get("/admin/orders", params={"status": "lost"}).status_code == 400


def test_order_detail(client, make_order):
    order = make_order(status="rejected")

    body = client.get(f"/admin/orders/{order.id}").json()

    assert body["status_label"] == "Pago Fallido"
    assert body["is_failed"] is True
    assert body["outreach_url"].startswith("https://wa.me/59899123456?text=Hola%20Ana")


def test_order_detail_missing(client):
    assert client.get("/admin/orders/999").status_code == 404


def test_status_update_persists_and_is_logged(client, make_order, db):
    order = make_order(status="paid")

    response = client.post(f"/admin/orders/{order.id}/status",
                           data={"new_status": "shipped", "note": "DAC 123"})

    assert response.status_code == 200
    assert response.json()["order"]["status"] == "shipped"
    db.expire_all()
    assert order.status == "shipped"
    [entry] = db.query(OrderStatusLog).all()
    assert (entry.old_status, entry.new_status, entry.note) == ("paid", "shipped", "DAC 123")
    history = client.get(f"/admin/orders/{order.id}").json()["status_history"]
    assert [(h["old_status"], h["new_status"], h["changed_by"]) for h in history] == [("paid", "shipped", "admin")]


def test_status_can_move_backwards(client, make_order):
    order = make_order(status="delivered")

    response = client.post(f"/admin/orders/{order.id}/status", data={"new_status": "pending"})

    assert response.status_code == 200


def test_cancelled_order_is_locked(client, make_order, db):
    order = make_order(status="cancelled")

    response = client.post(f"/admin/orders/{order.id}/status", data={"new_status": "paid"})

    assert response.status_code == 409
    db.expire_all()
    assert order.status == "cancelled"


@pytest.mark.parametrize("order_id, status, expected", [
    (None, "bogus", 400),
    (999, "paid", 404),
])
def test_status_update_errors(client, make_order, order_id, status, expected):
    if order_id is None:
        order_id = make_order().id

    response = client.post(f"/admin/orders/{order_id}/status", data={"new_status": status})

    assert response.status_code == expected


def test_notes_are_independent_of_status(client, make_order, db):
    order = make_order(status="cancelled")

    response = client.post(f"/admin/orders/{order.id}/notes", data={"notes": "  llamar mañana "})

    assert response.status_code == 200
    db.expire_all()
    assert order.internal_notes == "llamar mañana"
    assert order.status == "cancelled"


def test_blank_notes_are_cleared(client, make_order, db):
    order = make_order(internal_notes="algo")

    client.post(f"/admin/orders/{order.id}/notes", data={"notes": ""})

    db.expire_all()
    assert order.internal_notes is None


def test_deleted_product_shows_placeholder(client, make_order, product):
    order = make_order(items=[(product, 1, "75.00")], total="75.00")

    assert client.delete(f"/admin/catalog/products/{product.id}").status_code == 200

    item = client.get(f"/admin/orders/{order.id}").json()["order_items"][0]
    assert item["product_id"] is None
    assert item["product_name"] == "Producto eliminado"
    assert item["unit_price"] == 75.0


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


@pytest.fixture
def break_commit(monkeypatch):
    def _break():
        def commit(self):
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(Session, "commit", commit)
        return monkeypatch
    return _break


def test_status_update_storage_failure_is_retryable(client, make_order, db, break_commit):
    order = make_order(status="paid")
    changed_at = order.status_changed_at
    patch = break_commit()

    response = client.post(f"/admin/orders/{order.id}/status", data={"new_status": "shipped"})

    assert response.status_code == 503
    patch.undo()
    db.expire_all()
    assert order.status == "paid"
    assert order.status_changed_at == changed_at
    assert db.query(OrderStatusLog).count() == 0


def test_notes_storage_failure_is_retryable(client, make_order, db, break_commit):
    order = make_order(internal_notes="original")
    patch = break_commit()

    response = client.post(f"/admin/orders/{order.id}/notes", data={"notes": "nueva"})

    assert response.status_code == 503
    assert response.json()["detail"] == "No se pudo guardar el cambio, intentá de nuevo"
    patch.undo()
    db.expire_all()
    assert order.internal_notes == "original"
