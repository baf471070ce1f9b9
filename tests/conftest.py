from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from perfume_admin.db import Base, make_engine, make_session_factory
from perfume_admin.exceptions import PaymentNotFound
from perfume_admin.main import create_app
from perfume_admin.models import Order, OrderItem, Product
from perfume_admin.services.gateway import GatewayPayment


class FakeGateway:
    """Подмена Mercado Pago: платежи по id и список вызовов."""

    def __init__(self):
        self.payments = {}
        self.calls = []
        self.error = None

    def add(self, **payload):
        payload.setdefault("status", "approved")
        payload.setdefault("transaction_amount", 150.00)
        self.payments[str(payload["id"])] = payload
        return payload

    def get_payment(self, payment_id):
        self.calls.append(payment_id)
        if self.error:
            raise self.error
        if payment_id not in self.payments:
            raise PaymentNotFound(payment_id)
        return GatewayPayment.model_validate(self.payments[payment_id])


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    app = create_app(session_factory=session_factory, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_order(db):
    def _make(status="paid", payment_id="MP-1", total="100.00", items=(), **extra):
        order = Order(
            status=status,
            total_amount=Decimal(total),
            payment_id=payment_id,
            customer_email=extra.pop("customer_email", "cliente@example.com"),
            customer_details=extra.pop("customer_details", {"name": "Ana Pérez", "phone": "+598 99 123 456"}),
            **extra,
        )
        for product, qty, price in items:
            order.items.append(OrderItem(
                product_id=product.id if product else None,
                title=product.name if product else None,
                quantity=qty,
                unit_price=Decimal(price),
            ))
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make


@pytest.fixture
def product(db):
    p = Product(name="Sauvage EDT 100ml", price=Decimal("75.00"), stock=5, brand="Dior")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def order_count(session_factory):
    def _count():
        s = session_factory()
        try:
            return s.query(Order).count()
        finally:
            s.close()
    return _count
