from datetime import datetime
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from perfume_admin.exceptions import InvalidOrderStatus, OrderNotFound, OrderStatusLocked
from perfume_admin.models.order import Order, OrderItem
from perfume_admin.models.order_status_log import OrderStatusLog
from perfume_admin.utils.enums import (
    FAILED_STATUSES,
    LOCKED_STATUSES,
    STATUS_LABELS_ES,
    OrderStatus,
)
from perfume_admin.utils.outreach import whatsapp_link

log = logging.getLogger(__name__)

# допуск на округление при сверке суммы заказа
TOTAL_TOLERANCE = Decimal("0.01")


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidOrderStatus(f"Unknown order status: {value!r}") from None


def can_transition(current, new) -> bool:
    """Из любого статуса в любой, кроме выхода из заблокированного."""
    current, new = parse_status(current), parse_status(new)
    if current == new:
        return True
    return current not in LOCKED_STATUSES


def is_failed(status) -> bool:
    return parse_status(status) in FAILED_STATUSES


# ---------- ЧТЕНИЕ ----------
def _orders_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product)
    )


def list_orders(db: Session, status: Optional[str] = None) -> List[Order]:
    q = _orders_query(db).order_by(Order.created_at.desc(), Order.id.desc())
    if status and status != "all":
        q = q.filter(Order.status == parse_status(status).value)
    return q.all()


def get_order(db: Session, order_id: int) -> Order:
    order = _orders_query(db).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def get_order_by_payment(db: Session, payment_id: str) -> Optional[Order]:
    return db.query(Order).filter(Order.payment_id == str(payment_id)).first()


# ---------- ИЗМЕНЕНИЯ АДМИНОМ ----------
def update_order_status(db: Session, order_id: int, new_status, note: Optional[str] = None,
                        user: str = "admin") -> Order:
    new = parse_status(new_status)
    order = get_order(db, order_id)

    if not can_transition(order.status, new):
        raise OrderStatusLocked(f"Order {order_id} is {order.status} and cannot change status")

    old = order.status
    if old == new.value:
        return order

    order.status = new.value
    order.status_changed_at = datetime.utcnow()
    db.add(OrderStatusLog(order_id=order.id, old_status=old, new_status=new.value,
                          changed_by=user, note=(note or None)))
    db.commit()
    db.refresh(order)

    log.info(f"[Order: {order_id}] Статус {old} -> {new.value} ({user}).")
    return order


def update_order_notes(db: Session, order_id: int, notes: Optional[str]) -> Order:
    order = get_order(db, order_id)
    order.internal_notes = (notes or "").strip() or None
    db.commit()
    db.refresh(order)
    return order


# ---------- СОЗДАНИЕ (только из вебхука) ----------
def items_total(lines) -> Decimal:
    return sum((Decimal(str(l["unit_price"])) * int(l["quantity"]) for l in lines), Decimal("0"))


def total_mismatch_note(expected: Decimal, total: Decimal) -> str:
    return (f"ATENCIÓN: los productos suman {expected:.2f} pero el pago "
            f"verificado es {total:.2f}. Revisar el pedido.")


def build_order(total_amount, status: OrderStatus, payment_id: str,
                customer_email: Optional[str], customer_details: dict,
                lines: list) -> Order:
    """
    Собирает новый заказ со строками; добавляет и коммитит вызывающий.

    ``lines`` — словари с product_id, title, quantity, unit_price. Итог всегда
    берётся из проверенной суммы платежа. Если строки не сходятся с ней,
    заказ всё равно создаётся, а расхождение пишется в internal_notes.
    """
    total = Decimal(str(total_amount)).quantize(Decimal("0.01"))
    notes = None
    if lines:
        expected = items_total(lines)
        if abs(expected - total) > TOTAL_TOLERANCE:
            notes = total_mismatch_note(expected, total)
            log.critical(f"[Payment: {payment_id}] Строки дают {expected}, платёж {total}. "
                         f"Заказ сохранён с пометкой для админа.")

    order = Order(
        status=status.value,
        total_amount=total,
        payment_id=str(payment_id),
        customer_email=customer_email,
        customer_details=customer_details or {},
        internal_notes=notes,
    )
    for l in lines:
        order.items.append(OrderItem(
            product_id=l.get("product_id"),
            title=l.get("title"),
            quantity=int(l["quantity"]),
            unit_price=Decimal(str(l["unit_price"])),
        ))
    return order


# ---------- JSON ----------
def serialize_item(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_name": item.display_name,
        "title": item.title,
        "image_url": item.product.image_url if item.product else None,
        "quantity": item.quantity,
        "unit_price": float(item.unit_price),
        "subtotal": float(item.subtotal),
    }


def serialize_order(order: Order) -> dict:
    failed = is_failed(order.status)
    return {
        "id": order.id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "status": order.status,
        "status_label": STATUS_LABELS_ES.get(order.status, order.status),
        "status_locked": parse_status(order.status) in LOCKED_STATUSES,
        "total_amount": float(order.total_amount or 0),
        "customer_email": order.customer_email,
        "customer_details": order.customer_details or {},
        "internal_notes": order.internal_notes,
        "payment_id": order.payment_id,
        "is_failed": failed,
        "outreach_url": whatsapp_link(order.customer_details) if failed else None,
        "order_items": [serialize_item(i) for i in order.items],
    }


def serialize_history(order: Order) -> list:
    return [
        {
            "old_status": h.old_status,
            "new_status": h.new_status,
            "changed_by": h.changed_by,
            "note": h.note,
            "created_at": h.created_at.isoformat() if h.created_at else None,
        }
        for h in order.status_history
    ]
