"""
Сверка платежей: непроверенное уведомление от MP превращается максимум в
одну строку заказа.

Порядок:
1. Спрашиваем у MP настоящее состояние платежа (``GatewayError`` и
   ``PaymentNotFound`` уходят вызывающему как есть).
2. Проверенный статус -> статус заказа или "ничего не пишем".
3. Платёж, у которого уже есть заказ, пропускаем (``payment_id`` уникален).
4. Заказ и строки пишутся одним коммитом. Итог заказа — сумма платежа;
   если строки с ней не сходятся, заказ всё равно сохраняется с пометкой
   в ``internal_notes``.

Списание остатков по оплаченным заказам здесь пока не делается.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from perfume_admin.exceptions import PersistenceError
from perfume_admin.models.catalog import Product
from perfume_admin.models.order import Order
from perfume_admin.services.gateway import GatewayPayment
from perfume_admin.services.orders import build_order, get_order_by_payment
from perfume_admin.utils.enums import OrderStatus, PaymentStatus

log = logging.getLogger(__name__)

# проверенный статус платежа -> статус заказа; остальные статусы не записываем
PAYMENT_TO_ORDER_STATUS = {
    PaymentStatus.APPROVED.value: OrderStatus.PAID,
    PaymentStatus.REJECTED.value: OrderStatus.REJECTED,
    PaymentStatus.CANCELLED.value: OrderStatus.REJECTED,
}

# поля, которые витрина кладёт в metadata.customer при создании preference
CUSTOMER_DETAIL_FIELDS = (
    "name", "email", "phone", "cedula", "address", "city",
    "department", "dac_ues", "shipping_type",
)


class Outcome(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


@dataclass
class ReconciliationResult:
    outcome: Outcome
    order: Optional[Order] = None
    payment_status: Optional[str] = None


def customer_snapshot(payment: GatewayPayment) -> dict:
    """Собирает JSON ``customer_details`` из проверенного платежа."""
    payer = payment.payer
    details = {}

    name = " ".join(p for p in (payer.first_name, payer.last_name) if p)
    if name:
        details["name"] = name
    if payer.email:
        details["email"] = payer.email
    if payer.phone and payer.phone.as_text():
        details["phone"] = payer.phone.as_text()
    if payer.identification and payer.identification.number:
        details["cedula"] = payer.identification.number

    shipments = payment.additional_info.shipments
    address = shipments.receiver_address if shipments else None
    if address:
        street = " ".join(p for p in (address.street_name, address.street_number) if p)
        if street:
            details["address"] = street
        if address.city_name:
            details["city"] = address.city_name
        if address.state_name:
            details["department"] = address.state_name

    meta = payment.metadata.get("customer")
    if isinstance(meta, dict):
        for key in CUSTOMER_DETAIL_FIELDS:
            if meta.get(key) not in (None, ""):
                details[key] = str(meta[key])

    if payment.payment_method_id:
        details["payment_method"] = payment.payment_method_id
    return details


def order_lines(db: Session, payment: GatewayPayment) -> list:
    items = payment.additional_info.items
    ids = {int(i.id) for i in items if i.id and i.id.isdigit()}
    known = set()
    if ids:
        known = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(ids)).all()}

    lines = []
    for item in items:
        product_id = int(item.id) if item.id and item.id.isdigit() else None
        lines.append({
            "product_id": product_id if product_id in known else None,
            "title": item.title,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        })
    return lines


def reconcile_payment(db: Session, gateway, payment_id: str) -> ReconciliationResult:
    """
    Проверяет ``payment_id`` в MP и записывает заказ, который из него следует.

    Args:
        db (Session): сессия запроса.
        gateway: объект с ``get_payment(payment_id) -> GatewayPayment``.
        payment_id (str): id из уведомления.

    Returns:
        ReconciliationResult: ``created`` с новым заказом, ``duplicate`` с уже
        существующим или ``ignored``, если проверенный статус не записываем.

    Raises:
        GatewayError: MP не смог подтвердить платёж.
        PersistenceError: заказ не удалось записать; ничего не закоммичено.
    """
    log_prefix = f"[Payment: {payment_id}]"

    payment = gateway.get_payment(str(payment_id))
    status = PAYMENT_TO_ORDER_STATUS.get(payment.status)
    if status is None:
        log.info(f"{log_prefix} Проверенный статус '{payment.status}', ничего не пишем.")
        return ReconciliationResult(Outcome.IGNORED, payment_status=payment.status)

    existing = get_order_by_payment(db, payment.id)
    if existing:
        log.info(f"{log_prefix} Уже записан как заказ {existing.id}, пропускаем.")
        return ReconciliationResult(Outcome.DUPLICATE, existing, payment.status)

    order = build_order(
        total_amount=payment.transaction_amount,
        status=status,
        payment_id=payment.id,
        customer_email=payment.payer.email,
        customer_details=customer_snapshot(payment),
        lines=order_lines(db, payment),
    )

    try:
        db.add(order)
        db.commit()
    except IntegrityError:
        # параллельная доставка того же уведомления успела вставить заказ
        db.rollback()
        existing = get_order_by_payment(db, payment.id)
        if existing:
            log.info(f"{log_prefix} Параллельная вставка успела первой, оставляем заказ {existing.id}.")
            return ReconciliationResult(Outcome.DUPLICATE, existing, payment.status)
        log.error(f"{log_prefix} Ошибка целостности при записи заказа.", exc_info=True)
        raise PersistenceError(f"Could not save order for payment {payment.id}")
    except SQLAlchemyError as e:
        db.rollback()
        log.error(f"{log_prefix} Ошибка записи заказа: {e}")
        raise PersistenceError(f"Could not save order for payment {payment.id}") from e

    db.refresh(order)
    log.info(f"{log_prefix} Создан заказ {order.id} со статусом {order.status} "
             f"(итог {order.total_amount}).")
    return ReconciliationResult(Outcome.CREATED, order, payment.status)
