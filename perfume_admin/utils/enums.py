from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    """Статусы платежа Mercado Pago (то, что отвечает /v1/payments/{id})."""
    APPROVED = "approved"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"


STATUS_LABELS_ES = {
    OrderStatus.PENDING.value: "Pendiente",
    OrderStatus.APPROVED.value: "Aprobado",
    OrderStatus.PAID.value: "Pagado",
    OrderStatus.SHIPPED.value: "Enviado",
    OrderStatus.DELIVERED.value: "Entregado",
    OrderStatus.CANCELLED.value: "Cancelado",
    OrderStatus.REJECTED.value: "Pago Fallido",
}

# провальные статусы: для них показываем ссылку "связаться с клиентом"
FAILED_STATUSES = frozenset({OrderStatus.REJECTED, OrderStatus.CANCELLED})

# заказ в этом статусе больше не меняется
LOCKED_STATUSES = frozenset({OrderStatus.CANCELLED})
