# perfume_admin/models/order.py
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from perfume_admin.db import Base
from perfume_admin.utils.enums import OrderStatus

__all__ = ["Order", "OrderItem", "DELETED_PRODUCT_LABEL"]

DELETED_PRODUCT_LABEL = "Producto eliminado"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    # === СТАТУС ЗАКАЗА ===
    # допустимые значения: OrderStatus
    status: Mapped[str] = mapped_column(String(24), default=OrderStatus.PENDING.value, index=True)
    status_changed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # снимок данных покупателя на момент оплаты, не синхронизируется
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    customer_details: Mapped[dict] = mapped_column(JSON, default=dict)

    # id платежа в Mercado Pago: ключ идемпотентности вебхука
    payment_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    status_history = relationship(
        "OrderStatusLog", back_populates="order", order_by="OrderStatusLog.id"
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)

    # товар могут удалить: строка заказа остаётся, ссылка обнуляется
    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def subtotal(self) -> Decimal:
        return Decimal(str(self.unit_price)) * int(self.quantity)

    @property
    def display_name(self) -> str:
        if self.product is not None:
            return self.product.name
        return DELETED_PRODUCT_LABEL
