# perfume_admin/models/order_status_log.py
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from perfume_admin.db import Base

__all__ = ["OrderStatusLog"]


class OrderStatusLog(Base):
    """Журнал смены статуса заказа админом (вебхук сюда не пишет)."""
    __tablename__ = "order_status_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)

    old_status: Mapped[str] = mapped_column(String(24))
    new_status: Mapped[str] = mapped_column(String(24))
    changed_by: Mapped[str] = mapped_column(String(64), default="admin")  # без авторизации всегда admin
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    order = relationship("Order", back_populates="status_history")
