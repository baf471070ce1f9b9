# perfume_admin/models/catalog.py
from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from perfume_admin.db import Base

__all__ = ["Brand", "Category", "Product"]


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    stock: Mapped[int] = mapped_column(Integer, default=0)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    img_transparent_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # категория и бренд хранятся строкой, как в витрине
    category: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    brand: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # === Ольфакторный профиль ===
    top_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    heart_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    base_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    season: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    time_of_day: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    longevity: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    sillage: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
