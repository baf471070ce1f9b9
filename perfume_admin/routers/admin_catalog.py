from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfume_admin.db import get_db
from perfume_admin.models import Brand, Category, OrderItem, Product

router = APIRouter(prefix="/admin/catalog", tags=["admin-catalog"])

PRODUCT_TEXT_FIELDS = (
    "description", "image_url", "img_transparent_url", "category", "brand",
    "top_notes", "heart_notes", "base_notes", "season", "time_of_day",
    "longevity", "sillage",
)


def _product_json(p: Product) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "price": float(p.price or 0),
        "stock": p.stock,
        "is_active": p.is_active,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }
    for field in PRODUCT_TEXT_FIELDS:
        data[field] = getattr(p, field)
    return data


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")
    return product


def _apply_text_fields(product: Product, values: dict):
    for field, value in values.items():
        if value is not None:
            setattr(product, field, value.strip() or None)


# 📦 список товаров
@router.get("/products")
def products_index(
    active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    q = db.query(Product).order_by(Product.created_at.desc(), Product.id.desc())
    if active is not None:
        q = q.filter(Product.is_active == active)
    return [_product_json(p) for p in q.all()]


# 💾 создание
@router.post("/products", status_code=201)
def product_create(
    name: str = Form(...),
    price: Decimal = Form(..., ge=0),
    stock: int = Form(0, ge=0),
    description: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    img_transparent_url: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    top_notes: Optional[str] = Form(None),
    heart_notes: Optional[str] = Form(None),
    base_notes: Optional[str] = Form(None),
    season: Optional[str] = Form(None),
    time_of_day: Optional[str] = Form(None),
    longevity: Optional[str] = Form(None),
    sillage: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    product = Product(name=name.strip(), price=price, stock=stock, is_active=True)
    _apply_text_fields(product, {
        "description": description, "image_url": image_url,
        "img_transparent_url": img_transparent_url, "category": category, "brand": brand,
        "top_notes": top_notes, "heart_notes": heart_notes, "base_notes": base_notes,
        "season": season, "time_of_day": time_of_day, "longevity": longevity, "sillage": sillage,
    })
    db.add(product)
    db.commit()
    db.refresh(product)
    return _product_json(product)


# ✏️ обновление: пустые поля не трогаем
@router.post("/products/{product_id}")
def product_update(
    product_id: int,
    name: Optional[str] = Form(None),
    price: Optional[Decimal] = Form(None, ge=0),
    stock: Optional[int] = Form(None, ge=0),
    description: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    img_transparent_url: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    top_notes: Optional[str] = Form(None),
    heart_notes: Optional[str] = Form(None),
    base_notes: Optional[str] = Form(None),
    season: Optional[str] = Form(None),
    time_of_day: Optional[str] = Form(None),
    longevity: Optional[str] = Form(None),
    sillage: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    if name:
        product.name = name.strip()
    if price is not None:
        product.price = price
    if stock is not None:
        product.stock = stock
    _apply_text_fields(product, {
        "description": description, "image_url": image_url,
        "img_transparent_url": img_transparent_url, "category": category, "brand": brand,
        "top_notes": top_notes, "heart_notes": heart_notes, "base_notes": base_notes,
        "season": season, "time_of_day": time_of_day, "longevity": longevity, "sillage": sillage,
    })
    db.commit()
    db.refresh(product)
    return _product_json(product)


@router.post("/products/{product_id}/toggle")
def product_toggle(product_id: int, db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    product.is_active = not product.is_active
    db.commit()
    return {"id": product.id, "is_active": product.is_active}


# 🗑 удаление: строки старых заказов остаются, ссылка на товар обнуляется
@router.delete("/products/{product_id}")
def product_delete(product_id: int, db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    db.query(OrderItem).filter(OrderItem.product_id == product.id).update(
        {OrderItem.product_id: None}, synchronize_session=False
    )
    db.delete(product)
    db.commit()
    return {"success": True}


# ---------- БРЕНДЫ ----------
@router.get("/brands")
def brands_index(db: Session = Depends(get_db)):
    brands = db.query(Brand).order_by(Brand.name).all()
    return [
        {"id": b.id, "name": b.name, "logo_url": b.logo_url, "is_featured": b.is_featured}
        for b in brands
    ]


@router.post("/brands", status_code=201)
def brand_create(
    name: str = Form(...),
    logo_url: Optional[str] = Form(None),
    is_featured: bool = Form(False),
    db: Session = Depends(get_db),
):
    brand = Brand(name=name.strip(), logo_url=(logo_url or None), is_featured=is_featured)
    db.add(brand)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="La marca ya existe")
    db.refresh(brand)
    return {"id": brand.id, "name": brand.name, "logo_url": brand.logo_url, "is_featured": brand.is_featured}


# ---------- КАТЕГОРИИ ----------
@router.get("/categories")
def categories_index(db: Session = Depends(get_db)):
    return [{"id": c.id, "name": c.name, "slug": c.slug}
            for c in db.query(Category).order_by(Category.name).all()]


@router.post("/categories", status_code=201)
def category_create(
    name: str = Form(...),
    slug: str = Form(...),
    db: Session = Depends(get_db),
):
    category = Category(name=name.strip(), slug=slug.strip().lower())
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="La categoría ya existe")
    db.refresh(category)
    return {"id": category.id, "name": category.name, "slug": category.slug}
