import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from perfume_admin.db import get_db
from perfume_admin.exceptions import InvalidOrderStatus, OrderNotFound, OrderStatusLocked
from perfume_admin.services import orders as order_service
from perfume_admin.utils.enums import STATUS_LABELS_ES

log = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


def _not_found(order_id: int):
    return HTTPException(status_code=404, detail=f"Pedido #{order_id} no encontrado")


def _store_failed(db: Session, order_id: int, e: Exception):
    db.rollback()
    log.error(f"[Order: {order_id}] Изменение не сохранено: {e}")
    return HTTPException(status_code=503, detail="No se pudo guardar el cambio, intentá de nuevo")


# --------- СПИСОК ----------
@router.get("")
def orders_list(
    status: str = Query("all"),
    db: Session = Depends(get_db),
):
    try:
        rows = order_service.list_orders(db, status)
    except InvalidOrderStatus:
        raise HTTPException(status_code=400, detail="Estado inválido")
    return {
        "data": [order_service.serialize_order(o) for o in rows],
        "statuses": STATUS_LABELS_ES,
    }


# ---------- ДЕТАЛИ ЗАКАЗА ----------
@router.get("/{order_id}")
def order_detail(order_id: int, db: Session = Depends(get_db)):
    try:
        order = order_service.get_order(db, order_id)
    except OrderNotFound:
        raise _not_found(order_id)
    data = order_service.serialize_order(order)
    data["status_history"] = order_service.serialize_history(order)
    return data


# ---------- СМЕНА СТАТУСА ----------
@router.post("/{order_id}/status")
def change_status(
    order_id: int,
    new_status: str = Form(...),
    note: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    try:
        order = order_service.update_order_status(db, order_id, new_status, note=note)
    except InvalidOrderStatus:
        raise HTTPException(status_code=400, detail="Estado inválido")
    except OrderNotFound:
        raise _not_found(order_id)
    except OrderStatusLocked:
        raise HTTPException(status_code=409, detail="El pedido está cancelado y no admite cambios de estado")
    except SQLAlchemyError as e:
        raise _store_failed(db, order_id, e)
    return {"success": True, "order": order_service.serialize_order(order)}


# ---------- ЗАМЕТКИ ----------
@router.post("/{order_id}/notes")
def change_notes(
    order_id: int,
    notes: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        order = order_service.update_order_notes(db, order_id, notes)
    except OrderNotFound:
        raise _not_found(order_id)
    except SQLAlchemyError as e:
        raise _store_failed(db, order_id, e)
    return {"success": True, "order": order_service.serialize_order(order)}
