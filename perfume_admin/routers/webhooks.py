import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from perfume_admin.db import get_db
from perfume_admin.exceptions import GatewayError, PaymentNotFound, PersistenceError
from perfume_admin.services.reconciliation import reconcile_payment

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["webhooks"])


def get_gateway(request: Request):
    return request.app.state.gateway


async def _read_body(request: Request):
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _payment_id(body, request: Request):
    data = (body or {}).get("data")
    if isinstance(data, dict) and data.get("id"):
        return str(data["id"])
    return request.query_params.get("data.id") or None


def _topic(body, request: Request):
    return ((body or {}).get("type")
            or request.query_params.get("type")
            or request.query_params.get("topic"))


def _ack(message: str = "Received", status_code: int = 200):
    return JSONResponse({"message": message}, status_code=status_code)


# ---------- УВЕДОМЛЕНИЯ MERCADO PAGO ----------
@router.post("/mercadopago")
async def mercadopago_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
):
    body = await _read_body(request)
    payment_id = _payment_id(body, request)
    if not payment_id:
        log.warning("Уведомление о платеже без data.id отклонено.")
        return _ack("Missing ID", status_code=400)

    topic = _topic(body, request)
    if topic and topic != "payment":
        log.info(f"[Payment: {payment_id}] Уведомление с темой '{topic}' пропущено.")
        return _ack()

    try:
        # запрос в MP и коммит блокирующие: уводим из event loop
        result = await run_in_threadpool(reconcile_payment, db, gateway, payment_id)
    except PaymentNotFound:
        # повтор не поможет: подтверждаем, чтобы MP перестал слать
        return _ack()
    except GatewayError as e:
        log.error(f"[Payment: {payment_id}] Проверка не удалась, MP повторит уведомление: {e}")
        return _ack("Internal Server Error", status_code=500)
    except (PersistenceError, SQLAlchemyError) as e:
        log.critical(f"[Payment: {payment_id}] Проверенный платёж НЕ сохранён: {e}")
        return _ack("DB Error", status_code=500)

    log.info(f"[Payment: {payment_id}] Уведомление обработано: {result.outcome.value}.")
    # Всегда 200, иначе MP будет слать уведомление днями
    return _ack()
