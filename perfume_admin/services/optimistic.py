"""
Изменения заказов со стороны админа с оптимистичным отображением.

``AdminOrdersClient`` ходит в админское API и всегда отвечает
``MutationResult``; ``OrderBoard`` держит заказы, которые видит админ,
сразу применяет изменение и возвращает прежние значения, если сервер
его отклонил.
"""

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Optional

import requests

log = logging.getLogger(__name__)


@dataclass
class MutationResult:
    success: bool
    error: Optional[str] = None
    order: Optional[dict] = None


class AdminOrdersClient:
    """
    Клиент эндпоинтов ``/admin/orders``.

    ``http`` — что угодно с ``post(url, data=...)`` в стиле requests; по
    умолчанию ``requests.Session``.
    """

    def __init__(self, base_url: str = "http://localhost:8000", http=None):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()

    def _post(self, path: str, data: dict) -> MutationResult:
        try:
            response = self.http.post(f"{self.base_url}{path}", data=data)
        except requests.RequestException as e:
            log.warning(f"Админское API недоступно: {e}")
            return MutationResult(False, str(e))

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            detail = body.get("detail") if isinstance(body, dict) else None
            return MutationResult(False, str(detail or f"HTTP {response.status_code}"))
        return MutationResult(True, order=body.get("order") if isinstance(body, dict) else None)

    def update_status(self, order_id: int, status: str, note: Optional[str] = None) -> MutationResult:
        data = {"new_status": status}
        if note:
            data["note"] = note
        return self._post(f"/admin/orders/{order_id}/status", data)

    def update_notes(self, order_id: int, notes: str) -> MutationResult:
        return self._post(f"/admin/orders/{order_id}/notes", {"notes": notes or ""})


class OrderBoard:
    """Локальный вид заказов у админа (словари как из списка заказов)."""

    def __init__(self, orders: Optional[List[dict]] = None):
        self.orders: Dict[int, dict] = {o["id"]: dict(o) for o in (orders or [])}
        self.notices: List[str] = []

    def get(self, order_id: int) -> dict:
        return self.orders[order_id]

    def apply(self, order_id: int, patch: dict, remote: Callable[[], MutationResult]) -> MutationResult:
        """
        Сразу показывает ``patch``, потом вызывает ``remote``.

        При ошибке затронутые поля получают прежние значения и пишется
        уведомление; при успехе серверная копия заказа, если пришла,
        заменяет локальную.
        """
        view = self.orders[order_id]
        previous = {k: view.get(k) for k in patch}
        view.update(patch)

        try:
            result = remote()
        except Exception as e:
            log.error(f"[Order: {order_id}] Изменение упало с исключением: {e}")
            result = MutationResult(False, str(e))

        if not result.success:
            view.update(previous)
            self.notices.append(f"No se pudo actualizar el pedido #{order_id}: {result.error}")
            return result

        if result.order:
            view.update(result.order)
        return result

    def change_status(self, client: AdminOrdersClient, order_id: int, status: str) -> MutationResult:
        return self.apply(order_id, {"status": status},
                          lambda: client.update_status(order_id, status))

    def change_notes(self, client: AdminOrdersClient, order_id: int, notes: str) -> MutationResult:
        return self.apply(order_id, {"internal_notes": notes or None},
                          lambda: client.update_notes(order_id, notes))
