"""
Доменные ошибки слоя services.

Роутеры переводят их в HTTP-ответы; сервисы сами ответов не строят.
"""


class GatewayError(Exception):
    """MP не удалось спросить (сеть, авторизация, 5xx, кривое тело).

    Для нас это временно: ничего не записано, MP пришлёт уведомление снова.
    """


class PaymentNotFound(GatewayError):
    """MP не знает такой id платежа (HTTP 404)."""


class PersistenceError(Exception):
    """Проверенный платёж не удалось записать в заказы."""


class OrderNotFound(LookupError):
    pass


class InvalidOrderStatus(ValueError):
    pass


class OrderStatusLocked(Exception):
    """Заказ в финальном статусе, админ его уже не меняет."""
