"""
Клиент Mercado Pago для проверки уведомлений об оплате.

Вебхук не верит тому, что написано в уведомлении: он спрашивает MP через
``MercadoPagoClient.get_payment`` и работает только с проверенным
``GatewayPayment``.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from perfume_admin.exceptions import GatewayError, PaymentNotFound

log = logging.getLogger(__name__)


def _as_str(value):
    # MP отдаёт идентификаторы, телефоны и номера домов то числом, то строкой
    if value is None or isinstance(value, str):
        return value
    return str(value)


class _GatewayModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PayerPhone(_GatewayModel):
    area_code: Optional[str] = None
    number: Optional[str] = None

    @field_validator("area_code", "number", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)

    def as_text(self) -> Optional[str]:
        parts = [p for p in (self.area_code, self.number) if p]
        return "".join(parts) or None


class PayerIdentification(_GatewayModel):
    type: Optional[str] = None
    number: Optional[str] = None

    @field_validator("type", "number", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)


class Payer(_GatewayModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[PayerPhone] = None
    identification: Optional[PayerIdentification] = None

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)


class PaymentItem(_GatewayModel):
    """Строка из ``additional_info.items``; quantity и unit_price MP шлёт строками."""
    id: Optional[str] = None
    title: Optional[str] = None
    quantity: int = Field(1, gt=0)
    unit_price: Decimal

    @field_validator("id", "title", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)


class ReceiverAddress(_GatewayModel):
    street_name: Optional[str] = None
    street_number: Optional[str] = None
    zip_code: Optional[str] = None
    city_name: Optional[str] = None
    state_name: Optional[str] = None

    @field_validator("street_name", "street_number", "zip_code", "city_name", "state_name",
                     mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)


class Shipments(_GatewayModel):
    receiver_address: Optional[ReceiverAddress] = None


class AdditionalInfo(_GatewayModel):
    items: List[PaymentItem] = Field(default_factory=list)
    shipments: Optional[Shipments] = None


class GatewayPayment(_GatewayModel):
    """Проверенный платёж, как его отдаёт ``GET /v1/payments/{id}``."""
    id: str
    status: str
    status_detail: Optional[str] = None
    transaction_amount: Decimal
    currency_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    external_reference: Optional[str] = None
    payer: Payer = Field(default_factory=Payer)
    additional_info: AdditionalInfo = Field(default_factory=AdditionalInfo)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "status_detail", "currency_id", "payment_method_id",
                     "external_reference", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return _as_str(value)


class MercadoPagoClient:
    """
    REST-клиент платёжного API Mercado Pago.

    Один экземпляр на приложение, лежит в ``app.state``; держит
    ``requests.Session``, чтобы соединения переиспользовались между вебхуками.
    """

    def __init__(self, access_token: str, base_url: str = "https://api.mercadopago.com",
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        })

    def close(self):
        self.session.close()

    def get_payment(self, payment_id: str) -> GatewayPayment:
        """
        Получить настоящий статус платежа.

        Args:
            payment_id (str): id платежа из уведомления.

        Returns:
            GatewayPayment: проверенные данные платежа.

        Raises:
            PaymentNotFound: MP ответил 404 на этот id.
            GatewayError: сеть, таймаут, ответ не 2xx или тело не похоже на платёж.
        """
        url = f"{self.base_url}/v1/payments/{payment_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"[Payment: {payment_id}] Mercado Pago недоступен: {e}")
            raise GatewayError(f"Mercado Pago unreachable: {e}") from e

        if response.status_code == 404:
            log.warning(f"[Payment: {payment_id}] Платёж неизвестен Mercado Pago (404).")
            raise PaymentNotFound(f"Payment {payment_id} not found")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            log.error(f"[Payment: {payment_id}] Mercado Pago ответил HTTP {response.status_code}.")
            raise GatewayError(f"Mercado Pago answered HTTP {response.status_code}") from e

        try:
            return GatewayPayment.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            log.error(f"[Payment: {payment_id}] Неожиданное тело платежа: {e}")
            raise GatewayError("Unexpected payment payload") from e
