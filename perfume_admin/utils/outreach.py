import re
from typing import Optional
from urllib.parse import quote

from perfume_admin import config


def _digits(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", str(phone or ""))


def whatsapp_link(customer_details: Optional[dict], store_name: Optional[str] = None) -> str:
    """Ссылка wa.me с готовым текстом для клиента с неудачной оплатой."""
    details = customer_details or {}
    name = ((details.get("name") or "").split(" ")[0]) or "cliente"
    store = store_name or config.STORE_NAME
    msg = quote(
        f"Hola {name}! 👋 Vi que tuviste un inconveniente con el pago de tu perfume en {store}. "
        f"¿Te puedo ayudar a resolverlo? 🌸",
        safe="",
    )
    phone = _digits(details.get("phone"))
    if phone:
        return f"https://wa.me/{phone}?text={msg}"
    return f"https://wa.me/?text={msg}"
