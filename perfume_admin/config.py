from pathlib import Path
from dotenv import load_dotenv
import os

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")  # переменные окружения из .env

APP_NAME = "PerfumeAdmin"
ENV = os.getenv("ENV", "local")
STORE_NAME = os.getenv("STORE_NAME", "PerfuMan")

# Строка подключения к БД
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'perfume_admin.db'}")

# Mercado Pago
MP_ACCESS_TOKEN = os.getenv("MP_ACCESS_TOKEN", "")
MP_API_URL = os.getenv("MP_API_URL", "https://api.mercadopago.com")
MP_TIMEOUT = float(os.getenv("MP_TIMEOUT", "10"))

# Сервер
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None
