"""
Точка входа.

Модуль ничего не создаёт при импорте. Запуск:

    uvicorn --factory perfume_admin.main:create_app

или ``perfume-admin`` (см. ``run``), который ещё и настраивает логирование.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from sqlalchemy.orm import configure_mappers

from perfume_admin import config
from perfume_admin.db import Base, make_engine, make_session_factory
from perfume_admin.logging_config import setup_logging

# 1) Импортируем все модели до create_all(),
#    чтобы SQLAlchemy знал про классы и связи
import perfume_admin.models  # noqa: F401

from perfume_admin.routers import admin_catalog, admin_orders, webhooks
from perfume_admin.services.gateway import MercadoPagoClient

log = logging.getLogger(__name__)


def create_app(session_factory=None, gateway=None) -> FastAPI:
    """
    Собирает приложение.

    Фабрика сессий и клиент Mercado Pago лежат в ``app.state``; тесты
    передают свои, в проде они строятся из ``config``.
    """
    if session_factory is None:
        session_factory = make_session_factory(make_engine(config.DATABASE_URL))
    if gateway is None:
        gateway = MercadoPagoClient(
            access_token=config.MP_ACCESS_TOKEN,
            base_url=config.MP_API_URL,
            timeout=config.MP_TIMEOUT,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 2) Создаём таблицы
        configure_mappers()
        Base.metadata.create_all(bind=session_factory.kw["bind"])
        log.info(f"{config.APP_NAME} запущен (env: {config.ENV}).")
        yield
        close = getattr(app.state.gateway, "close", None)
        if close:
            close()

    app = FastAPI(title=config.APP_NAME, lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.gateway = gateway

    # ==== Routers ====
    app.include_router(webhooks.router)
    app.include_router(admin_orders.router)
    app.include_router(admin_catalog.router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


def run():
    import uvicorn

    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    uvicorn.run("perfume_admin.main:create_app", factory=True,
                host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
