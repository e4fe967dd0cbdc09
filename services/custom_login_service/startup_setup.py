from __future__ import annotations

from dishka import make_async_container
from quart_dishka import QuartDishka
from sqlalchemy.ext.asyncio import AsyncEngine

from services.libs.login_service_libs import LoginServiceApp
from services.libs.login_service_libs.logging_utils import (
    configure_service_logging,
    create_service_logger,
)
from services.libs.login_service_libs.metrics_middleware import setup_metrics_middleware

from services.custom_login_service.config import Settings
from services.custom_login_service.di import CoreProvider, FlowProvider, ImplementationsProvider
from services.custom_login_service.metrics import get_http_metrics
from services.custom_login_service.models_db import Base

logger = create_service_logger("custom_login_service.startup")


async def initialize_services(app: LoginServiceApp, settings: Settings) -> None:
    configure_service_logging(
        settings.SERVICE_NAME, environment=settings.ENVIRONMENT.value, log_level=settings.LOG_LEVEL
    )
    logger.info("Custom Login Service initializing", extra={"settings": str(settings)})

    container = make_async_container(
        CoreProvider(),
        ImplementationsProvider(),
        FlowProvider(),
    )
    QuartDishka(app=app, container=container)
    app.container = container

    app.extensions["metrics"] = get_http_metrics()
    setup_metrics_middleware(app, logger_name="custom_login_service.metrics_middleware")

    # Database engine for health checks; schema creation is a safety net for fresh databases
    database_engine = await container.get(AsyncEngine)
    app.database_engine = database_engine
    async with database_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def shutdown_services(app: LoginServiceApp) -> None:
    container = getattr(app, "container", None)
    if container is not None:
        await container.close()
    logger.info("Custom Login Service shutdown complete")
