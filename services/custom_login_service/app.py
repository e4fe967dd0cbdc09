"""
Custom Login Service application.

Replaces the host's built-in auth screens with custom pages and serves the
native auth endpoint that forwards to them.
"""

from __future__ import annotations

from services.libs.login_service_libs import LoginServiceApp
from services.libs.login_service_libs.logging_utils import (
    configure_service_logging,
    create_service_logger,
)

from services.custom_login_service.api.health_routes import bp as health_bp
from services.custom_login_service.api.native_routes import bp as native_bp
from services.custom_login_service.api.page_routes import bp as pages_bp
from services.custom_login_service.config import settings
from services.custom_login_service.startup_setup import initialize_services, shutdown_services

configure_service_logging(
    settings.SERVICE_NAME, environment=settings.ENVIRONMENT.value, log_level=settings.LOG_LEVEL
)
logger = create_service_logger("custom_login_service.app")

app = LoginServiceApp(__name__)
app.secret_key = settings.SESSION_SECRET_KEY.get_secret_value()
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SECURE"] = settings.is_production()


@app.before_serving
async def startup() -> None:
    await initialize_services(app, settings)
    logger.info("Custom Login Service startup completed successfully")


@app.after_serving
async def shutdown() -> None:
    await shutdown_services(app)


app.register_blueprint(health_bp)
app.register_blueprint(native_bp)  # /auth/<action> forwards to the custom pages
app.register_blueprint(pages_bp)


if __name__ == "__main__":
    import asyncio

    import hypercorn.asyncio
    from hypercorn import Config

    config = Config()
    config.bind = [f"{settings.HOST}:{settings.PORT}"]
    config.workers = settings.WEB_CONCURRENCY
    config.worker_class = "asyncio"
    config.loglevel = settings.LOG_LEVEL.lower()
    config.graceful_timeout = settings.GRACEFUL_TIMEOUT
    config.keep_alive_timeout = settings.KEEP_ALIVE_TIMEOUT

    asyncio.run(hypercorn.asyncio.serve(app, config))
