"""Liveness and Prometheus endpoints."""

from __future__ import annotations

from typing import Any, cast

from dishka import FromDishka
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from quart import Blueprint, Response, current_app, jsonify
from quart_dishka import inject
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from services.libs.login_service_libs import LoginServiceApp
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.config import Settings

bp = Blueprint("health", __name__)
logger = create_service_logger("custom_login_service.health_routes")


async def _identity_store_status() -> dict[str, Any]:
    engine = cast(LoginServiceApp, current_app).database_engine
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Identity store health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


@bp.route("/healthz")
@inject
async def health_check(settings: FromDishka[Settings]) -> tuple[Response, int]:
    """200 while the identity store answers, 503 otherwise."""
    database = await _identity_store_status()
    healthy = database["status"] == "healthy"
    body = {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "status": "healthy" if healthy else "unhealthy",
        "dependencies": {"database": database},
    }
    return jsonify(body), 200 if healthy else 503


@bp.route("/metrics")
@inject
async def metrics(registry: FromDishka[CollectorRegistry]) -> Response:
    return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)
