"""Custom auth pages.

Thin routes: every request is turned into a RequestContext and handed to the
FlowOrchestrator.
"""

from __future__ import annotations

from dishka import FromDishka
from quart import Blueprint, Response
from quart_dishka import inject

from services.custom_login_service.api.flow_responses import run_flow
from services.custom_login_service.config import settings
from services.custom_login_service.flow_enums import EntryPoint, Route
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.protocols import IdentityServiceProtocol

bp = Blueprint("pages", __name__)


@bp.route(settings.LOGIN_PAGE_PATH, methods=["GET", "POST"])
@inject
async def login_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.LOGIN, EntryPoint.PAGE, orchestrator, identity_service)


@bp.route(settings.REGISTER_PAGE_PATH, methods=["GET", "POST"])
@inject
async def register_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.REGISTER, EntryPoint.PAGE, orchestrator, identity_service)


@bp.route(settings.LOST_PASSWORD_PAGE_PATH, methods=["GET", "POST"])
@inject
async def lost_password_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.LOST_PASSWORD, EntryPoint.PAGE, orchestrator, identity_service)


@bp.route(settings.RESET_PASSWORD_PAGE_PATH, methods=["GET", "POST"])
@inject
async def reset_password_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.RESET_PASSWORD, EntryPoint.PAGE, orchestrator, identity_service)


@bp.route(settings.ACCOUNT_PAGE_PATH, methods=["GET"])
@inject
async def account_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.ACCOUNT, EntryPoint.PAGE, orchestrator, identity_service)


@bp.route(settings.LOGOUT_PAGE_PATH, methods=["GET"])
@inject
async def logout_page(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await run_flow(Route.LOGOUT, EntryPoint.PAGE, orchestrator, identity_service)
