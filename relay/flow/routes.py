"""HTTP endpoints that hand requests to the flow controller."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse, Response

from relay.errors import HTTP_UNAUTHORIZED
from relay.flow.controller import FlowController
from relay.tokens.session import SessionToken

router = APIRouter(prefix="/api/auth")


def get_flow_controller(request: Request) -> FlowController:
    return request.app.state.flow_controller


@router.get("/start-oauth", response_model=None)
async def start_oauth(
    request: Request,
    controller: Annotated[FlowController, Depends(get_flow_controller)],
) -> Response:
    """GET /api/auth/start-oauth -- redirect to the provider or back to the referer."""
    return await controller.start_flow(request)


@router.get("/finish-oauth", response_model=None)
async def finish_oauth(
    request: Request,
    controller: Annotated[FlowController, Depends(get_flow_controller)],
) -> Response:
    """GET /api/auth/finish-oauth -- provider redirect target; sets the session."""
    return await controller.finish_flow(request)


@router.get("/session", response_model=None)
async def session(
    request: Request,
    controller: Annotated[FlowController, Depends(get_flow_controller)],
) -> SessionToken | JSONResponse:
    """GET /api/auth/session -- identity claims of a valid session cookie."""
    token = controller.current_session(request)
    if token is None:
        return JSONResponse(
            {"error": "Unauthorized - No valid session found"},
            status_code=HTTP_UNAUTHORIZED,
        )
    return token
