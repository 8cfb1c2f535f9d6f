"""
Checklist Manifesto Backend — Remote Method Route
===================================================

What:  POST /api/methods/{name}: the single HTTP entry point for every
       remote-callable method.
Why:   The browser client calls methods by name with a JSON params object
       and gets back the method's result (or a named error). Keeping one
       route means the registry, not the router, is the method inventory.
How:   Builds a MethodContext (db session, caller resolved from the bearer
       login token, request id) and hands off to the registry.

Authentication:
    Authorization: Bearer <login token from accounts.login>
    An absent, unknown or expired token simply leaves ctx.user = None;
    methods that need a caller reject that with not-authorized.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.methods.registry import MethodContext, MethodRegistry
from app.middleware.request_id import request_id_var
from app.schemas.common import ErrorResponse
from app.services.account_service import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Methods"])

bearer_scheme = HTTPBearer(auto_error=False)


async def get_method_context(
    db: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> MethodContext:
    """Resolve the caller (if any) and bundle per-call state for handlers."""
    token = credentials.credentials if credentials else None
    user = await account_service.resolve_login_token(db, token) if token else None
    return MethodContext(db=db, user=user, token=token, request_id=request_id_var.get(""))


def get_registry(request: Request) -> MethodRegistry:
    return request.app.state.method_registry


@router.post(
    "/methods/{name}",
    responses={
        200: {"description": "Method result"},
        400: {"description": "Invalid parameters", "model": ErrorResponse},
        401: {"description": "Authentication failed or required", "model": ErrorResponse},
        404: {"description": "Unknown method or user", "model": ErrorResponse},
        409: {"description": "Username already exists", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Call a remote method",
    description=(
        "Invokes the named method with the JSON body as its params object. "
        "Returns the method result as JSON, or a named error."
    ),
)
async def call_method(
    name: str,
    params: Optional[Dict[str, Any]] = Body(default=None),
    ctx: MethodContext = Depends(get_method_context),
    registry: MethodRegistry = Depends(get_registry),
) -> JSONResponse:
    result = await registry.dispatch(name, params, ctx)
    return JSONResponse(content=jsonable_encoder(result, by_alias=True))


@router.get("/methods", summary="List registered method names")
async def list_methods(registry: MethodRegistry = Depends(get_registry)) -> Dict[str, Any]:
    return {"methods": registry.names()}
