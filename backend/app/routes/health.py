"""
Liveness probe for load balancers and the client transport's reconnect loop.

GET /health answers 200 when the database answers SELECT 1 and 503 when it
does not. The client transport treats any HTTP answer as "connected": a 503
still proves the server is reachable, and the banner only reflects that.
"""

import logging
import time

from fastapi import APIRouter, Request, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

STARTED_AT = time.monotonic()


async def ping_database(db_engine: AsyncEngine) -> bool:
    try:
        async with db_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", e)
        return False
    return True


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check(request: Request, response: Response) -> HealthResponse:
    reachable = await ping_database(engine)
    if not reachable:
        response.status_code = 503

    return HealthResponse(
        status="healthy" if reachable else "unhealthy",
        version=__version__,
        database="connected" if reachable else "disconnected",
        methods=len(request.app.state.method_registry.names()),
        uptime_seconds=round(time.monotonic() - STARTED_AT, 2),
    )
