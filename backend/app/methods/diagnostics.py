"""Diagnostics methods: testConnection, testDatabase, getServerLogs."""

from typing import List

from app.methods.registry import MethodContext, MethodRegistry
from app.schemas.common import EmptyParams
from app.schemas.diagnostics import (
    ConnectionSnapshot,
    DatabaseProbe,
    LogEntry,
    ServerLogsParams,
)
from app.services.diagnostics_service import diagnostics_service


async def test_connection(params: EmptyParams, ctx: MethodContext) -> ConnectionSnapshot:
    return await diagnostics_service.test_connection(ctx.db)


async def test_database(params: EmptyParams, ctx: MethodContext) -> DatabaseProbe:
    return await diagnostics_service.test_database(ctx.db)


async def get_server_logs(params: ServerLogsParams, ctx: MethodContext) -> List[LogEntry]:
    return diagnostics_service.get_server_logs(params.limit)


def register(registry: MethodRegistry) -> None:
    registry.register("testConnection", EmptyParams, test_connection)
    registry.register("testDatabase", EmptyParams, test_database)
    registry.register("getServerLogs", ServerLogsParams, get_server_logs)
