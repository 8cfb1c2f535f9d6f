"""
Checklist Manifesto Backend — Diagnostics Schemas
===================================================

What:  Result models for testConnection, testDatabase and getServerLogs.
Why:   The connection diagnostics panel in the client renders these fields
       directly; keeping them typed documents exactly what it can rely on.
"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import Field

from app.schemas.common import MethodModel


class ServerInfo(MethodModel):
    environment: str
    app_name: str
    app_version: str
    python_version: str
    server_architecture: str
    server_platform: str
    uptime: int = Field(description="Process uptime in whole seconds")
    timestamp: datetime


class SystemInfo(MethodModel):
    hostname: str
    type: str
    platform: str
    arch: str
    release: str
    uptime: int = Field(description="Host uptime in whole seconds")
    total_memory: int
    free_memory: int


class DatabaseStatus(MethodModel):
    connected: bool
    database_url: Optional[str] = None
    error: Optional[str] = None


class ConnectionSettings(MethodModel):
    port: int
    root_url: str
    web_sockets_enabled: bool
    settings: str = Field(description="'Available' when settings loaded")


class ConnectionSnapshot(MethodModel):
    """Full result of `testConnection`."""

    success: bool = True
    server: ServerInfo
    system: SystemInfo
    database: DatabaseStatus
    connection: ConnectionSettings
    sessions: int = Field(description="Number of active login tokens")


class DatabaseProbeResult(MethodModel):
    """`testDatabase` outcome when every step of the probe succeeded."""

    success: Literal[True] = True
    ping: bool
    insert_worked: bool
    find_worked: bool
    remove_worked: bool
    database_url: str


class DatabaseProbeFailure(MethodModel):
    """
    `testDatabase` outcome when any step raised.

    The probe converts its exception into this value instead of raising.
    """

    success: Literal[False] = False
    error: str
    stack: str


DatabaseProbe = Union[DatabaseProbeResult, DatabaseProbeFailure]


class ServerLogsParams(MethodModel):
    limit: int = Field(default=100, ge=1, le=1000)


class LogEntry(MethodModel):
    timestamp: datetime
    message: str
