"""
Checklist Manifesto Backend — Diagnostics Service
===================================================

What:  Read-only introspection behind the connection diagnostics panel:
       process/host metadata, database liveness, a scratch write probe.
Why:   When a deployment misbehaves the first question is "can the server
       reach its database, and with which settings?". These methods answer
       that from the client without shell access to the host.
How:   Stateless. Host metrics come from psutil; the database URL is always
       reported with its password masked.

Error Policy:
    testDatabase is the one place where exceptions are deliberately turned
    into data: any failure becomes {success: false, error, stack}.
    testConnection reports a database failure inside its `database`
    section instead of failing the whole snapshot.
"""

import logging
import platform
import socket
import sys
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import List

import psutil
from sqlalchemy import delete, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncSession

from app import __version__
from app.config import settings
from app.models.connection_probe import ConnectionProbe
from app.schemas.diagnostics import (
    ConnectionSettings,
    ConnectionSnapshot,
    DatabaseProbe,
    DatabaseProbeFailure,
    DatabaseProbeResult,
    DatabaseStatus,
    LogEntry,
    ServerInfo,
    SystemInfo,
)
from app.services.account_service import account_service

logger = logging.getLogger(__name__)


def mask_database_url(url: str) -> str:
    """Render a connection URL with its password hidden."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "Unknown"


class DiagnosticsService:
    """Builds the diagnostic snapshots returned by the diagnostics methods."""

    def __init__(self):
        self._process = psutil.Process()

    def server_info(self) -> ServerInfo:
        uptime = time.time() - self._process.create_time()
        return ServerInfo(
            environment=settings.environment,
            app_name=settings.app_name,
            app_version=__version__,
            python_version=platform.python_version(),
            server_architecture=platform.machine(),
            server_platform=sys.platform,
            uptime=int(uptime),
            timestamp=datetime.now(timezone.utc),
        )

    def system_info(self) -> SystemInfo:
        memory = psutil.virtual_memory()
        return SystemInfo(
            hostname=socket.gethostname(),
            type=platform.system(),
            platform=sys.platform,
            arch=platform.machine(),
            release=platform.release(),
            uptime=int(time.time() - psutil.boot_time()),
            total_memory=memory.total,
            free_memory=memory.available,
        )

    def connection_settings(self) -> ConnectionSettings:
        return ConnectionSettings(
            port=settings.port,
            root_url=settings.root_url,
            web_sockets_enabled=not settings.disable_websockets,
            settings="Available",
        )

    async def test_connection(self, db: AsyncSession) -> ConnectionSnapshot:
        """
        Full connection snapshot: server, host, database, connection config,
        and the number of active sessions (login tokens).
        """
        logger.info("Test connection method called")

        sessions = 0
        try:
            await db.execute(text("SELECT 1"))
            database = DatabaseStatus(
                connected=True,
                database_url=mask_database_url(settings.database_url),
            )
            sessions = await account_service.count_active_tokens(db)
        except Exception as e:
            logger.warning("Test connection: database unreachable: %s", str(e))
            database = DatabaseStatus(connected=False, error=str(e))

        return ConnectionSnapshot(
            server=self.server_info(),
            system=self.system_info(),
            database=database,
            connection=self.connection_settings(),
            sessions=sessions,
        )

    async def test_database(self, db: AsyncSession) -> DatabaseProbe:
        """
        Ping, then insert/find/delete a row in the connection_probe table.

        Never raises: failures are returned as DatabaseProbeFailure.
        """
        logger.info("Test database connection method called")

        try:
            ping = (await db.execute(text("SELECT 1"))).scalar() == 1

            db.add(ConnectionProbe(id=uuid.uuid4(), test=True))
            await db.flush()
            insert_worked = True

            found = await db.execute(
                select(ConnectionProbe).where(ConnectionProbe.test.is_(True))
            )
            find_worked = found.scalars().first() is not None

            removed = await db.execute(
                delete(ConnectionProbe).where(ConnectionProbe.test.is_(True))
            )
            remove_worked = (removed.rowcount or 0) > 0
            await db.commit()

            return DatabaseProbeResult(
                ping=ping,
                insert_worked=insert_worked,
                find_worked=find_worked,
                remove_worked=remove_worked,
                database_url=mask_database_url(settings.database_url),
            )
        except Exception as e:
            logger.error("Database test error: %s", str(e), exc_info=True)
            stack = traceback.format_exc()
            try:
                await db.rollback()
            except Exception as rollback_error:
                logger.warning("Rollback after failed probe also failed: %s", rollback_error)
            return DatabaseProbeFailure(error=str(e) or type(e).__name__, stack=stack)

    def get_server_logs(self, limit: int = 100) -> List[LogEntry]:
        """
        Placeholder: log shipping is not wired up, so this only points the
        caller at the server console.
        """
        now = datetime.now(timezone.utc)
        entries = [
            LogEntry(timestamp=now, message="Logs not available via this method"),
            LogEntry(timestamp=now, message="Please check the server console or log files"),
        ]
        return entries[:limit]


# ── Singleton Instance ────────────────────────────────────────────────────
diagnostics_service = DiagnosticsService()
