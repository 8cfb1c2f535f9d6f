"""
Checklist Manifesto Backend — Diagnostics Service Unit Tests
==============================================================

What we test:
    ✅ testConnection snapshot sections and session count
    ✅ testConnection reports a dead database instead of raising
    ✅ testDatabase probe round trip leaves no rows behind
    ✅ testDatabase converts any failure into {success: false, error, stack}
    ✅ Database URLs are reported with the password masked
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.models.connection_probe import ConnectionProbe
from app.schemas.diagnostics import DatabaseProbeFailure, DatabaseProbeResult
from app.services.diagnostics_service import DiagnosticsService, mask_database_url


class TestMaskDatabaseUrl:

    def test_password_hidden(self):
        masked = mask_database_url("postgresql+asyncpg://checklist:s3cr3t@db:5432/checklist")
        assert "s3cr3t" not in masked
        assert masked == "postgresql+asyncpg://checklist:***@db:5432/checklist"

    def test_url_without_password_unchanged(self):
        assert mask_database_url("sqlite+aiosqlite:///./checklist.db") == "sqlite+aiosqlite:///./checklist.db"

    def test_garbage_reports_unknown(self):
        assert mask_database_url("not a url") == "Unknown"


class TestTestConnection:

    def setup_method(self):
        self.service = DiagnosticsService()

    @pytest.mark.asyncio
    async def test_snapshot_sections(self, sqlite_session, accounts):
        user_id = await accounts.create_user_directly(sqlite_session, "rn", "password")
        await accounts.issue_login_token(sqlite_session, user_id)
        await sqlite_session.commit()

        snapshot = await self.service.test_connection(sqlite_session)

        assert snapshot.success is True
        assert snapshot.database.connected is True
        assert snapshot.database.error is None
        assert snapshot.sessions == 1
        assert snapshot.server.python_version
        assert snapshot.server.uptime >= 0
        assert snapshot.system.hostname
        assert snapshot.system.total_memory > 0
        assert snapshot.connection.settings == "Available"

    @pytest.mark.asyncio
    async def test_database_down_is_reported_not_raised(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        snapshot = await self.service.test_connection(mock_db_session)

        assert snapshot.database.connected is False
        assert "connection refused" in snapshot.database.error
        assert snapshot.sessions == 0

    @pytest.mark.asyncio
    async def test_wire_format_is_camel_case(self, sqlite_session):
        snapshot = await self.service.test_connection(sqlite_session)
        wire = snapshot.model_dump(by_alias=True)
        assert "webSocketsEnabled" in wire["connection"]
        assert "pythonVersion" in wire["server"]


class TestTestDatabase:

    def setup_method(self):
        self.service = DiagnosticsService()

    @pytest.mark.asyncio
    async def test_probe_round_trip(self, sqlite_session):
        result = await self.service.test_database(sqlite_session)

        assert isinstance(result, DatabaseProbeResult)
        assert result.success is True
        assert result.ping and result.insert_worked and result.find_worked and result.remove_worked
        remaining = (await sqlite_session.execute(select(func.count(ConnectionProbe.id)))).scalar()
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_failure_becomes_data(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        result = await self.service.test_database(mock_db_session)

        assert isinstance(result, DatabaseProbeFailure)
        assert result.success is False
        assert "disk I/O error" in result.error
        assert "Traceback" in result.stack
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_rollback_still_returns_data(self, mock_db_session):
        mock_db_session.flush.side_effect = RuntimeError("insert blew up")
        mock_db_session.rollback.side_effect = RuntimeError("connection gone")

        result = await self.service.test_database(mock_db_session)

        assert result.success is False
        assert result.error == "insert blew up"


class TestServerLogs:

    def test_returns_placeholder_entries(self):
        entries = DiagnosticsService().get_server_logs()
        assert [e.message for e in entries] == [
            "Logs not available via this method",
            "Please check the server console or log files",
        ]

    def test_limit_applies(self):
        assert len(DiagnosticsService().get_server_logs(limit=1)) == 1
