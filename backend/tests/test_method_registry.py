"""
Checklist Manifesto Backend — Method Registry Unit Tests
==========================================================

What we test:
    ✅ build_registry() exposes exactly the documented method names
    ✅ Duplicate registration is refused
    ✅ Unknown names → method-not-found
    ✅ Auth-required methods refuse anonymous callers before validation
    ✅ Params are validated (camelCase and snake_case) before the handler runs
    ✅ Validation errors never echo submitted values
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import StrictStr

from app.exceptions import MethodNotFoundError, NotAuthorizedError, ValidationError
from app.methods import MethodContext, MethodRegistry, build_registry
from app.schemas.common import EmptyParams, MethodModel


class EchoParams(MethodModel):
    user_name: StrictStr
    secret: StrictStr


class TestBuildRegistry:

    def test_method_inventory(self):
        assert build_registry().names() == sorted([
            "accounts.login",
            "accounts.logout",
            "getServerLogs",
            "login",
            "testConnection",
            "testDatabase",
            "user.changePassword",
            "user.create",
            "user.update",
        ])

    @pytest.mark.parametrize("name", ["accounts.logout", "user.update", "user.changePassword"])
    def test_auth_required(self, name):
        assert build_registry().get(name).requires_auth is True

    @pytest.mark.parametrize("name", ["login", "accounts.login", "user.create", "testConnection"])
    def test_anonymous_allowed(self, name):
        assert build_registry().get(name).requires_auth is False


class TestDispatch:

    def setup_method(self):
        self.registry = MethodRegistry()
        self.handler = AsyncMock(return_value="ok")
        self.registry.register("echo", EchoParams, self.handler)
        self.registry.register("private", EmptyParams, self.handler, requires_auth=True)
        self.ctx = MethodContext(db=AsyncMock(), request_id="test")

    def test_duplicate_registration_refused(self):
        with pytest.raises(ValueError):
            self.registry.register("echo", EchoParams, self.handler)

    def test_contains(self):
        assert "echo" in self.registry
        assert "nope" not in self.registry

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        with pytest.raises(MethodNotFoundError) as exc_info:
            await self.registry.dispatch("nope", {}, self.ctx)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_handler_receives_validated_params(self):
        result = await self.registry.dispatch("echo", {"userName": "rn", "secret": "x"}, self.ctx)

        assert result == "ok"
        params, ctx = self.handler.await_args.args
        assert isinstance(params, EchoParams)
        assert params.user_name == "rn"
        assert ctx is self.ctx

    @pytest.mark.asyncio
    async def test_snake_case_names_accepted(self):
        await self.registry.dispatch("echo", {"user_name": "rn", "secret": "x"}, self.ctx)
        self.handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_params_do_not_reach_handler(self):
        with pytest.raises(ValidationError) as exc_info:
            await self.registry.dispatch("echo", {"userName": 42, "secret": "hunter2"}, self.ctx)

        self.handler.assert_not_awaited()
        errors = exc_info.value.context["errors"]
        assert errors[0]["loc"] == ["userName"]
        assert "hunter2" not in repr(exc_info.value.context)

    @pytest.mark.asyncio
    async def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            await self.registry.dispatch("echo", {"userName": "rn", "secret": "x", "admin": True}, self.ctx)

    @pytest.mark.asyncio
    async def test_missing_params_treated_as_empty_object(self):
        with pytest.raises(ValidationError):
            await self.registry.dispatch("echo", None, self.ctx)

    @pytest.mark.asyncio
    async def test_anonymous_caller_refused(self):
        with pytest.raises(NotAuthorizedError):
            await self.registry.dispatch("private", {}, self.ctx)
        self.handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authenticated_caller_allowed(self):
        ctx = MethodContext(db=AsyncMock(), user=MagicMock(id="u1"), token="t")
        assert await self.registry.dispatch("private", {}, ctx) == "ok"
        assert ctx.user_id == "u1"
