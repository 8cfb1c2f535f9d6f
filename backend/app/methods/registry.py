"""
Checklist Manifesto Backend — Remote Method Registry
======================================================

What:  Explicit table of remote-callable methods, built once at startup.
Why:   Each method has one typed signature (params model → handler → result)
       instead of being looked up by reflection on an arbitrary name. The
       table is the complete inventory of what a client can invoke.
How:   register() adds an entry; dispatch() resolves the name, enforces the
       auth requirement, validates params with the entry's pydantic model,
       and awaits the handler.

Dispatch Flow:
    POST /api/methods/{name}  →  registry.dispatch(name, body, ctx)
        1. Unknown name                    → MethodNotFoundError (404)
        2. requires_auth and no user       → NotAuthorizedError  (401)
        3. params fail model validation    → ValidationError     (400)
        4. handler(params, ctx)            → result (JSON-encoded by route)
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import MethodNotFoundError, NotAuthorizedError, ValidationError
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class MethodContext:
    """Per-call context handed to every handler."""

    db: AsyncSession
    user: Optional[User] = None
    token: Optional[str] = None
    request_id: str = ""

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        return self.user.id if self.user is not None else None


Handler = Callable[[Any, MethodContext], Awaitable[Any]]


@dataclass(frozen=True)
class MethodEntry:
    name: str
    params_model: Type[pydantic.BaseModel]
    handler: Handler
    requires_auth: bool = False


@dataclass
class MethodRegistry:
    """Name → MethodEntry table. Registration is explicit and one-shot."""

    _methods: Dict[str, MethodEntry] = field(default_factory=dict)

    def register(
        self,
        name: str,
        params_model: Type[pydantic.BaseModel],
        handler: Handler,
        requires_auth: bool = False,
    ) -> None:
        if name in self._methods:
            raise ValueError(f"Method '{name}' is already registered")
        self._methods[name] = MethodEntry(
            name=name,
            params_model=params_model,
            handler=handler,
            requires_auth=requires_auth,
        )

    def get(self, name: str) -> MethodEntry:
        try:
            return self._methods[name]
        except KeyError:
            raise MethodNotFoundError(name) from None

    def names(self) -> List[str]:
        return sorted(self._methods)

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    async def dispatch(
        self, name: str, raw_params: Optional[Dict[str, Any]], ctx: MethodContext
    ) -> Any:
        entry = self.get(name)

        if entry.requires_auth and ctx.user is None:
            raise NotAuthorizedError(context={"method": name})

        try:
            params = entry.params_model.model_validate(raw_params or {})
        except pydantic.ValidationError as e:
            # loc/msg/type only: "input" would echo passwords back
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise ValidationError(
                message=f"Invalid parameters for method '{name}'",
                context={"method": name, "errors": errors},
            ) from None

        logger.debug("[%s] Dispatching method %s", ctx.request_id, name)
        return await entry.handler(params, ctx)
