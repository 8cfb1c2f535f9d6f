"""
Checklist Manifesto Backend — Remote Methods Package
======================================================

What:  The remote-callable methods and the registry that dispatches them.

Method Inventory:
    - accounts.py:     login, accounts.login, accounts.logout,
                       user.create, user.update, user.changePassword
    - diagnostics.py:  testConnection, testDatabase, getServerLogs

build_registry() is called once by create_app(); the returned table is
stored on app.state and is the only way a method name reaches a handler.
"""

from app.methods import accounts, diagnostics
from app.methods.registry import MethodContext, MethodRegistry


def build_registry() -> MethodRegistry:
    registry = MethodRegistry()
    accounts.register(registry)
    diagnostics.register(registry)
    return registry


__all__ = ["MethodContext", "MethodRegistry", "build_registry"]
