"""
Checklist Manifesto Backend — Application Package Initializer
===============================================================

What: Server and client-side support code for the checklist application:
      account management, session authentication, connection monitoring
      and diagnostics.

Architecture Note:

    ┌─────────────────────────────────────┐
    │    Routes (HTTP) + Methods (RPC)    │  ← transport, dispatch, auth gate
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← accounts, sessions, diagnostics
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    app.client sits outside this stack: it is the connection monitor and
    transport used by a client process talking to this server.
"""

__version__ = "1.0.0"
