# Routes package init
"""
Checklist Manifesto Backend — API Routes Package
==================================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - methods.py:  POST /api/methods/{name}   (call a remote method)
                   GET  /api/methods          (list registered method names)
    - health.py:   GET  /health               (service health check)

Design Principle:
    Routes are THIN. Method semantics live in app/methods (dispatch) and
    app/services (business rules), which are testable without HTTP.
"""
