# Middleware package init
"""
Campus Portal Backend — Middleware Package
============================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [CORS/GZip]
            → [Exception Boundary] → [Authentication] → Route pipeline

    1. Rate Limit FIRST: reject abusive clients before any processing
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: sees the final status, including boundary-produced errors
    4. Exception Boundary: the single place unhandled exceptions are answered
    5. Authentication: X-User / X-User-Roles → request.auth.scopes
"""
