# Middleware package init
"""
Fieldbook Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can be correlated
    2. Logging: records status and duration with the request ID

    Responses unwind in reverse, so the X-Request-ID header is added last.
"""
