# Middleware package init
"""
Chirpline Backend: Middleware Package
=======================================

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [Rate Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later layer, 429 bodies and the catch-all
       500 handler read the correlation ID it sets
    2. Logging: method, path, status, duration with the request ID,
       rejected requests included
    3. Rate Limit: abusive requests are rejected before any routing
"""
