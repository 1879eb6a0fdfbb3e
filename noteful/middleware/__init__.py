# Middleware package init
"""
Noteful Backend — Middleware Package
=====================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Access Log] → [Login Throttle] → [CORS] → Route

    1. Request ID first so every later log line can carry it
    2. Access log wraps everything below it, so the duration and the final
       status (429 from the throttle included) are what the client saw
    3. Login throttle only looks at POST /api/login
"""
