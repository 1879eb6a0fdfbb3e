# Routes package init
"""
Noteful Backend — API Routes Package
=====================================

Route Inventory:
    - auth.py:         POST /api/users, /api/login, /api/refresh
    - notes.py:        /api/notes (list/search, detail, create, update, delete)
    - collections.py:  /api/folders and /api/tags (same five endpoints each)
    - health.py:       GET /health

Routes stay thin: read the request, pass the trusted owner id and the body
to a service, set status code and Location. Ownership and integrity rules
live in `noteful.services`.
"""
