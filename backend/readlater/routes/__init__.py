# Routes package init
"""
ReadLater Backend — API Routes Package
=======================================

Route Inventory:
    - content.py: /api/users/{user_id}/...   (save, read, delete, list, stats, rotate)
    - keys.py:    POST /api/keys              (new master key)
    - health.py:  GET  /health                (storage health check)

Routes are THIN: they read ids, bodies and X-Master-Key, call StorageService,
and return its result. Error responses come from the handlers in main.py.
"""
