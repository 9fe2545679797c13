"""
CoupleJournal Backend - API Routes Package
============================================

Route Inventory:
    - auth.py:     POST /api/register, POST /api/login, GET /api/user
    - entries.py:  POST/GET /api/entries
                   POST   /api/entries/{id}/like
                   POST   /api/entries/{id}/comment
                   DELETE /api/entries/{id}
                   DELETE /api/entries/{entry_id}/comments/{comment_id}
    - health.py:   GET /health

Routes stay thin: decode the request, call a service, return its result.
"""
