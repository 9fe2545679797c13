"""
CoupleJournal Backend - Services Layer
========================================

What:  Business logic between the routes (HTTP) and the models (persistence).
How:   Services are stateless; each call receives the request's AsyncSession
       and, where files are involved, the FileService from app.state.

Service Inventory:
    - UserService:  registration, login, user lookup, deactivation
    - EntryService: create/list/like/comment/delete journal entries
    - FileService:  upload validation, storage and removal
"""
