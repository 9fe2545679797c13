"""
CoupleJournal Backend - Application Package Initializer
=========================================================

What: Marks the `couplejournal` directory as a Python package.
Who:  Imported by uvicorn (couplejournal.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes + Auth Guard (API Layer)   │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (Credential/Entry/File)   │  ← Business rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
