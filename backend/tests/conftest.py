"""
CoupleJournal Backend - Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool) with all tables created, and uploads go to a temporary
       directory.

Fixture Hierarchy:
    database         fresh Database with tables created
    ├── db_session   AsyncSession for service-level tests
    └── app          FastAPI app with database + file_service on app.state
        └── test_client   HTTPX AsyncClient over ASGITransport
    file_service     FileService rooted in tmp_path
    make_user        creates users directly through UserService
    register_user    registers users through the API, returns the JSON body
"""

import os
import tempfile

# Override settings BEFORE any couplejournal import reads them
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["UPLOAD_ROOT"] = tempfile.mkdtemp(prefix="couplejournal_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from couplejournal.config import settings
from couplejournal.database import Database
from couplejournal.services.file_service import FileService
from couplejournal.services.user_service import user_service


# ══════════════════════════════════════════════════════════════════════════
# Persistence
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def file_service(tmp_path):
    """FileService writing to a per-test directory."""
    return FileService(upload_root=str(tmp_path / "uploads"))


@pytest.fixture
def make_user(db_session):
    """
    Create a user directly in the test session.

    Usage:
        alice = await make_user("alice")
    """

    async def _make(username, password="secret1", display_name=None, email=None):
        return await user_service.create_user(
            db_session,
            username=username,
            password=password,
            display_name=display_name or username.capitalize(),
            email=email,
        )

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(database):
    """
    The application with test state injected.

    ASGITransport does not run the lifespan, so the Database and FileService
    it would build are assigned here instead.
    """
    from couplejournal.main import app as application

    application.state.database = database
    application.state.file_service = FileService(upload_root=settings.upload_root)
    return application


@pytest_asyncio.fixture
async def test_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_user(test_client):
    """
    Register through POST /api/register and return the response body.

    Usage:
        alice = await register_user("alice")
        headers = auth_headers(alice["token"])
    """

    async def _register(username, password="secret1", display_name=None, email=None):
        payload = {
            "username": username,
            "password": password,
            "displayName": display_name or username.capitalize(),
        }
        if email is not None:
            payload["email"] = email
        response = await test_client.post("/api/register", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Build an Authorization header from a register/login response body."""

    def _headers(body):
        return auth_headers(body["token"])

    return _headers
