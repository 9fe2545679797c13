"""
CoupleJournal Backend - User and Auth Schemas
===============================================

What:  Pydantic models for the register/login/current-user contract, plus the
       explicit validation functions for registration and login input.
How:   Request fields are all optional at the schema level so that a missing
       field surfaces as our own 400 "Please provide all required fields"
       instead of FastAPI's generic 422. `validate_*` functions return the
       first problem as a message (or None), and the service decides what to
       raise.

Field names follow the mobile client: `displayName` on the wire,
`display_name` in Python.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """Body of POST /api/register."""

    username: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    email: Optional[str] = None

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    """Body of POST /api/login. `username` may also hold an email address."""

    username: Optional[str] = None
    password: Optional[str] = None


def validate_registration(
    request: RegisterRequest,
    min_password_length: int,
) -> Optional[str]:
    """Return the first problem with a registration request, or None."""
    if (
        not (request.username or "").strip()
        or not request.password
        or not (request.display_name or "").strip()
    ):
        return "Please provide all required fields"
    if len(request.password) < min_password_length:
        return f"Password must be at least {min_password_length} characters long"
    return None


def validate_login(request: LoginRequest) -> Optional[str]:
    """Return the first problem with a login request, or None."""
    if not request.username or not request.password:
        return "Please provide username and password"
    return None


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim an email; blank or missing emails become None (stored as NULL)."""
    if email is None:
        return None
    email = email.strip()
    return email or None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserOut(BaseModel):
    """Public view of a user returned with a token. Never includes the hash."""

    id: uuid.UUID
    username: str
    display_name: str = Field(alias="displayName")
    email: Optional[str] = None

    model_config = {"from_attributes": True, "populate_by_name": True}


class RegisterResponse(BaseModel):
    message: str = "User created successfully"
    token: str
    user: UserOut


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class CurrentUserResponse(BaseModel):
    """GET /api/user."""

    id: uuid.UUID
    username: str
    display_name: str = Field(alias="displayName")

    model_config = {"from_attributes": True, "populate_by_name": True}
