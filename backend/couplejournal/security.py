"""
CoupleJournal Backend - Password Hashing and Bearer Tokens
============================================================

What:  Password hashing (passlib, argon2) and JWT creation/validation (PyJWT).
Who:   UserService hashes and verifies passwords; the auth routes issue tokens;
       the auth guard in dependencies.py decodes them.

Token format:
    HS256 JWT whose only application claim is `sub` (the user id), plus the
    registered `iat` / `exp` claims. Validity window: ACCESS_TOKEN_EXPIRE_DAYS
    (7 days by default). There is no refresh token; the client logs in again.
"""

import datetime as dt
import uuid
from typing import Any, Dict, Optional

import jwt  # PyJWT
from passlib.context import CryptContext

from couplejournal.config import settings

# Argon2 only; passlib upgrades hashes from deprecated schemes automatically
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password.

    Returns:
        Salted one-way hash, safe to store in the users table.
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Check a plain text password against a stored hash.

    passlib compares digests in constant time and returns False (rather than
    raising) for a wrong password.
    """
    return pwd_context.verify(plain, hashed)


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: Optional[dt.timedelta] = None,
) -> str:
    """
    Create a signed bearer token for `user_id`.

    Args:
        user_id: Subject of the token
        expires_delta: Override the configured validity window (tests)

    Returns:
        Encoded JWT string
    """
    now = dt.datetime.now(dt.timezone.utc)
    lifetime = expires_delta or dt.timedelta(days=settings.access_token_expire_days)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a bearer token.

    Raises:
        jwt.ExpiredSignatureError: token has expired
        jwt.InvalidTokenError: bad signature, malformed token, missing claims
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
