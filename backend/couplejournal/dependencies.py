"""
CoupleJournal Backend - Request Dependencies
==============================================

What:  FastAPI dependencies shared by the routes: the auth guard and access
       to the FileService created in the lifespan.
How:   Protected routes declare `user: User = Depends(get_current_user)`.
       The resolved user is a handler argument; nothing is stored on the
       request object.

Auth Guard Contract:
    1. Read "Authorization: Bearer <token>"; absent → 401
    2. Verify signature and expiry; invalid/expired → 401
    3. Load the user named by `sub`; unknown or deactivated → 401
"""

import logging
import uuid
from typing import Optional

import jwt
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from couplejournal.database import get_db_session
from couplejournal.exceptions import UnauthorizedError
from couplejournal.models.user import User
from couplejournal.security import decode_access_token
from couplejournal.services.file_service import FileService
from couplejournal.services.user_service import user_service

logger = logging.getLogger(__name__)

NO_TOKEN = "Access denied. No token provided."
INVALID_TOKEN = "Token is not valid."


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an Authorization header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> User:
    """
    Resolve the bearer token to an active user.

    Raises:
        UnauthorizedError: on every failure; the client logs out on 401
    """
    token = _bearer_token(authorization)
    if token is None:
        raise UnauthorizedError(message=NO_TOKEN)

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload["sub"]))
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(message=INVALID_TOKEN, context={"reason": "expired"})
    except (jwt.InvalidTokenError, ValueError):
        raise UnauthorizedError(message=INVALID_TOKEN, context={"reason": "invalid"})

    user = await user_service.get_by_id(db, user_id)
    if user is None or not user.is_active:
        logger.info("Rejected token for unknown or inactive user %s", user_id)
        raise UnauthorizedError(message=INVALID_TOKEN, context={"reason": "inactive"})
    return user


def get_file_service(request: Request) -> FileService:
    """The FileService built at startup."""
    return request.app.state.file_service
