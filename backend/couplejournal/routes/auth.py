"""
CoupleJournal Backend - Auth Route Handlers
=============================================

What:  POST /api/register, POST /api/login and GET /api/user.
How:   Thin handlers: decode the body, call UserService, issue a token.
Who:   Called by the mobile client's sign-up, login and profile screens.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from couplejournal.database import get_db_session
from couplejournal.dependencies import get_current_user
from couplejournal.models.user import User
from couplejournal.schemas.common import ErrorResponse
from couplejournal.schemas.user import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserOut,
)
from couplejournal.security import create_access_token
from couplejournal.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing fields, short password or duplicate user", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> RegisterResponse:
    """
    Register and log in at once.

    The returned token is immediately usable, so the client skips the
    login screen after sign-up.
    """
    user = await user_service.create_user(
        db,
        username=body.username,
        password=body.password,
        display_name=body.display_name,
        email=body.email,
    )
    return RegisterResponse(
        token=create_access_token(user.id),
        user=UserOut.model_validate(user),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Invalid login credentials", "model": ErrorResponse},
    },
    summary="Exchange username (or email) and password for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> LoginResponse:
    user = await user_service.authenticate(db, body.username, body.password)
    return LoginResponse(
        token=create_access_token(user.id),
        user=UserOut.model_validate(user),
    )


@router.get(
    "/user",
    response_model=CurrentUserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The authenticated user",
)
async def current_user(user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse.model_validate(user)
