"""Staff login."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.errors import AuthError, ValidationError
from pos_backend.core.security import (
    create_access_token,
    hash_password,
    needs_rehash,
    verify_password,
)
from pos_backend.database import get_db, unit_of_work
from pos_backend.models import User
from pos_backend.schemas import ErrorResponse, LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/login", tags=["Auth"])


@router.post(
    "",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Staff Login",
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Exchange username and password for a bearer token."""
    if not credentials.username or not credentials.password:
        raise ValidationError("Usuario y contraseña son requeridos")

    result = await db.execute(select(User).where(User.username == credentials.username).limit(1))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.info(f"Failed login for {credentials.username}")
        raise AuthError("Usuario o contraseña incorrectos")

    if needs_rehash(user.password_hash):
        async with unit_of_work(db):
            user.password_hash = hash_password(credentials.password)
        logger.info(f"Password hash of {user.username} upgraded to argon2")

    token = create_access_token(user.id, user.username)
    logger.info(f"Staff {user.username} logged in")
    return LoginResponse(token=token, username=user.username)
