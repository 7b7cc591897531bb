"""Staff authentication: password hashing, bearer tokens and the route guard."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Header, Request

from pos_backend.core.config import get_settings
from pos_backend.core.errors import AuthError, AuthForbiddenError
from pos_backend.schemas import StaffIdentity

logger = logging.getLogger(__name__)

ph = PasswordHasher()

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    return ph.hash(password)


def is_legacy_hash(hashed_password: str) -> bool:
    """bcrypt hashes written by the previous POS server."""
    return hashed_password.startswith(BCRYPT_PREFIXES)


def needs_rehash(hashed_password: str) -> bool:
    """True when the stored hash should be replaced by a fresh argon2 hash."""
    if is_legacy_hash(hashed_password):
        return True
    try:
        return ph.check_needs_rehash(hashed_password)
    except InvalidHashError:
        return False


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plaintext password against a stored hash.

    argon2 hashes are verified with argon2-cffi; legacy bcrypt hashes
    (``$2a$``/``$2b$``/``$2y$``) with bcrypt.
    """
    if is_legacy_hash(hashed_password):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    try:
        return ph.verify(hashed_password, plain_password)
    except (VerifyMismatchError, InvalidHashError):
        return False
    except VerificationError as exc:
        logger.error(f"argon2 verification error: {exc}")
        raise


def create_access_token(
    user_id: int,
    username: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed token carrying the staff identity."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    claims = {"id": user_id, "username": username, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> StaffIdentity:
    """
    Verify a token and return its identity.

    Raises:
        AuthError: token expired (401)
        AuthForbiddenError: bad signature, malformed token or claims (403)
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expirado")
    except jwt.PyJWTError:
        raise AuthForbiddenError("Token inválido")

    try:
        return StaffIdentity(id=claims["id"], username=claims["username"])
    except (KeyError, ValueError):
        raise AuthForbiddenError("Token inválido")


async def require_staff(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> StaffIdentity:
    """
    FastAPI dependency guarding staff endpoints.

    The verified identity is returned and also stored on ``request.state.user``.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Token requerido o mal formado")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise AuthError("Token requerido o mal formado")

    identity = decode_access_token(token)
    request.state.user = identity
    return identity
