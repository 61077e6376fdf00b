"""
Password hashing (pwdlib / Argon2) and signed token encoding (python-jose).

Hashing is CPU bound, so the async wrappers push it to Starlette's
threadpool to keep the event loop free for other requests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from pwdlib import PasswordHash
from starlette.concurrency import run_in_threadpool

from blogapi.config import settings

password_hash = PasswordHash.recommended()


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return password_hash.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_hash.verify(plain_password, hashed_password)


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def encode_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """
    Sign a token whose only claim besides ``exp`` is the subject id.

    *expires_delta* defaults to ``settings.TOKEN_EXPIRE_SECONDS``.
    """
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.TOKEN_EXPIRE_SECONDS)
    expire = datetime.now(timezone.utc) + expires_delta
    claims = {"sub": str(subject), "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises ``jose.JWTError`` (``ExpiredSignatureError`` for expiry) on any
    failure; callers decide how much of that to expose.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
