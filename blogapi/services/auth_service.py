"""
Auth service: issues, verifies and revokes identity tokens.

A token carries only the subject (user) id and an expiry.  Verification
runs in a fixed order:

1. no token            -> ``MissingToken``
2. token was revoked   -> ``RevokedToken`` (checked before the signature)
3. bad signature/expiry/malformed -> ``InvalidOrExpiredToken``
4. subject gone        -> ``SubjectNotFound``
5. pending updates for the subject are reconciled before the record is
   returned, so an authenticated caller always sees converged lists.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.exceptions import (
    InvalidOrExpiredToken,
    MissingToken,
    RevokedToken as RevokedTokenError,
    SubjectNotFound,
)
from blogapi.models import RevokedToken, User
from blogapi.security import decode_token, encode_token
from blogapi.services import pending_update_service

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """Result of a successful verification."""

    token: str
    subject_id: str
    user: User


def issue_token(subject_id: str, expires_delta: timedelta | None = None) -> str:
    return encode_token(subject_id, expires_delta)


async def is_revoked(db: AsyncSession, token: str) -> bool:
    return await db.get(RevokedToken, token) is not None


async def verify_token(db: AsyncSession, token: str | None) -> Identity:
    if not token:
        raise MissingToken()

    if await is_revoked(db, token):
        raise RevokedTokenError()

    try:
        claims = decode_token(token)
    except ExpiredSignatureError:
        logger.warning("Rejected expired token")
        raise InvalidOrExpiredToken() from None
    except JWTError as exc:
        logger.warning("Rejected invalid token: %s", exc)
        raise InvalidOrExpiredToken() from None

    subject_id = claims.get("sub")
    if not subject_id:
        logger.warning("Rejected token without subject")
        raise InvalidOrExpiredToken()

    user = await db.get(User, subject_id)
    if user is None:
        raise SubjectNotFound()

    reconciled = await pending_update_service.reconcile(db, user.id)
    return Identity(token=token, subject_id=subject_id, user=reconciled or user)


async def revoke_token(db: AsyncSession, token: str) -> None:
    """Add *token* to the revocation log.  Revoking twice is not an error."""
    if await is_revoked(db, token):
        return
    db.add(RevokedToken(token=token))
    await db.flush()
    logger.info("Token revoked")
