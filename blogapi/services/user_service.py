"""
User service: registration, login, profile reads and list mutations.

Relationship lists are stored as comma-joined strings and decoded to
arrays only when serialised.  Following another user writes the caller's
own ``follower_list`` directly and queues the matching change of the
target's ``following_list`` (see ``pending_update_service``).
"""
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi import clients, string_set
from blogapi.config import settings
from blogapi.exceptions import NotFoundError, ValidationError
from blogapi.models import USER_LIST_FIELDS, Gender, User
from blogapi.schemas import LoginRequest, RegisterRequest, UserUpdateRequest
from blogapi.security import hash_password_async, verify_password_async
from blogapi.services import auth_service, pending_update_service

logger = logging.getLogger(__name__)

# Request field -> list column, for the list mutations of /user/update.
_LIST_UPDATES: tuple[tuple[str, str], ...] = (
    ("collectedArticleId", "collected_article_list"),
    ("lovedArticleId", "loved_article_list"),
    ("publishedArticleId", "published_article_list"),
    ("readArticleId", "read_history_list"),
    ("followerUserId", "follower_list"),
    ("followingUserId", "following_list"),
)

_GENDER_CODES = {"0": Gender.MALE, "1": Gender.FEMALE}


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User; the password hash is never included."""
    data = {
        "id": user.id,
        "name": user.name,
        "avatar": user.avatar,
        "phone": user.phone,
        "gender": user.gender.value if user.gender else None,
    }
    for field in USER_LIST_FIELDS:
        data[field] = string_set.decode(getattr(user, field))
    return data


async def _find_by(db: AsyncSession, **filters) -> User | None:
    q = select(User).filter_by(**filters).limit(1)
    return (await db.execute(q)).scalars().first()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: RegisterRequest) -> dict:
    """
    Create a user by phone (default) or by name and password
    (``isPassword``).  A phone or name already in use is rejected with 401.
    """
    name = data.name or settings.DEFAULT_NAME
    avatar = data.avatar or settings.DEFAULT_AVATAR

    if not data.isPassword:
        if not data.phone:
            raise ValidationError("phone is required")
        if await _find_by(db, phone=data.phone):
            raise ValidationError("User already registered", status_code=401)
        user = User(name=name, avatar=avatar, phone=data.phone)
    else:
        if not data.name or not data.password:
            raise ValidationError("name and password are required")
        if await _find_by(db, name=data.name):
            raise ValidationError("User already registered", status_code=401)
        user = User(name=name, avatar=avatar, password=await hash_password_async(data.password))

    db.add(user)
    await db.flush()
    logger.info("Registered user %s", user.id)
    return _user_to_dict(user)


async def login(db: AsyncSession, data: LoginRequest) -> tuple[str, dict]:
    """
    Authenticate by phone or by name and password; return ``(token, user)``.

    Phone login trusts a registered number as-is: SMS code verification is
    handled outside this service.
    """
    if not data.isPassword:
        if not data.phone:
            raise ValidationError("phone is required")
        user = await _find_by(db, phone=data.phone)
        if user is None:
            raise ValidationError("User not registered", status_code=401)
    else:
        if not data.name or not data.password:
            raise ValidationError("name and password are required")
        user = await _find_by(db, name=data.name)
        if user is None:
            raise ValidationError("User not registered", status_code=401)
        if not user.password:
            raise ValidationError("User has no password set")
        if not await verify_password_async(data.password, user.password):
            raise ValidationError("Wrong name or password", status_code=401)

    token = auth_service.issue_token(user.id)
    reconciled = await pending_update_service.reconcile(db, user.id)
    return token, _user_to_dict(reconciled or user)


async def login_wechat(client: httpx.AsyncClient, code: str | None) -> dict:
    if not code:
        raise ValidationError("code is required")
    return await clients.code_to_session(client, code)


async def logout(db: AsyncSession, identity: auth_service.Identity) -> None:
    await auth_service.revoke_token(db, identity.token)


async def get_user(db: AsyncSession, user_id: str | None) -> dict:
    """Return any user's profile after draining their pending updates."""
    if not user_id or user_id in ("undefined", "null"):
        raise ValidationError("id is required")
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User does not exist")
    reconciled = await pending_update_service.reconcile(db, user.id)
    return _user_to_dict(reconciled or user)


async def update_user(db: AsyncSession, user: User, data: UserUpdateRequest) -> dict:
    """
    Apply profile edits and list mutations to the authenticated *user*.

    ``isDelete`` applies to every list mutation in the same request.
    ``followerUserId`` additionally queues the reverse change on the
    followed user's ``following_list``.
    """
    follows_other = bool(data.followerUserId) and data.followerUserId != user.id
    if follows_other and await db.get(User, data.followerUserId) is None:
        raise NotFoundError("Followed user does not exist")

    if data.name:
        user.name = data.name
    if data.avatar:
        user.avatar = data.avatar
    if data.password:
        user.password = await hash_password_async(data.password)
    if data.gender is not None and str(data.gender) in _GENDER_CODES:
        user.gender = _GENDER_CODES[str(data.gender)]

    for request_field, column in _LIST_UPDATES:
        string_set.update_field(user, column, getattr(data, request_field), data.isDelete)

    if follows_other:
        await pending_update_service.enqueue(
            db,
            user_id=data.followerUserId,
            value=user.id,
            creator_id=user.id,
            is_delete=data.isDelete,
        )

    await db.flush()
    return _user_to_dict(user)


async def user_exists(db: AsyncSession, name: str | None = None, phone: str | None = None) -> bool:
    """Existence check by name (preferred when both are given) or phone."""
    if not name and not phone:
        raise ValidationError("phone or name is required", status_code=401)
    if name:
        return await _find_by(db, name=name) is not None
    return await _find_by(db, phone=phone) is not None
