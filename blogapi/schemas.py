"""
Request bodies.

Field names mirror the wire format clients already send (camelCase for
the user endpoints, snake_case elsewhere).  Required-field checks live in
the services so that the error messages stay endpoint specific.
"""
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- User ---

class RegisterRequest(_Body):
    name: Optional[str] = None
    avatar: Optional[str] = None
    isPassword: bool = False
    phone: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(_Body):
    name: Optional[str] = None
    isPassword: bool = False
    phone: Optional[str] = None
    password: Optional[str] = None


class WechatLoginRequest(_Body):
    code: Optional[str] = None


class UserUpdateRequest(_Body):
    name: Optional[str] = None
    avatar: Optional[str] = None
    password: Optional[str] = None
    gender: Optional[Union[int, str]] = None
    collectedArticleId: Optional[str] = None
    lovedArticleId: Optional[str] = None
    publishedArticleId: Optional[str] = None
    readArticleId: Optional[str] = None
    followerUserId: Optional[str] = None
    followingUserId: Optional[str] = None
    isDelete: bool = False


# --- Article ---

class ArticleCreateRequest(_Body):
    content: Optional[str] = None


class ArticleUpdateRequest(_Body):
    content: Optional[str] = None
    # Raw JSON value; blogapi.votes decides what counts as a vote.
    vote_number: Any = None


# --- Comment ---

class CommentCreateRequest(_Body):
    content: Optional[str] = None
    article_id: Optional[str] = None


class CommentUpdateRequest(_Body):
    # Raw JSON value; blogapi.votes decides what counts as a vote.
    vote_number: Any = None


# --- Pending update ---

class PendingUpdateCreateRequest(_Body):
    user_id: Optional[str] = None
    value: Optional[str] = None
    creator_id: Optional[str] = None
    is_delete: bool = False
