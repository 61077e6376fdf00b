from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from blogapi.database import Base

# Relationship-list columns on User. Each holds a comma-joined string of ids
# or NULL; see ``blogapi.string_set``.
USER_LIST_FIELDS: tuple[str, ...] = (
    "comment_list",
    "collected_article_list",
    "published_article_list",
    "loved_article_list",
    "follower_list",
    "following_list",
    "read_history_list",
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    avatar: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gender: Mapped[Optional[Gender]] = mapped_column(Enum(Gender), nullable=True)

    comment_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    collected_article_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published_article_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    loved_article_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Users this user follows.
    follower_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Users following this user; written through the pending update queue.
    following_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    read_history_list: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(Base):
    __tablename__ = "articles"

    __table_args__ = (
        # Author feed, newest first
        Index("ix_articles_author_id_create_time", "author_id", "create_time"),
        # Curated feed
        Index("ix_articles_selected_create_time", "selected", "create_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    vote_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    create_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    article_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("articles.id"), nullable=False, index=True
    )
    vote_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    create_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# PendingUpdate: deferred mutation of another user's relationship list
# ---------------------------------------------------------------------------
class PendingUpdate(Base):
    __tablename__ = "pending_updates"

    __table_args__ = (
        Index("ix_pending_updates_user_id_create_time", "user_id", "create_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_delete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Python-side default keeps microsecond precision for ordering.
    create_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# RevokedToken: append-only logout log keyed by the raw token
# ---------------------------------------------------------------------------
class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    token: Mapped[str] = mapped_column(String(1024), primary_key=True)
    create_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
