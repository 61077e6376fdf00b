"""
Article service: publishing, editing, voting and the article feeds.

Design notes
------------
- Single-article reads and the public feeds go through the cache-aside
  layer; every write invalidates the feeds plus the touched detail entry.
- The ``comments`` column uses the same comma-joined encoding as the user
  lists and is decoded to an array on the way out.
- A vote is a read-modify-write of ``vote_number`` with no locking, so two
  simultaneous votes can lose one increment.
- Service functions flush but do not commit; ``get_db`` owns the
  transaction.
"""
import asyncio
import logging
import random

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi import clients, string_set
from blogapi.cache import cache
from blogapi.exceptions import NotFoundError, PermissionDenied, ValidationError
from blogapi.models import Article, User
from blogapi.votes import is_vote_present, parse_vote_delta

logger = logging.getLogger(__name__)

# Story categories 4 and 10 are empty upstream; both fall back to 7.
_STORY_TYPE_COUNT = 11
_STORY_TYPE_FALLBACKS = {4: 7, 10: 7}


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _article_to_dict(article: Article) -> dict:
    return {
        "id": article.id,
        "content": article.content,
        "author_id": article.author_id,
        "vote_number": article.vote_number,
        "comments": string_set.decode(article.comments),
        "selected": article.selected,
        "create_time": article.create_time.isoformat() if article.create_time else None,
    }


async def _load_article(db: AsyncSession, article_id: str | None) -> Article:
    if not article_id:
        raise ValidationError("article id is required")
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article does not exist")
    return article


async def _page(db: AsyncSession, q, page: int, per_page: int) -> tuple[list[dict], bool]:
    q = (
        q.order_by(Article.create_time.desc(), Article.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    articles = (await db.execute(q)).scalars().all()
    return [_article_to_dict(a) for a in articles], len(articles) == per_page


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, author: User, content: str | None) -> dict:
    """Publish an article and record it in the author's published list."""
    if not content:
        raise ValidationError("content is required")

    article = Article(content=content, author_id=author.id)
    db.add(article)
    await db.flush()

    string_set.update_field(author, "published_article_list", article.id)
    await db.flush()

    await cache.invalidate_article()
    return _article_to_dict(article)


async def update_article(
    db: AsyncSession,
    user: User,
    article_id: str | None,
    content: str | None = None,
    vote_number=None,
) -> dict:
    """
    Edit the content (author only) and/or up-vote the article.

    A vote also adds the article to the voter's ``loved_article_list``.
    """
    article = await _load_article(db, article_id)

    delta = parse_vote_delta(vote_number) if is_vote_present(vote_number) else 0

    if content:
        if article.author_id != user.id:
            raise PermissionDenied("Only the author can edit this article")
        article.content = content

    if delta:
        article.vote_number = (article.vote_number or 0) + delta
        string_set.update_field(user, "loved_article_list", article.id)

    await db.flush()
    await cache.invalidate_article(article.id)
    return _article_to_dict(article)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, article_id: str | None) -> dict:
    async def load() -> dict:
        return _article_to_dict(await _load_article(db, article_id))

    return await cache.article(article_id, load)


async def list_by_followed(
    db: AsyncSession, user: User, page: int, per_page: int
) -> tuple[list[dict], bool] | None:
    """
    Newest articles written by the users *user* follows.

    Returns None when the user follows nobody.  Not cached: the result is
    specific to the caller.
    """
    followed = string_set.decode(user.follower_list)
    if not followed:
        return None
    q = select(Article).where(Article.author_id.in_(followed))
    return await _page(db, q, page, per_page)


async def list_latest(db: AsyncSession, page: int, per_page: int) -> tuple[list[dict], bool]:
    return await _cached_feed(db, "latest", select(Article), page, per_page)


async def list_selected(db: AsyncSession, page: int, per_page: int) -> tuple[list[dict], bool]:
    q = select(Article).where(Article.selected.is_(True))
    return await _cached_feed(db, "selected", q, page, per_page)


async def _cached_feed(db: AsyncSession, feed: str, q, page: int, per_page: int) -> tuple[list[dict], bool]:
    return await cache.feed_page(feed, page, per_page, lambda: _page(db, q, page, per_page))


async def random_stories(client: httpx.AsyncClient) -> list[dict]:
    """
    Fetch one page of a random story category and the details of every
    story on it.  Any upstream failure aborts the whole call.
    """
    type_id = random.randint(1, _STORY_TYPE_COUNT)
    type_id = _STORY_TYPE_FALLBACKS.get(type_id, type_id)

    stories = await clients.fetch_story_list(client, type_id)
    logger.debug("Fetching %d stories from category %d", len(stories), type_id)
    return list(
        await asyncio.gather(
            *(clients.fetch_story_detail(client, story.get("storyId")) for story in stories)
        )
    )
