"""
Comment service: comment creation, up-votes and single reads.

Comment text is immutable once created; only ``vote_number`` changes.
Creating a comment records its id on both the author's ``comment_list``
and the article's ``comments`` list.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi import string_set
from blogapi.cache import cache
from blogapi.exceptions import NotFoundError, ValidationError
from blogapi.models import Article, Comment, User
from blogapi.votes import is_vote_present, parse_vote_delta


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "author_id": comment.author_id,
        "article_id": comment.article_id,
        "vote_number": comment.vote_number,
        "create_time": comment.create_time.isoformat() if comment.create_time else None,
    }


async def _load_comment(db: AsyncSession, comment_id: str) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment does not exist")
    return comment


async def create_comment(
    db: AsyncSession,
    author: User,
    content: str | None,
    article_id: str | None,
) -> dict:
    if not content or not article_id:
        raise ValidationError("content and article_id are required")

    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Invalid article id")

    comment = Comment(content=content, author_id=author.id, article_id=article_id)
    db.add(comment)
    await db.flush()

    string_set.update_field(author, "comment_list", comment.id)
    string_set.update_field(article, "comments", comment.id)
    await db.flush()

    await cache.invalidate_article(article_id)
    return _comment_to_dict(comment)


async def vote_comment(db: AsyncSession, comment_id: str | None, vote_number) -> dict:
    if not comment_id or not is_vote_present(vote_number):
        raise ValidationError("comment id and vote_number are required")
    delta = parse_vote_delta(vote_number)

    comment = await _load_comment(db, comment_id)
    comment.vote_number = (comment.vote_number or 0) + delta
    await db.flush()
    return _comment_to_dict(comment)


async def get_comment(db: AsyncSession, comment_id: str | None) -> dict:
    if not comment_id:
        raise ValidationError("id is required")
    return _comment_to_dict(await _load_comment(db, comment_id))
