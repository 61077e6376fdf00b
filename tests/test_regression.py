"""
Regression tests for list and counter edge cases.

1. Removing an id that is not in a list must leave the list untouched
   (it must not drop the last element instead)
2. Removing the only id must clear the column to NULL, not ""
3. Queued updates must compose, not each overwrite from a stale snapshot
4. A comment vote must add one, not reset the counter to 1
5. X-Query-Count must report the actual query count
6. CORS must not set allow_credentials=true with allow_origins=*
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi import string_set
from blogapi.models import Article, Comment, PendingUpdate, User
from blogapi.services import comment_service, pending_update_service


# ---------------------------------------------------------------------------
# 1. Remove-miss is a no-op
# ---------------------------------------------------------------------------

def test_remove_missing_id_keeps_last_element():
    assert string_set.remove("a,b,c", "zzz") == "a,b,c"


@pytest.mark.asyncio
async def test_unfollow_of_unfollowed_user_keeps_list(async_client: AsyncClient, make_user):
    _, headers = await make_user("keeper")
    kept_id, _ = await make_user("kept")
    other_id, _ = await make_user("never_followed")

    await async_client.post("/api/user/update", json={"followerUserId": kept_id}, headers=headers)
    resp = await async_client.post(
        "/api/user/update",
        json={"followerUserId": other_id, "isDelete": True},
        headers=headers,
    )
    assert resp.json()["data"]["follower_list"] == [kept_id]


# ---------------------------------------------------------------------------
# 2. Removing the only id clears the column
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_removing_only_id_stores_null(db_session: AsyncSession):
    user = User(name="single", avatar="a", collected_article_list="only")
    db_session.add(user)
    await db_session.flush()

    string_set.update_field(user, "collected_article_list", "only", is_delete=True)
    await db_session.commit()
    await db_session.refresh(user)

    assert user.collected_article_list is None


# ---------------------------------------------------------------------------
# 3. Queued updates compose
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reconcile_keeps_every_queued_addition(db_session: AsyncSession):
    """Three queued follows must all survive, not just the oldest one."""
    user = User(name="popular", avatar="a")
    db_session.add(user)
    await db_session.flush()
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for i, fan in enumerate(["f1", "f2", "f3"]):
        db_session.add(PendingUpdate(
            user_id=user.id, value=fan, creator_id=fan, create_time=base + timedelta(minutes=i),
        ))
    await db_session.commit()

    reconciled = await pending_update_service.reconcile(db_session, user.id)

    assert string_set.decode(reconciled.following_list) == ["f3", "f2", "f1"]


# ---------------------------------------------------------------------------
# 4. Comment votes accumulate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_vote_adds_to_existing_count(db_session: AsyncSession):
    user = User(name="commenter", avatar="a")
    db_session.add(user)
    await db_session.flush()
    article = Article(content="c", author_id=user.id)
    db_session.add(article)
    await db_session.flush()
    comment = Comment(content="x", author_id=user.id, article_id=article.id, vote_number=5)
    db_session.add(comment)
    await db_session.flush()

    result = await comment_service.vote_comment(db_session, comment.id, "1")

    assert result["vote_number"] == 6


# ---------------------------------------------------------------------------
# 5. X-Query-Count reports actual query count
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_query_count_header_exact_for_article_detail(async_client: AsyncClient, make_user):
    """With the cache disabled, an article read is a single primary-key SELECT."""
    _, headers = await make_user("qc_author")
    resp = await async_client.post("/api/article/create", json={"content": "QC"}, headers=headers)
    article_id = resp.json()["data"]["id"]

    resp = await async_client.get("/api/article/get", params={"id": article_id})
    assert resp.status_code == 200
    count = int(resp.headers["x-query-count"])
    assert count == 1, f"Expected exactly 1 query for article detail, got {count}"
    assert float(resp.headers["x-response-time-ms"]) >= 0


# ---------------------------------------------------------------------------
# 6. CORS headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    resp = await async_client.options(
        "/api/article/getByCreateTime",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true", (
        "CORS must not combine allow_origins=* with allow_credentials=true"
    )


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["cache"]["connected"] is False
