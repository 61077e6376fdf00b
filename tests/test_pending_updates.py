"""
Deferred list updates: enqueue, reconcile ordering and the follow flow.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.exceptions import StorageError, ValidationError
from blogapi.models import PendingUpdate, User
from blogapi.services import pending_update_service

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def _create_user(db: AsyncSession, name: str = "queue_user", following: str | None = None) -> User:
    user = User(name=name, avatar="https://cdn.example.com/a.png", following_list=following)
    db.add(user)
    await db.commit()
    return user


async def _pending_count(db: AsyncSession, user_id: str) -> int:
    q = select(func.count()).select_from(PendingUpdate).where(PendingUpdate.user_id == user_id)
    return (await db.execute(q)).scalar_one()


# ---------------------------------------------------------------------------
# enqueue
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_enqueue_returns_row(db_session: AsyncSession):
    pending = await pending_update_service.enqueue(db_session, "u-1", "fan-1", "fan-1")

    assert pending["id"] is not None
    assert pending["user_id"] == "u-1"
    assert pending["value"] == "fan-1"
    assert pending["is_delete"] is False
    assert pending["create_time"] is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("args", [
    ("", "v", "c"),
    ("u", None, "c"),
    ("u", "v", ""),
])
async def test_enqueue_requires_all_fields(db_session: AsyncSession, args):
    with pytest.raises(ValidationError):
        await pending_update_service.enqueue(db_session, *args)


# ---------------------------------------------------------------------------
# reconcile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reconcile_applies_newest_first(db_session: AsyncSession):
    """
    t1 add A, t2 remove A, t3 add B, applied t3 -> t2 -> t1:
    add B -> "B"; remove A misses -> "B"; add A -> "B,A".
    """
    user = await _create_user(db_session)
    db_session.add_all([
        PendingUpdate(user_id=user.id, value="A", creator_id="A", create_time=T0 + timedelta(seconds=1)),
        PendingUpdate(user_id=user.id, value="A", creator_id="A", is_delete=True,
                      create_time=T0 + timedelta(seconds=2)),
        PendingUpdate(user_id=user.id, value="B", creator_id="B", create_time=T0 + timedelta(seconds=3)),
    ])
    await db_session.commit()

    reconciled = await pending_update_service.reconcile(db_session, user.id)
    await db_session.commit()

    assert reconciled is not None
    assert reconciled.following_list == "B,A"
    assert await _pending_count(db_session, user.id) == 0


@pytest.mark.asyncio
async def test_reconcile_composes_on_current_list(db_session: AsyncSession):
    user = await _create_user(db_session, following="X")
    db_session.add_all([
        PendingUpdate(user_id=user.id, value="Y", creator_id="Y", create_time=T0 + timedelta(seconds=1)),
        PendingUpdate(user_id=user.id, value="X", creator_id="X", is_delete=True,
                      create_time=T0 + timedelta(seconds=2)),
    ])
    await db_session.commit()

    reconciled = await pending_update_service.reconcile(db_session, user.id)

    # remove X -> None; add Y -> "Y"
    assert reconciled.following_list == "Y"


@pytest.mark.asyncio
async def test_reconcile_breaks_time_ties_by_newest_row(db_session: AsyncSession):
    user = await _create_user(db_session)
    db_session.add_all([
        PendingUpdate(user_id=user.id, value="first", creator_id="c", create_time=T0),
        PendingUpdate(user_id=user.id, value="second", creator_id="c", create_time=T0),
    ])
    await db_session.commit()

    reconciled = await pending_update_service.reconcile(db_session, user.id)

    assert reconciled.following_list == "second,first"


@pytest.mark.asyncio
async def test_reconcile_without_pending_returns_none(db_session: AsyncSession):
    user = await _create_user(db_session, following="keep")

    assert await pending_update_service.reconcile(db_session, user.id) is None

    await db_session.refresh(user)
    assert user.following_list == "keep"


@pytest.mark.asyncio
async def test_reconcile_only_touches_target_user(db_session: AsyncSession):
    target = await _create_user(db_session, name="target")
    other = await _create_user(db_session, name="other")
    db_session.add_all([
        PendingUpdate(user_id=target.id, value="fan", creator_id="fan"),
        PendingUpdate(user_id=other.id, value="fan", creator_id="fan"),
    ])
    await db_session.commit()

    await pending_update_service.reconcile(db_session, target.id)
    await db_session.commit()

    assert await _pending_count(db_session, target.id) == 0
    assert await _pending_count(db_session, other.id) == 1
    assert other.following_list is None


@pytest.mark.asyncio
async def test_reconcile_for_missing_user_keeps_rows(db_session: AsyncSession):
    db_session.add(PendingUpdate(user_id="ghost", value="fan", creator_id="fan"))
    await db_session.commit()

    assert await pending_update_service.reconcile(db_session, "ghost") is None
    assert await _pending_count(db_session, "ghost") == 1


@pytest.mark.asyncio
async def test_concurrent_reconcile_with_nothing_pending(session_factory):
    async with session_factory() as setup:
        user = await _create_user(setup, following="A")

    async def _run():
        async with session_factory() as session:
            return await pending_update_service.reconcile(session, user.id)

    results = await asyncio.gather(_run(), _run())

    assert results == [None, None]


@pytest.mark.asyncio
async def test_reconcile_failure_keeps_rows_already_applied(db_session: AsyncSession, monkeypatch):
    """The newest row is committed before the second one fails."""
    user = await _create_user(db_session)
    db_session.add_all([
        PendingUpdate(user_id=user.id, value="A", creator_id="A", create_time=T0),
        PendingUpdate(user_id=user.id, value="B", creator_id="B", create_time=T0 + timedelta(seconds=1)),
    ])
    await db_session.commit()

    original_commit = AsyncSession.commit
    commits = 0

    async def commit_failing_on_second(self):
        nonlocal commits
        commits += 1
        if commits == 2:
            raise SQLAlchemyError("disk full")
        await original_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", commit_failing_on_second)

    with pytest.raises(StorageError):
        await pending_update_service.reconcile(db_session, user.id)

    monkeypatch.undo()
    await db_session.refresh(user)
    assert user.following_list == "B"
    assert await _pending_count(db_session, user.id) == 1

    # The remaining row is picked up by the next call.
    reconciled = await pending_update_service.reconcile(db_session, user.id)
    assert reconciled.following_list == "B,A"
    assert await _pending_count(db_session, user.id) == 0


# ---------------------------------------------------------------------------
# HTTP: follow / unfollow and /api/temp/create
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_follow_is_applied_when_target_is_read(
    async_client: AsyncClient, db_session: AsyncSession, make_user
):
    fan_id, fan_headers = await make_user("fan")
    star_id, _ = await make_user("star")

    resp = await async_client.post(
        "/api/user/update", json={"followerUserId": star_id}, headers=fan_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["follower_list"] == [star_id]
    assert await _pending_count(db_session, star_id) == 1

    resp = await async_client.get("/api/user/get", params={"id": star_id})
    assert resp.status_code == 200
    assert resp.json()["data"]["following_list"] == [fan_id]
    assert await _pending_count(db_session, star_id) == 0


@pytest.mark.asyncio
async def test_reconciliation_survives_failed_request(
    async_client: AsyncClient, db_session: AsyncSession, make_user
):
    """The token check applies pending rows even if the endpoint then fails."""
    fan_id, fan_headers = await make_user("fan3")
    star_id, star_headers = await make_user("star3")
    await async_client.post("/api/user/update", json={"followerUserId": star_id}, headers=fan_headers)

    resp = await async_client.post(
        "/api/article/update", params={"id": "nope"},
        json={"vote_number": "1"}, headers=star_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["msg"] == "Article does not exist"

    assert await _pending_count(db_session, star_id) == 0
    star = await db_session.get(User, star_id)
    assert star.following_list == fan_id


@pytest.mark.asyncio
async def test_unfollow_is_applied_when_target_logs_in(async_client: AsyncClient, make_user):
    fan_id, fan_headers = await make_user("fan2")
    star_id, _ = await make_user("star2")

    await async_client.post("/api/user/update", json={"followerUserId": star_id}, headers=fan_headers)
    await async_client.get("/api/user/get", params={"id": star_id})
    resp = await async_client.post(
        "/api/user/update",
        json={"followerUserId": star_id, "isDelete": True},
        headers=fan_headers,
    )
    assert resp.json()["data"]["follower_list"] == []

    resp = await async_client.post("/api/user/login", json={
        "isPassword": True, "name": "star2", "password": "s3cret-pass",
    })
    assert resp.status_code == 200
    assert resp.json()["data"]["following_list"] == []


@pytest.mark.asyncio
async def test_following_unknown_user_is_rejected(async_client: AsyncClient, make_user):
    _, headers = await make_user("lonely")

    resp = await async_client.post(
        "/api/user/update", json={"followerUserId": "no-such-user"}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json()["msg"] == "Followed user does not exist"


@pytest.mark.asyncio
async def test_temp_create_endpoint(async_client: AsyncClient, make_user):
    user_id, headers = await make_user("temp_owner")

    resp = await async_client.post("/api/temp/create", json={
        "user_id": user_id, "value": "someone", "creator_id": "someone",
    }, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["value"] == "someone"

    resp = await async_client.get("/api/user/get", params={"id": user_id})
    assert resp.json()["data"]["following_list"] == ["someone"]


@pytest.mark.asyncio
async def test_temp_create_requires_fields(async_client: AsyncClient, make_user):
    _, headers = await make_user("temp_owner2")

    resp = await async_client.post("/api/temp/create", json={"user_id": "x"}, headers=headers)
    assert resp.status_code == 400
