"""
Outbound calls to third-party services.

- Story API: random story lists and story details for ``/article/random``.
- WeChat code2session: exchanges a mini-program login code.

One ``httpx.AsyncClient`` is opened per request through
:func:`get_http_client` and closed when the request ends.  A hung upstream
only stalls the request that issued the call.
"""
import logging
from typing import Any, AsyncIterator

import httpx

from blogapi.config import settings
from blogapi.exceptions import CollaboratorError

logger = logging.getLogger(__name__)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
        yield client


async def _get_json(client: httpx.AsyncClient, url: str, params: dict[str, Any]) -> dict:
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        logger.error("Request to %s failed: %s", url, exc)
        raise CollaboratorError() from exc

    try:
        payload = resp.json()
    except ValueError:
        payload = {}
    if resp.status_code != 200:
        logger.error("Request to %s returned %d", url, resp.status_code)
        raise CollaboratorError(payload.get("msg") if isinstance(payload, dict) else None)
    if not isinstance(payload, dict):
        raise CollaboratorError()
    return payload


# ---------------------------------------------------------------------------
# Story API
# ---------------------------------------------------------------------------

def _story_auth() -> dict[str, str]:
    return {"app_id": settings.STORY_APP_ID, "app_secret": settings.STORY_APP_SECRET}


async def fetch_story_list(client: httpx.AsyncClient, type_id: int, page: int = 1) -> list[dict]:
    payload = await _get_json(
        client,
        f"{settings.STORY_API_URL}/list",
        {"type_id": type_id, "page": page, **_story_auth()},
    )
    return payload.get("data") or []


async def fetch_story_detail(client: httpx.AsyncClient, story_id: Any) -> dict:
    payload = await _get_json(
        client,
        f"{settings.STORY_API_URL}/details",
        {"story_id": story_id, **_story_auth()},
    )
    return payload.get("data")


# ---------------------------------------------------------------------------
# WeChat
# ---------------------------------------------------------------------------

async def code_to_session(client: httpx.AsyncClient, code: str) -> dict:
    """Exchange a WeChat login *code*; an ``errcode`` reply is an upstream failure."""
    payload = await _get_json(
        client,
        settings.WECHAT_CODE2SESSION_URL,
        {
            "appid": settings.WECHAT_APP_ID,
            "secret": settings.WECHAT_APP_SECRET,
            "js_code": code,
            "grant_type": "authorization_code",
        },
    )
    if payload.get("errcode"):
        logger.error("WeChat code2session error %s: %s", payload.get("errcode"), payload.get("errmsg"))
        raise CollaboratorError(payload.get("errmsg"))
    return payload
