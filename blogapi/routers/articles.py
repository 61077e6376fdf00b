import httpx
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.clients import get_http_client
from blogapi.config import settings
from blogapi.database import get_db
from blogapi.dependencies import PaginationParams, get_identity, parse_body
from blogapi.responses import send_response
from blogapi.schemas import ArticleCreateRequest, ArticleUpdateRequest
from blogapi.services import article_service
from blogapi.services.auth_service import Identity

router = APIRouter(prefix=f"{settings.API_PREFIX}/article", tags=["articles"])


@router.post("/create")
async def create_article(
    request: Request,
    data: ArticleCreateRequest = Depends(parse_body(ArticleCreateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create_article(db, identity.user, data.content)
    return send_response(request, 200, {"msg": "Article created", "data": article})


@router.post("/update")
async def update_article(
    request: Request,
    id: str | None = Query(None),
    data: ArticleUpdateRequest = Depends(parse_body(ArticleUpdateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_article(
        db, identity.user, id, content=data.content, vote_number=data.vote_number
    )
    return send_response(request, 200, {"msg": "Article updated", "data": article})


@router.get("/get")
async def get_article(
    request: Request,
    id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.get_article(db, id)
    return send_response(request, 200, {"msg": "Article fetched", "data": article})


@router.get("/getByFollower")
async def list_by_followed(
    request: Request,
    pagination: PaginationParams = Depends(),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    result = await article_service.list_by_followed(
        db, identity.user, pagination.page, pagination.per_page
    )
    if result is None:
        return send_response(request, 404, {"msg": "Not following anyone", "data": []}, hasMore=False)
    items, has_more = result
    if not items:
        return send_response(request, 404, {"msg": "No published articles", "data": []}, hasMore=False)
    return send_response(request, 200, {"msg": "Articles fetched", "data": items}, hasMore=has_more)


@router.get("/getByCreateTime")
async def list_latest(
    request: Request,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    items, has_more = await article_service.list_latest(db, pagination.page, pagination.per_page)
    return send_response(request, 200, {"msg": "Articles fetched", "data": items}, hasMore=has_more)


@router.get("/getBySelected")
async def list_selected(
    request: Request,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    items, has_more = await article_service.list_selected(db, pagination.page, pagination.per_page)
    return send_response(request, 200, {"msg": "Articles fetched", "data": items}, hasMore=has_more)


@router.get("/random")
async def random_articles(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    stories = await article_service.random_stories(client)
    return send_response(request, 200, {"msg": "Articles fetched", "data": stories})
