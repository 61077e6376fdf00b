from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.config import settings
from blogapi.database import get_db
from blogapi.dependencies import get_identity, parse_body
from blogapi.responses import send_response
from blogapi.schemas import CommentCreateRequest, CommentUpdateRequest
from blogapi.services import comment_service
from blogapi.services.auth_service import Identity

router = APIRouter(prefix=f"{settings.API_PREFIX}/comment", tags=["comments"])


@router.post("/create")
async def create_comment(
    request: Request,
    data: CommentCreateRequest = Depends(parse_body(CommentCreateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.create_comment(db, identity.user, data.content, data.article_id)
    return send_response(request, 200, {"msg": "Comment created", "data": comment})


@router.post("/update")
async def vote_comment(
    request: Request,
    id: str | None = Query(None),
    data: CommentUpdateRequest = Depends(parse_body(CommentUpdateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.vote_comment(db, id, data.vote_number)
    return send_response(request, 200, {"msg": "Comment updated", "data": comment})


@router.get("/get")
async def get_comment(
    request: Request,
    id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment(db, id)
    return send_response(request, 200, {"msg": "Comment fetched", "data": comment})
