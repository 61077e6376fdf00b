from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.config import settings
from blogapi.database import get_db
from blogapi.dependencies import get_identity, parse_body
from blogapi.responses import send_response
from blogapi.schemas import PendingUpdateCreateRequest
from blogapi.services import pending_update_service
from blogapi.services.auth_service import Identity

router = APIRouter(prefix=f"{settings.API_PREFIX}/temp", tags=["pending-updates"])


@router.post("/create")
async def create_pending_update(
    request: Request,
    data: PendingUpdateCreateRequest = Depends(parse_body(PendingUpdateCreateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    pending = await pending_update_service.enqueue(
        db,
        user_id=data.user_id,
        value=data.value,
        creator_id=data.creator_id,
        is_delete=data.is_delete,
    )
    return send_response(request, 200, {"msg": "Pending update recorded", "data": pending})
