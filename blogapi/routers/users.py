import httpx
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.clients import get_http_client
from blogapi.config import settings
from blogapi.database import get_db
from blogapi.dependencies import get_identity, parse_body
from blogapi.responses import send_response
from blogapi.schemas import LoginRequest, RegisterRequest, UserUpdateRequest, WechatLoginRequest
from blogapi.services import user_service
from blogapi.services.auth_service import Identity

router = APIRouter(prefix=f"{settings.API_PREFIX}/user", tags=["users"])


@router.post("/register")
async def register(
    request: Request,
    data: RegisterRequest = Depends(parse_body(RegisterRequest)),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.register(db, data)
    return send_response(request, 200, {"msg": "User registered", "data": user})


@router.post("/login")
async def login(
    request: Request,
    data: LoginRequest = Depends(parse_body(LoginRequest)),
    db: AsyncSession = Depends(get_db),
):
    token, user = await user_service.login(db, data)
    return send_response(request, 200, {"msg": "Login succeeded", "data": user}, token=token)


@router.post("/login/wechat")
async def login_wechat(
    request: Request,
    data: WechatLoginRequest = Depends(parse_body(WechatLoginRequest)),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    session = await user_service.login_wechat(client, data.code)
    return send_response(request, 200, {"msg": "Login succeeded"}, userSecret=session)


@router.post("/logout")
async def logout(
    request: Request,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    await user_service.logout(db, identity)
    return send_response(request, 200, "Logout succeeded")


@router.get("/get")
async def get_user(
    request: Request,
    id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, id)
    return send_response(request, 200, {"msg": "User fetched", "data": user})


@router.post("/update")
async def update_user(
    request: Request,
    data: UserUpdateRequest = Depends(parse_body(UserUpdateRequest)),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(db, identity.user, data)
    return send_response(request, 200, {"msg": "User updated", "data": user})


@router.get("/find")
async def find_user(
    request: Request,
    name: str | None = Query(None),
    phone: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    exists = await user_service.user_exists(db, name=name, phone=phone)
    msg = "User exists" if exists else "User does not exist"
    return send_response(request, 200, {"msg": msg, "data": exists})
