import json
from typing import Callable, TypeVar

import pydantic
from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.config import settings
from blogapi.database import get_db
from blogapi.exceptions import ValidationError
from blogapi.responses import wants_json
from blogapi.services import auth_service

BodyT = TypeVar("BodyT", bound=pydantic.BaseModel)


class PaginationParams:
    """
    ``page`` / ``perpage`` query parameters shared by the article feeds.

    ``perpage`` is clamped to ``settings.MAX_PER_PAGE``.
    """

    def __init__(
        self,
        page: int = Query(settings.DEFAULT_PAGE, ge=1, description="Page number (1-based)."),
        perpage: int = Query(settings.DEFAULT_PER_PAGE, ge=1, description="Articles per page."),
    ) -> None:
        self.page = page
        self.per_page = min(perpage, settings.MAX_PER_PAGE)


def get_bearer_token(authorization: str | None = Header(None)) -> str | None:
    """Return the token part of ``Authorization: Bearer <token>``, if any."""
    if not authorization:
        return None
    _, _, token = authorization.partition(" ")
    return token.strip() or None


async def get_identity(
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> auth_service.Identity:
    return await auth_service.verify_token(db, token)


def parse_body(model: type[BodyT]) -> Callable:
    """
    Build a dependency that reads the request body into *model*.

    JSON and form-encoded bodies are both accepted; schema errors become a
    400 ``ValidationError``.
    """

    async def _parse(request: Request) -> BodyT:
        if wants_json(request):
            raw = await request.body()
            try:
                data = json.loads(raw) if raw else {}
            except ValueError:
                raise ValidationError("Malformed JSON body") from None
        else:
            data = dict(await request.form())
        if not isinstance(data, dict):
            raise ValidationError("Request body must be an object")
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "body"
            raise ValidationError(f"{field}: {first['msg']}") from None

    return _parse
