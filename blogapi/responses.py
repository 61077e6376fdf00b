import json
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response


def wants_json(request: Request) -> bool:
    """True when the client sent a JSON body (``Content-Type: application/json``)."""
    return "application/json" in request.headers.get("content-type", "")


def send_response(request: Request, status_code: int, payload: str | dict[str, Any], **extra: Any) -> Response:
    """
    Build the ``{code, msg?, data?, ...}`` envelope.

    A string payload becomes the ``msg``; a dict payload is merged into the
    envelope together with *extra* keys (``token``, ``hasMore`` ...).
    JSON requests get a ``JSONResponse``; anything else receives the same
    body serialised as plain text.
    """
    if isinstance(payload, str):
        body: dict[str, Any] = {"code": status_code, "msg": payload}
    else:
        body = {"code": status_code, **payload}
    body.update(extra)

    if wants_json(request):
        return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
    return Response(
        content=json.dumps(body, ensure_ascii=False, default=str),
        status_code=status_code,
        media_type="text/plain; charset=utf-8",
    )
