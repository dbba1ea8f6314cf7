# src/clinic_bff/upstream.py

import json
import typing

import httpx
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from .config import Settings


def create_http_client(
        settings: Settings,
        transport: typing.Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS, transport=transport)


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def bearer_headers(access_token: str) -> typing.Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def read_upstream(response: httpx.Response) -> typing.Any:
    """
    Reads an upstream body without failing on non-JSON payloads.
    JSON content types are parsed; anything else gets a best-effort JSON parse
    of its text and falls back to {"raw": text}.
    """
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return {"message": "Respuesta JSON inválida"}

    text = response.text
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def relay(response: httpx.Response) -> Response:
    """Mirrors the upstream status; 204 is passed through without a body."""
    if response.status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JSONResponse(read_upstream(response), status_code=response.status_code)
