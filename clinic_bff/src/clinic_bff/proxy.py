# src/clinic_bff/proxy.py

import json
import logging
import typing
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ValidationError

from .auth_utils import ACCESS_TOKEN_COOKIE
from .config import Settings, get_settings
from .errors import (
    INVALID_DATA_MESSAGE,
    ConfigurationError,
    config_error_response,
    internal_error_response,
    unauthenticated_response,
    validation_error_response,
)
from .upstream import bearer_headers, get_http_client, relay

logger = logging.getLogger(__name__)

QueryParams = typing.List[typing.Tuple[str, str]]


class BodyMode(str, Enum):
    NONE = "none"
    JSON = "json"          # body required; invalid JSON is an internal error
    OPTIONAL = "optional"  # forwarded only when the request carries valid JSON


@dataclass(frozen=True)
class ProxyRoute:
    """
    Declarative description of one authenticated pass-through route.

    `path` is the local path (relative to the router prefix) and `target` the
    upstream path; both use `{name}` placeholders for path parameters.
    """
    name: str
    method: str
    path: str
    target: str
    body: BodyMode = BodyMode.NONE
    schema: typing.Optional[typing.Type[BaseModel]] = None
    validation_message: str = INVALID_DATA_MESSAGE
    # None means "forward the incoming query string on GET only".
    forward_query: typing.Optional[bool] = None
    query: typing.Optional[typing.Callable[[Request], QueryParams]] = None

    def upstream_path(self, path_params: typing.Mapping[str, str]) -> str:
        quoted = {key: quote(str(value), safe="") for key, value in path_params.items()}
        return self.target.format(**quoted)

    def upstream_query(self, request: Request) -> QueryParams:
        if self.query is not None:
            return self.query(request)
        forward = self.method == "GET" if self.forward_query is None else self.forward_query
        return list(request.query_params.multi_items()) if forward else []


class _InvalidBody(Exception):
    def __init__(self, error: ValidationError):
        super().__init__(str(error))
        self.error = error


async def _read_body(route: ProxyRoute, request: Request) -> typing.Tuple[bool, typing.Any]:
    """Returns (has_body, payload) for the upstream call."""
    if route.body is BodyMode.NONE:
        return False, None

    if route.body is BodyMode.OPTIONAL:
        raw = await request.body()
        if not raw.strip():
            return False, None
        try:
            payload = json.loads(raw)
        except ValueError:
            return False, None
    else:
        payload = await request.json()

    if route.schema is not None:
        try:
            model = route.schema.model_validate(payload)
        except ValidationError as e:
            raise _InvalidBody(e)
        payload = model.model_dump(mode="json", exclude_unset=True)
    return True, payload


def build_endpoint(route: ProxyRoute) -> typing.Callable[..., typing.Awaitable[Response]]:
    tag = f"PROXY {route.name}"

    async def endpoint(
            request: Request,
            settings: Settings = Depends(get_settings),
            client: httpx.AsyncClient = Depends(get_http_client)
    ) -> Response:
        try:
            api_url = settings.require_api_url()

            access_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
            if not access_token:
                return unauthenticated_response()

            try:
                has_body, payload = await _read_body(route, request)
            except _InvalidBody as e:
                return validation_error_response(e.error, route.validation_message)

            url = f"{api_url}{route.upstream_path(request.path_params)}"
            request_kwargs: typing.Dict[str, typing.Any] = {"headers": bearer_headers(access_token)}
            query = route.upstream_query(request)
            if query:
                request_kwargs["params"] = query
            if has_body:
                request_kwargs["json"] = payload

            logger.debug(f"{tag}: {route.method} {url}")
            upstream = await client.request(route.method, url, **request_kwargs)
            if upstream.is_server_error:
                logger.warning(f"{tag}: upstream answered {upstream.status_code}")
            return relay(upstream)
        except ConfigurationError as e:
            return config_error_response(e, tag)
        except Exception:
            logger.exception(f"{tag}: unexpected error")
            return internal_error_response()

    endpoint.__name__ = route.name.replace(".", "_").replace("-", "_")
    return endpoint


def include_routes(
        router: APIRouter,
        routes: typing.Iterable[ProxyRoute],
        tags: typing.Optional[typing.List[str]] = None
) -> APIRouter:
    """Registers routes in the given order; list static segments before `{param}` ones."""
    for route in routes:
        router.add_api_route(
            route.path,
            build_endpoint(route),
            methods=[route.method],
            name=route.name,
            tags=tags,
        )
    return router
