from __future__ import annotations

import base64
import json as json_module
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from clinic_bff.config import Settings
from clinic_bff.main import create_app

API_URL = "https://api.clinic.test/api/v1"
API_PATH = "/api/v1"

Answer = Union[Callable[[httpx.Request], httpx.Response], Exception]


class FakeUpstream:
    """Stands in for the clinic API: records every call and answers from a route table."""

    def __init__(self) -> None:
        self.calls: List[httpx.Request] = []
        self._answers: Dict[Tuple[str, str], Answer] = {}

    def on(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        raises: Optional[Exception] = None,
    ) -> None:
        if raises is not None:
            self._answers[(method, API_PATH + path)] = raises
            return

        def answer(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text, headers=headers)
            if json is not None:
                return httpx.Response(status_code, json=json, headers=headers)
            return httpx.Response(status_code, headers=headers)

        self._answers[(method, API_PATH + path)] = answer

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if c.method == method and c.url.path == API_PATH + path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        answer = self._answers.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"message": "Not Found", "statusCode": 404})
        if isinstance(answer, Exception):
            raise answer
        return answer(request)


def make_token(expires_in: int, **claims: Any) -> str:
    payload = {"sub": "user-1", "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def raw_token(payload: str) -> str:
    """An unsigned-looking JWT whose payload segment is exactly `payload`."""
    def segment(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    header = segment(b'{"alg": "HS256", "typ": "JWT"}')
    return f"{header}.{segment(payload.encode())}.{segment(b'not-a-real-signature')}"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {"API_URL": API_URL, "ENVIRONMENT": "development"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def forwarded_json(request: httpx.Request) -> Any:
    return json_module.loads(request.read())


def set_cookie_headers(response: httpx.Response) -> List[str]:
    return response.headers.get_list("set-cookie")


def cookie_header(response: httpx.Response, name: str) -> Optional[str]:
    for header in set_cookie_headers(response):
        if header.startswith(f"{name}="):
            return header
    return None


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def make_client(upstream: FakeUpstream):
    opened: List[TestClient] = []

    def factory(settings: Optional[Settings] = None) -> TestClient:
        app = create_app(settings or make_settings(), transport=httpx.MockTransport(upstream))
        client = TestClient(app)
        client.__enter__()
        opened.append(client)
        return client

    yield factory
    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture()
def authed_client(client: TestClient) -> TestClient:
    client.cookies.set("accessToken", "access-abc")
    return client
