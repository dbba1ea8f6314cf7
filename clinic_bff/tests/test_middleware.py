from __future__ import annotations

import httpx
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from conftest import FakeUpstream, cookie_header, make_settings, make_token, raw_token

NEW_PAIR = {"accessToken": "access-new", "refreshToken": "refresh-new", "expiresIn": 1800}


def _assert_redirected_to_login(response: httpx.Response) -> None:
    assert response.status_code == 307
    assert response.headers["location"] == "http://testserver/login"
    for name in ("accessToken", "refreshToken"):
        assert "Max-Age=0" in cookie_header(response, name)


def test_no_refresh_token_redirects_to_login(client: TestClient, upstream: FakeUpstream) -> None:
    client.cookies.set("accessToken", make_token(3600))

    response = client.get("/dashboard/users?page=2", follow_redirects=False)

    _assert_redirected_to_login(response)
    assert upstream.calls == []


def test_valid_access_token_passes_without_refresh(client: TestClient, upstream: FakeUpstream) -> None:
    client.cookies.set("accessToken", make_token(3600))
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard/patients", follow_redirects=False)

    assert response.status_code == 200
    assert "Pacientes" in response.text
    assert upstream.calls == []
    assert response.headers.get_list("set-cookie") == []


@pytest.mark.parametrize(
    "access_token",
    [make_token(10), make_token(-300), "garbage", raw_token('{"exp": 1e999}'), raw_token('{"exp": NaN}'), None],
    ids=["expiring", "expired", "unparseable", "infinite-exp", "nan-exp", "missing"],
)
def test_expiring_or_missing_token_is_refreshed_once(
    client: TestClient, upstream: FakeUpstream, access_token
) -> None:
    upstream.on("POST", "/auth/refresh", json={"data": NEW_PAIR})
    if access_token is not None:
        client.cookies.set("accessToken", access_token)
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    assert response.status_code == 200
    assert len(upstream.calls_to("POST", "/auth/refresh")) == 1
    access = cookie_header(response, "accessToken")
    refresh = cookie_header(response, "refreshToken")
    assert access.startswith("accessToken=access-new;")
    assert refresh.startswith("refreshToken=refresh-new;")
    assert "Max-Age=1800" in access
    assert "Max-Age=1800" in refresh


def test_page_served_after_refresh_sees_rotated_pair(client: TestClient, upstream: FakeUpstream) -> None:
    async def echo_cookies(request: Request) -> dict:
        return dict(request.cookies)

    client.app.add_api_route("/dashboard/session/cookies", echo_cookies)
    upstream.on("POST", "/auth/refresh", json={"data": NEW_PAIR})
    client.cookies.set("accessToken", make_token(5))
    client.cookies.set("refreshToken", "refresh-1")
    client.cookies.set("theme", "dark")

    response = client.get("/dashboard/session/cookies", follow_redirects=False)

    assert response.status_code == 200
    assert response.json() == {"accessToken": "access-new", "refreshToken": "refresh-new", "theme": "dark"}


def test_rotated_pair_unfit_for_headers_redirects_to_login(client: TestClient, upstream: FakeUpstream) -> None:
    upstream.on("POST", "/auth/refresh", json={"data": {"accessToken": "acceso-✓", "refreshToken": "refresh-new"}})
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    _assert_redirected_to_login(response)
    assert len(upstream.calls_to("POST", "/auth/refresh")) == 1


def test_rotated_cookies_default_to_seven_days(client: TestClient, upstream: FakeUpstream) -> None:
    upstream.on("POST", "/auth/refresh", json={"data": {"accessToken": "a", "refreshToken": "r"}})
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    assert "Max-Age=604800" in cookie_header(response, "accessToken")


def test_rejected_refresh_redirects_to_login(client: TestClient, upstream: FakeUpstream) -> None:
    upstream.on("POST", "/auth/refresh", status_code=401, json={"message": "Refresh token inválido"})
    client.cookies.set("accessToken", make_token(5))
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard/users", follow_redirects=False)

    _assert_redirected_to_login(response)
    assert len(upstream.calls_to("POST", "/auth/refresh")) == 1


def test_refresh_missing_tokens_redirects_to_login(client: TestClient, upstream: FakeUpstream) -> None:
    upstream.on("POST", "/auth/refresh", json={"data": {"accessToken": "access-new"}})
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    _assert_redirected_to_login(response)


def test_refresh_exception_redirects_to_login(client: TestClient, upstream: FakeUpstream) -> None:
    upstream.on("POST", "/auth/refresh", raises=httpx.ReadTimeout("timed out"))
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    _assert_redirected_to_login(response)


def test_missing_api_url_redirects_to_login(make_client, upstream: FakeUpstream) -> None:
    client = make_client(make_settings(API_URL=None))
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard", follow_redirects=False)

    _assert_redirected_to_login(response)
    assert upstream.calls == []


def test_threshold_is_configurable(make_client, upstream: FakeUpstream) -> None:
    client = make_client(make_settings(REFRESH_THRESHOLD_SECONDS=7200))
    upstream.on("POST", "/auth/refresh", json={"data": NEW_PAIR})
    client.cookies.set("accessToken", make_token(3600))
    client.cookies.set("refreshToken", "refresh-1")

    client.get("/dashboard", follow_redirects=False)

    assert len(upstream.calls_to("POST", "/auth/refresh")) == 1


@pytest.mark.parametrize("path", ["/login", "/api/auth/logout", "/dashboards"])
def test_paths_outside_the_dashboard_are_not_gated(client: TestClient, upstream: FakeUpstream, path: str) -> None:
    method = "POST" if path.startswith("/api") else "GET"

    response = client.request(method, path, follow_redirects=False)

    assert response.status_code != 307
    assert upstream.calls_to("POST", "/auth/refresh") == []


def test_unknown_dashboard_section_is_not_found(client: TestClient) -> None:
    client.cookies.set("accessToken", make_token(3600))
    client.cookies.set("refreshToken", "refresh-1")

    response = client.get("/dashboard/billing")

    assert response.status_code == 404


def test_root_redirects_to_dashboard(client: TestClient) -> None:
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"
