# src/clinic_bff/middleware.py

import logging
import typing
from enum import Enum

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response as StarletteResponse

from . import auth_utils
from .config import Settings
from .session_data import SessionTokens

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    NO_REFRESH_TOKEN = "no_refresh_token"
    TOKEN_VALID = "token_valid"
    TOKEN_EXPIRING_OR_MISSING = "token_expiring_or_missing"
    REFRESH_SUCCEEDED = "refresh_succeeded"
    REFRESH_FAILED = "refresh_failed"


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Guards every page under the dashboard prefix.

    Requests without a refresh token are sent to the login page. A present,
    non-expiring access token lets the request through untouched. Otherwise the
    refresh token is exchanged once for a new pair, which is written to the
    outgoing response; if that fails the session is cleared and the browser is
    redirected to login.
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    def guards(self, path: str) -> bool:
        prefix = self.settings.DASHBOARD_PATH_PREFIX
        return path == prefix or path.startswith(prefix + "/")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> StarletteResponse:
        if not self.guards(request.url.path):
            return await call_next(request)

        state, tokens = await self.evaluate(request)
        logger.debug(f"GATE: {request.url.path} -> {state.value}")

        if state is GateState.TOKEN_VALID:
            return await call_next(request)

        if state is GateState.REFRESH_SUCCEEDED and tokens is not None:
            _replace_request_cookies(request, tokens)
            response = await call_next(request)
            auth_utils.set_session_cookies(
                response,
                tokens.accessToken,
                tokens.refreshToken,
                max_age=auth_utils.resolve_max_age(tokens.expiresIn, self.settings.DEFAULT_SESSION_MAX_AGE),
                secure=self.settings.cookie_secure,
            )
            return response

        return self.login_redirect(request)

    async def evaluate(self, request: Request) -> typing.Tuple[GateState, typing.Optional[SessionTokens]]:
        access_token = request.cookies.get(auth_utils.ACCESS_TOKEN_COOKIE)
        refresh_token = request.cookies.get(auth_utils.REFRESH_TOKEN_COOKIE)

        if not refresh_token:
            return GateState.NO_REFRESH_TOKEN, None

        threshold = self.settings.REFRESH_THRESHOLD_SECONDS
        if access_token and not auth_utils.is_expiring(access_token, threshold):
            return GateState.TOKEN_VALID, None

        logger.debug(f"GATE: {GateState.TOKEN_EXPIRING_OR_MISSING.value}, refreshing session")
        try:
            outcome = await auth_utils.refresh_session(request.app.state.http_client, self.settings, refresh_token)
        except Exception:
            logger.exception("GATE: refresh attempt failed")
            return GateState.REFRESH_FAILED, None

        if not outcome.ok:
            logger.info(f"GATE: refresh rejected with status {outcome.status_code}")
            return GateState.REFRESH_FAILED, None
        if not _header_safe(outcome.tokens):
            logger.warning("GATE: rotated tokens cannot be sent as cookies")
            return GateState.REFRESH_FAILED, None
        return GateState.REFRESH_SUCCEEDED, outcome.tokens

    def login_redirect(self, request: Request) -> RedirectResponse:
        login_url = request.url.replace(path=self.settings.LOGIN_PATH, query="", fragment="")
        response = RedirectResponse(url=str(login_url), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        auth_utils.clear_session_cookies(response, secure=self.settings.cookie_secure)
        return response


def _header_safe(tokens: SessionTokens) -> bool:
    for value in (tokens.accessToken, tokens.refreshToken):
        try:
            value.encode("latin-1")
        except UnicodeEncodeError:
            return False
    return True


def _replace_request_cookies(request: Request, tokens: SessionTokens) -> None:
    """Lets the page being served see the rotated pair instead of the stale cookies."""
    cookies = dict(request.cookies)
    cookies[auth_utils.ACCESS_TOKEN_COOKIE] = tokens.accessToken
    cookies[auth_utils.REFRESH_TOKEN_COOKIE] = tokens.refreshToken
    cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())

    headers = [(key, value) for key, value in request.scope["headers"] if key != b"cookie"]
    headers.append((b"cookie", cookie_header.encode("latin-1")))
    request.scope["headers"] = headers
