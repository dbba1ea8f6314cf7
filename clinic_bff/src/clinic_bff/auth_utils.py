# src/clinic_bff/auth_utils.py
import logging
import math
import time
import typing
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
from fastapi import Response, status
from jose import JWTError, jwt
from pydantic import ValidationError

from .config import Settings
from .session_data import SessionTokens
from .upstream import read_upstream

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
SESSION_COOKIES = (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# --- Access token inspection ---

def token_expiry(token: str) -> typing.Optional[int]:
    """
    Returns the `exp` claim of a JWT without verifying its signature.
    This is only a fast-path hint for the dashboard gate; the upstream API
    validates the signature on every proxied call.
    Any decode failure, or a missing, non-numeric or non-finite `exp`, yields None.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except (JWTError, ValueError, TypeError, AttributeError):
        return None
    if not isinstance(claims, dict):
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    # json accepts NaN, Infinity and 1e999
    if isinstance(exp, float) and not math.isfinite(exp):
        return None
    return int(exp)


def is_expiring(token: str, threshold_seconds: int = 0, now: typing.Optional[float] = None) -> bool:
    exp = token_expiry(token)
    if exp is None:
        return True
    current = int(time.time() if now is None else now)
    return exp - current <= threshold_seconds


# --- Session cookies ---

def resolve_max_age(expires_in: typing.Any, default: int) -> int:
    if expires_in is None or isinstance(expires_in, bool):
        return default
    try:
        return int(expires_in)
    except (TypeError, ValueError):
        return default


def set_session_cookies(
        response: Response,
        access_token: typing.Optional[str],
        refresh_token: typing.Optional[str],
        max_age: int,
        secure: bool
) -> None:
    for name, value in ((ACCESS_TOKEN_COOKIE, access_token), (REFRESH_TOKEN_COOKIE, refresh_token)):
        if not value:
            continue
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            httponly=True,
            secure=secure,
            samesite="lax",
            path="/"
        )


def clear_session_cookies(response: Response, secure: bool) -> None:
    for name in SESSION_COOKIES:
        response.set_cookie(
            key=name,
            value="",
            max_age=0,
            expires=_EPOCH,
            httponly=True,
            secure=secure,
            samesite="lax",
            path="/"
        )


# --- Refresh-token rotation ---

def parse_session_tokens(data: typing.Any) -> typing.Optional[SessionTokens]:
    """The credential pair carried by an upstream payload, or None when it does not hold one."""
    if not isinstance(data, dict):
        return None
    try:
        return SessionTokens.model_validate(data)
    except ValidationError:
        return None


@dataclass
class RefreshOutcome:
    status_code: int
    body: typing.Any
    tokens: typing.Optional[SessionTokens] = None

    @property
    def ok(self) -> bool:
        return self.tokens is not None


async def refresh_session(client: httpx.AsyncClient, settings: Settings, refresh_token: str) -> RefreshOutcome:
    """
    Exchanges a refresh token for a new access/refresh pair.
    Does not touch cookies: the caller decides whether to persist the pair.
    Raises ConfigurationError when API_URL is missing.
    """
    api_url = settings.require_api_url()
    upstream = await client.post(f"{api_url}/auth/refresh", json={"refreshToken": refresh_token})

    if not upstream.is_success:
        body = read_upstream(upstream) if upstream.content else {"error": "Refresh failed"}
        logger.info(f"AUTH refresh: upstream rejected refresh with status {upstream.status_code}")
        return RefreshOutcome(upstream.status_code, body)

    body = read_upstream(upstream)
    data = body.get("data") if isinstance(body, dict) else None
    if data is None:
        data = body

    tokens = parse_session_tokens(data)
    if tokens is None or not tokens.complete:
        logger.warning("AUTH refresh: upstream response is missing accessToken or refreshToken")
        return RefreshOutcome(status.HTTP_500_INTERNAL_SERVER_ERROR, {"error": "Tokens no presentes"})

    return RefreshOutcome(status.HTTP_200_OK, {"data": data, "ok": True}, tokens)
