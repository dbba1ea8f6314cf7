# src/clinic_bff/auth_routes.py
#
# The only handlers allowed to write the session cookies.

import logging

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import auth_utils
from .config import Settings, get_settings
from .errors import (
    ConfigurationError,
    config_error_response,
    internal_error_response,
    validation_error_response,
)
from .schemas import LoginRequest
from .session_data import AuthEnvelope
from .upstream import bearer_headers, get_http_client, relay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(
        request: Request,
        settings: Settings = Depends(get_settings),
        client: httpx.AsyncClient = Depends(get_http_client)
):
    try:
        try:
            credentials = LoginRequest.model_validate(await request.json())
        except ValidationError as e:
            return validation_error_response(e)

        api_url = settings.require_api_url()
        upstream = await client.post(f"{api_url}/auth/login", json=credentials.model_dump(mode="json"))

        if not upstream.is_success:
            try:
                error_body = upstream.json()
            except ValueError:
                error_body = {"error": "Error al autenticar"}
            logger.info(f"AUTH login: upstream rejected credentials with status {upstream.status_code}")
            return JSONResponse(error_body, status_code=upstream.status_code)

        api_response = upstream.json()
        envelope = AuthEnvelope.model_validate(api_response) if isinstance(api_response, dict) else AuthEnvelope()
        response = JSONResponse(api_response, status_code=envelope.status_code or upstream.status_code)

        tokens = auth_utils.parse_session_tokens(envelope.data)
        if tokens is None:
            logger.warning("AUTH login: upstream accepted credentials but sent no usable tokens")
        else:
            max_age = auth_utils.resolve_max_age(tokens.expiresIn, settings.DEFAULT_SESSION_MAX_AGE)
            auth_utils.set_session_cookies(
                response,
                tokens.accessToken,
                tokens.refreshToken,
                max_age=max_age,
                secure=settings.cookie_secure,
            )
        return response
    except ConfigurationError as e:
        return config_error_response(e, "AUTH login")
    except Exception:
        logger.exception("AUTH login: unexpected error")
        return internal_error_response()


@router.post("/logout")
async def logout(
        request: Request,
        settings: Settings = Depends(get_settings),
        client: httpx.AsyncClient = Depends(get_http_client)
):
    response: Response = internal_error_response()
    try:
        api_url = settings.require_api_url()
        access_token = request.cookies.get(auth_utils.ACCESS_TOKEN_COOKIE)

        if access_token:
            upstream = await client.post(f"{api_url}/auth/logout", headers=bearer_headers(access_token))
            response = relay(upstream)
        else:
            response = JSONResponse({"message": "Sesión finalizada localmente"}, status_code=status.HTTP_200_OK)
    except ConfigurationError as e:
        response = config_error_response(e, "AUTH logout")
    except Exception:
        logger.exception("AUTH logout: unexpected error")
        response = internal_error_response()
    finally:
        auth_utils.clear_session_cookies(response, secure=settings.cookie_secure)
    return response


@router.post("/refresh")
async def refresh(
        request: Request,
        settings: Settings = Depends(get_settings),
        client: httpx.AsyncClient = Depends(get_http_client)
):
    try:
        settings.require_api_url()

        refresh_token = request.cookies.get(auth_utils.REFRESH_TOKEN_COOKIE)
        if not refresh_token:
            return JSONResponse({"error": "No hay refreshToken"}, status_code=status.HTTP_401_UNAUTHORIZED)

        outcome = await auth_utils.refresh_session(client, settings, refresh_token)
        return JSONResponse(outcome.body, status_code=outcome.status_code)
    except ConfigurationError as e:
        return config_error_response(e, "AUTH refresh")
    except Exception:
        logger.exception("AUTH refresh: unexpected error")
        return internal_error_response()
