# src/clinic_bff/errors.py

import logging
from typing import Dict, List

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)

INVALID_DATA_MESSAGE = "Datos inválidos"


class ConfigurationError(Exception):
    """Raised when the service is missing a setting it needs to serve a request."""


def config_error_response(exc: ConfigurationError, tag: str) -> JSONResponse:
    logger.error(f"{tag}: configuration error: {exc}")
    return JSONResponse({"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def internal_error_response() -> JSONResponse:
    return JSONResponse({"error": "Error interno"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def unauthenticated_response() -> JSONResponse:
    return JSONResponse(
        {"error": "No autenticado: falta accessToken"},
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


def format_validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """
    Groups pydantic errors by dotted field path.
    Errors that are not tied to a field (e.g. a non-object body) go under "_errors".
    """
    details: Dict[str, List[str]] = {"_errors": []}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        key = field or "_errors"
        details.setdefault(key, []).append(error.get("msg", "Invalid value"))
    return details


def validation_error_response(exc: ValidationError, message: str = INVALID_DATA_MESSAGE) -> JSONResponse:
    return JSONResponse(
        {"error": message, "details": format_validation_errors(exc)},
        status_code=status.HTTP_400_BAD_REQUEST,
    )
