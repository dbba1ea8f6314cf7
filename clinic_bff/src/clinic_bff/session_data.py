# src/clinic_bff/session_data.py

from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class SessionTokens(BaseModel):
    """
    Credential pair returned by the upstream on login and refresh.
    Only the fields the BFF turns into cookies are declared; anything else is kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    accessToken: Optional[str] = None
    refreshToken: Optional[str] = None
    # Seconds; the upstream has sent both numbers and numeric strings.
    expiresIn: Optional[Any] = None

    @property
    def complete(self) -> bool:
        return bool(self.accessToken and self.refreshToken)


class AuthEnvelope(BaseModel):
    """
    The upstream's common wrapper: {data, statusCode, message, timestamp}.
    Fields are untyped; the envelope is relayed verbatim and only inspected.
    """
    model_config = ConfigDict(extra="allow")

    data: Optional[Any] = None
    statusCode: Optional[Any] = None
    message: Optional[Any] = None
    timestamp: Optional[Any] = None

    @property
    def status_code(self) -> Optional[int]:
        code = self.statusCode
        if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= 599:
            return None
        return code
