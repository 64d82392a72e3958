from __future__ import annotations
from typing import Any, Dict, Optional

import httpx


class ConsoleError(Exception):
    pass


class ApiError(ConsoleError):
    def __init__(self, status_code: Optional[int], message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        payload: Any = None
        message = response.reason_phrase or "Request failed"
        try:
            payload = response.json()
        except ValueError:
            payload = response.text or None
        if isinstance(payload, dict):
            for key in ("message", "detail", "title", "error"):
                if isinstance(payload.get(key), str) and payload[key]:
                    message = payload[key]
                    break
        klass = _STATUS_MAP.get(response.status_code, cls)
        if klass is ConflictError:
            version = payload.get("version") if isinstance(payload, dict) else None
            return ConflictError(message, payload, server_version=version)
        return klass(response.status_code, message, payload)

    @classmethod
    def from_transport(cls, exc: httpx.HTTPError) -> "ApiError":
        return cls(None, f"Network error: {exc}")


class AuthenticationError(ApiError):
    pass


class PermissionDenied(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ServerValidationError(ApiError):
    pass


class ConflictError(ApiError):
    def __init__(self, message: str, payload: Any = None, server_version: Optional[int] = None):
        super().__init__(409, message, payload)
        self.server_version = server_version


class ValidationError(ConsoleError):
    """Client-side form errors keyed by field name."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(errors.values()))
        self.errors = dict(errors)


_STATUS_MAP = {
    400: ServerValidationError,
    401: AuthenticationError,
    403: PermissionDenied,
    404: NotFoundError,
    409: ConflictError,
    422: ServerValidationError,
}
