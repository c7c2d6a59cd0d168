"""
Exception types raised by services and rendered by the app's exception handler
as ``{"success": false, "message": ..., "error": ...}``.
"""
from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """An error that maps directly to an HTTP response."""

    def __init__(self, status_code: int, message: str, error: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class UpstreamAPIError(BridgeError):
    """A partner API answered with a non-success status (or not at all)."""


class CourierAPIError(UpstreamAPIError):
    pass


class PlatformAPIError(UpstreamAPIError):
    pass


class NoPlatformSession(BridgeError):
    def __init__(self, company_id: str) -> None:
        super().__init__(
            500,
            "No valid session found for company. Please authenticate first.",
        )
        self.company_id = company_id
