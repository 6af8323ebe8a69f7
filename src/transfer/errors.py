"""Exception types raised by transfers and the multi runner."""

from __future__ import annotations

import json
from typing import Any, Mapping


class CurlKitError(RuntimeError):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class TransferError(CurlKitError):
    """The engine could not complete the exchange (DNS, connect, TLS, timeout...)."""

    def __init__(self, message: str, *, code: int = 0, url: str | None = None) -> None:
        details: dict[str, Any] = {"code": code}
        if url:
            details["url"] = url
        super().__init__(message, details=details)
        self.code = code
        self.url = url


class HttpStatusError(CurlKitError):
    """The exchange completed but the status is outside the 2xx range."""

    def __init__(self, status_code: int, body: bytes = b"") -> None:
        super().__init__(f"HTTP status {status_code}", details={"status": status_code})
        self.status_code = status_code
        self.body = body


class InvalidStateError(CurlKitError):
    """An accessor was called before its precondition was met."""


class InvalidArgumentError(CurlKitError, ValueError):
    """Structurally invalid input was supplied."""


__all__ = [
    "CurlKitError",
    "TransferError",
    "HttpStatusError",
    "InvalidStateError",
    "InvalidArgumentError",
]
