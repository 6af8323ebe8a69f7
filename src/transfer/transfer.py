"""A single HTTP request/response exchange driven by the transfer engine."""

from __future__ import annotations

import gzip
import urllib.parse
from typing import Any, Callable, Mapping

from requests.structures import CaseInsensitiveDict

from ..settings import TransferSettings
from ..utils.logging import get_logger
from .engine import CurlHandle, TransferHandle
from .errors import HttpStatusError, InvalidArgumentError, InvalidStateError, TransferError
from .headers import parse_header_block, serialize_headers
from .options import (
    DEFAULT_METHOD,
    HEAD,
    TransferOptions,
    check_option_name,
    default_options,
    merge_options,
    normalize_method,
)

LOGGER = get_logger(__name__)


class Transfer:
    """One configured HTTP exchange and its captured result.

    Simple GET::

        body = Transfer.get("https://example.com/")

    HEAD request, inspecting headers::

        with Transfer("https://example.com/", "HEAD") as transfer:
            transfer.request()
            if transfer.status_code == 200:
                transfer.response_headers("content-type")
    """

    def __init__(
        self,
        url: str = "",
        method: str = DEFAULT_METHOD,
        overrides: Mapping[str, Any] | None = None,
        *,
        handle: TransferHandle | None = None,
        settings: TransferSettings | None = None,
        handle_factory: Callable[[], TransferHandle] = CurlHandle,
    ) -> None:
        self._handle: TransferHandle = handle if handle is not None else handle_factory()
        self._settings = settings
        self._closed = False
        self.attached_to: object | None = None
        self.reset()

        if url:
            self.set_url(url)
        self.prepare_options(method, overrides)

    def __enter__(self) -> "Transfer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Transfer(url={self.url!r}, method={self.method!r}, status={self._status})"

    def reset(self) -> "Transfer":
        """Restore default options and drop headers and response state."""
        self._handle.reset()
        self._options = default_options(self._settings)
        self._request_headers: dict[str, str] = {}
        self._clear_response()
        return self

    @property
    def handle(self) -> TransferHandle:
        return self._handle

    @property
    def options(self) -> TransferOptions:
        return self._options

    @property
    def url(self) -> str:
        return self._options.url

    @property
    def method(self) -> str:
        return self._options.method

    def set_url(self, url: str) -> "Transfer":
        self._options.url = url
        return self

    def get_url(self, source: bool = False) -> str | None:
        """Return the final URL after redirects, or the requested one when ``source``."""
        if not source and self.is_redirected():
            return str(self._response_info.get("url") or self._options.url)
        return self._options.url or None

    def set_method(self, method: str) -> "Transfer":
        value = normalize_method(method)
        if self._options.method == HEAD and value != HEAD:
            # Drop the no-body flag HEAD forced on.
            self._options.no_body = False
        self._options.method = value
        return self

    def set_option(self, name: str, value: Any) -> "Transfer":
        if check_option_name(name) == "method":
            return self.set_method(value)
        setattr(self._options, name, value)
        return self

    def add_header(self, name: str, value: str) -> "Transfer":
        self._request_headers[name] = value
        return self

    def set_headers(self, headers: Mapping[str, str] | None = None) -> "Transfer":
        """Replace the request headers; ``None`` clears them."""
        self._request_headers = dict(headers or {})
        self._options.headers = serialize_headers(self._request_headers)
        return self

    @property
    def request_headers(self) -> dict[str, str]:
        return dict(self._request_headers)

    def with_headers(self, include: bool = True) -> "Transfer":
        """Have the engine prefix the body with the raw response headers."""
        self._options.include_headers = include
        return self

    @classmethod
    def get(cls, url: str, overrides: Mapping[str, Any] | None = None, **kwargs: Any) -> bytes:
        with cls(url, "GET", overrides, **kwargs) as transfer:
            return transfer.request()

    @classmethod
    def post(
        cls,
        url: str,
        data: Mapping[str, Any] | str | bytes,
        overrides: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> bytes:
        fields = urllib.parse.urlencode(data) if isinstance(data, Mapping) else data
        with cls(url, "POST", {"post_fields": fields}, **kwargs) as transfer:
            return transfer.request("POST", overrides)

    def request(
        self, method: str | None = None, overrides: Mapping[str, Any] | None = None
    ) -> bytes:
        """Prepare, execute and apply the status policy in one call."""
        return self.prepare_options(method, overrides).execute().complete_request()

    def prepare_options(
        self, method: str | None = None, overrides: Mapping[str, Any] | None = None
    ) -> "Transfer":
        """Merge method, overrides and request headers, then commit them to the handle."""
        merged = merge_options(self._options, overrides, method=method)
        if self._request_headers:
            merged.headers = serialize_headers(self._request_headers)
        self._options = merged
        self._handle.apply(merged)
        return self

    def execute(self) -> "Transfer":
        """Run the exchange with the committed options and capture the result."""
        self._clear_response()
        try:
            self._handle.perform()
        except TransferError as exc:
            self.transport_error = exc
            LOGGER.warning(
                "Transfer failed",
                extra={"event": "transfer.failed", "url": self.url, "code": exc.code},
            )
            raise
        self.store_response(self._handle.info(), self._handle.content())
        LOGGER.debug(
            "Transfer executed",
            extra={
                "event": "transfer.execute",
                "url": self.url,
                "method": self.method,
                "status": self._status,
            },
        )
        return self

    def complete_request(self) -> bytes:
        """Return the body for a 2xx status or a HEAD request, raise otherwise."""
        if self.transport_error is not None:
            raise self.transport_error
        if 200 <= self._status < 300 or self.method == HEAD:
            return self.body
        raise HttpStatusError(self._status, self._response)

    def close(self) -> None:
        if self._closed:
            return
        detach = getattr(self.attached_to, "remove", None)
        if detach is not None:
            detach(self)
        self._handle.close()
        self._closed = True

    @property
    def status_code(self) -> int:
        return self._status

    @property
    def raw_response(self) -> bytes:
        return self._response

    @property
    def body(self) -> bytes:
        return self.get_response_body()

    def get_response_body(self) -> bytes:
        """Return the body, stripped of captured headers and gzip-decoded if marked so."""
        if not self._options.include_headers or self.method == HEAD:
            return self._response
        if self._body is not None:
            return self._body
        body = self._response[self._header_size() :]
        if self.response_headers("Content-Encoding").lower() == "gzip":
            body = gzip.decompress(body)
            self._response_headers.pop("Content-Encoding", None)
        self._body = body
        return body

    def set_response(self, buffer: bytes | str) -> "Transfer":
        """Inject a raw response buffer, mainly to emulate responses."""
        self._response = buffer.encode("utf-8") if isinstance(buffer, str) else bytes(buffer)
        self._response_headers = None
        self._body = None
        return self

    def response_info(self, attr: str | None = None) -> Any:
        if attr is not None:
            return self._response_info.get(attr, "")
        return dict(self._response_info)

    def set_response_info(self, info: Mapping[str, Any]) -> "Transfer":
        """Inject engine metadata, mainly to emulate responses."""
        if "http_code" not in info:
            raise InvalidArgumentError('Status code "http_code" required.')
        self._response_info = dict(info)
        self._status = int(info["http_code"])
        self._response_headers = None
        self._body = None
        return self

    def store_response(self, info: Mapping[str, Any], buffer: bytes) -> "Transfer":
        return self.set_response_info(info).set_response(buffer)

    def response_headers(self, name: str | None = None) -> Any:
        """Return every response header, or the value of ``name`` (``""`` if absent)."""
        if not self._options.include_headers:
            raise InvalidStateError(
                "Cannot read response headers while header capture is disabled; "
                "call with_headers() before the request."
            )
        if self._response_headers is None:
            block = self._response[: self._header_size()]
            self._response_headers = parse_header_block(block, redirected=self.is_redirected())
        if name is not None:
            return self._response_headers.get(name, "")
        return self._response_headers

    @property
    def redirect_count(self) -> int:
        return int(self._response_info.get("redirect_count") or 0)

    def is_redirected(self) -> int:
        """Return the number of redirects followed (0 when none)."""
        return self.redirect_count

    def _header_size(self) -> int:
        size = self._response_info.get("header_size")
        if size is None:
            raise InvalidStateError("Response header size is unknown; no response info recorded.")
        return int(size)

    def _clear_response(self) -> None:
        self._status = 0
        self._response = b""
        self._response_info: dict[str, Any] = {}
        self._response_headers: CaseInsensitiveDict | None = None
        self._body: bytes | None = None
        self.transport_error: TransferError | None = None


__all__ = ["Transfer"]
