"""Engine boundary: transfer handles and the multiplexer, backed by ``pycurl``."""

from __future__ import annotations

import io
from typing import Any, Protocol

import pycurl

from .errors import TransferError
from .options import HEAD, TransferOptions

MULTI_OK = 0
MULTI_CALL_AGAIN = -1

_INFO_FIELDS = {
    "http_code": pycurl.RESPONSE_CODE,
    "url": pycurl.EFFECTIVE_URL,
    "redirect_count": pycurl.REDIRECT_COUNT,
    "header_size": pycurl.HEADER_SIZE,
    "content_type": pycurl.CONTENT_TYPE,
    "total_time": pycurl.TOTAL_TIME,
    "connect_time": pycurl.CONNECT_TIME,
    "size_download": pycurl.SIZE_DOWNLOAD_T,
}


class TransferHandle(Protocol):
    """One engine-level connection handle."""

    def apply(self, options: TransferOptions) -> None:
        """Commit the full option set to the handle."""

    def perform(self) -> None:
        """Run the transfer synchronously; raise ``TransferError`` on failure."""

    def info(self) -> dict[str, Any]:
        """Return post-transfer metadata keyed by ``http_code``, ``url``, ..."""

    def content(self) -> bytes:
        """Return the output accumulated by the last transfer."""

    def reset(self) -> None:
        """Drop every option and any buffered output."""

    def close(self) -> None:
        """Release the handle."""


class Multiplexer(Protocol):
    """Drives several attached handles over one readiness mechanism."""

    def attach(self, handle: Any) -> None: ...

    def detach(self, handle: Any) -> None: ...

    def advance(self) -> tuple[int, int]:
        """Make progress without blocking; return ``(status, running)``."""

    def wait(self, timeout: float) -> int:
        """Block until activity or timeout; ``-1`` means nothing to wait on."""

    def completed(self) -> list[tuple[Any, int, str]]:
        """Drain finished handles as ``(handle, code, message)``; code 0 is success."""

    def close(self) -> None: ...


class CurlHandle:
    """``TransferHandle`` over a ``pycurl.Curl`` object."""

    def __init__(self) -> None:
        self._curl = pycurl.Curl()
        self._buffer = io.BytesIO()
        self._url = ""

    @property
    def curl(self) -> pycurl.Curl:
        return self._curl

    def apply(self, options: TransferOptions) -> None:
        curl = self._curl
        # Start from engine defaults so options dropped since the last call do not linger.
        curl.reset()
        self._buffer = io.BytesIO()
        self._url = options.url

        # Buffer first; a stream set afterwards replaces it.
        curl.setopt(pycurl.WRITEFUNCTION, self._buffer.write)
        if options.output is not None:
            curl.setopt(pycurl.WRITEDATA, options.output)

        if options.url:
            curl.setopt(pycurl.URL, options.url)
        if options.method != "GET":
            curl.setopt(pycurl.CUSTOMREQUEST, options.method)
        if options.post_fields is not None:
            curl.setopt(pycurl.POSTFIELDS, options.post_fields)
        if options.no_body or options.method == HEAD:
            curl.setopt(pycurl.NOBODY, 1)
        if options.include_headers:
            curl.setopt(pycurl.HEADER, 1)
        if options.headers:
            curl.setopt(pycurl.HTTPHEADER, list(options.headers))

        curl.setopt(pycurl.CONNECTTIMEOUT_MS, int(options.connect_timeout * 1000))
        if options.timeout:
            curl.setopt(pycurl.TIMEOUT_MS, int(options.timeout * 1000))
        if options.follow_redirects:
            curl.setopt(pycurl.FOLLOWLOCATION, 1)
            if options.max_redirects is not None:
                curl.setopt(pycurl.MAXREDIRS, options.max_redirects)
        if options.user_agent:
            curl.setopt(pycurl.USERAGENT, options.user_agent)
        if not options.verify_tls:
            curl.setopt(pycurl.SSL_VERIFYPEER, 0)
            curl.setopt(pycurl.SSL_VERIFYHOST, 0)

    def perform(self) -> None:
        try:
            self._curl.perform()
        except pycurl.error as exc:
            code, message = _error_args(exc)
            raise TransferError(message, code=code, url=self._url) from exc

    def info(self) -> dict[str, Any]:
        return {key: self._curl.getinfo(option) for key, option in _INFO_FIELDS.items()}

    def content(self) -> bytes:
        return self._buffer.getvalue()

    def reset(self) -> None:
        self._curl.reset()
        self._buffer = io.BytesIO()
        self._url = ""

    def close(self) -> None:
        self._curl.close()


class CurlMultiplexer:
    """``Multiplexer`` over a ``pycurl.CurlMulti`` object."""

    def __init__(self) -> None:
        self._multi = pycurl.CurlMulti()
        self._attached: dict[int, CurlHandle] = {}

    def attach(self, handle: CurlHandle) -> None:
        self._multi.add_handle(handle.curl)
        self._attached[id(handle.curl)] = handle

    def detach(self, handle: CurlHandle) -> None:
        if self._attached.pop(id(handle.curl), None) is not None:
            self._multi.remove_handle(handle.curl)

    def advance(self) -> tuple[int, int]:
        try:
            status, running = self._multi.perform()
        except pycurl.error as exc:
            code, message = _error_args(exc)
            raise TransferError(message, code=code) from exc
        if status == pycurl.E_CALL_MULTI_PERFORM:
            return MULTI_CALL_AGAIN, running
        return (MULTI_OK if status == pycurl.E_MULTI_OK else status), running

    def wait(self, timeout: float) -> int:
        # No sockets exposed (e.g. during DNS resolution): select() would return 0 at once.
        readable, writable, errored = self._multi.fdset()
        if not (readable or writable or errored):
            return -1
        suggested_ms = self._multi.timeout()
        if suggested_ms >= 0:
            timeout = min(timeout, suggested_ms / 1000.0)
        return self._multi.select(timeout)

    def completed(self) -> list[tuple[CurlHandle, int, str]]:
        finished: list[tuple[CurlHandle, int, str]] = []
        while True:
            queued, succeeded, failed = self._multi.info_read()
            for curl in succeeded:
                finished.append((self._attached[id(curl)], 0, ""))
            for curl, code, message in failed:
                finished.append((self._attached[id(curl)], code, message))
            if queued == 0:
                break
        return finished

    def close(self) -> None:
        for handle in list(self._attached.values()):
            self.detach(handle)
        self._multi.close()


def _error_args(exc: pycurl.error) -> tuple[int, str]:
    if len(exc.args) >= 2:
        return int(exc.args[0]), str(exc.args[1])
    return 0, str(exc)


__all__ = [
    "MULTI_CALL_AGAIN",
    "MULTI_OK",
    "CurlHandle",
    "CurlMultiplexer",
    "Multiplexer",
    "TransferHandle",
]
