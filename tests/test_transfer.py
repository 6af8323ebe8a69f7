"""Tests for the single-transfer request/response flow."""

from __future__ import annotations

import gzip
from dataclasses import replace
from typing import Any

import pytest

from src.settings import TransferSettings
from src.transfer import (
    UA_FIREFOX,
    HttpStatusError,
    InvalidArgumentError,
    InvalidStateError,
    Transfer,
    TransferError,
    TransferOptions,
)


class StubHandle:
    def __init__(
        self,
        *,
        status: int = 200,
        body: bytes = b"",
        info: dict[str, Any] | None = None,
        error: TransferError | None = None,
    ) -> None:
        self.applied: list[TransferOptions] = []
        self.performed = 0
        self.closed = False
        self.error = error
        self._body = body
        self._info: dict[str, Any] = {
            "http_code": status,
            "url": "",
            "redirect_count": 0,
            "header_size": 0,
        }
        self._info.update(info or {})

    def apply(self, options: TransferOptions) -> None:
        self.applied.append(replace(options))

    def perform(self) -> None:
        self.performed += 1
        if self.error is not None:
            raise self.error

    def info(self) -> dict[str, Any]:
        return dict(self._info)

    def content(self) -> bytes:
        return self._body

    def reset(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def _captured(block: bytes, body: bytes = b"", **info: Any) -> Transfer:
    transfer = Transfer("http://example.test/", handle=StubHandle()).with_headers()
    transfer.set_response(block + body)
    transfer.set_response_info({"http_code": 200, "header_size": len(block), **info})
    return transfer


def test_request_returns_body_for_ok_status() -> None:
    handle = StubHandle(status=200, body=b"hello")
    transfer = Transfer("http://example.test/ok", handle=handle)

    assert transfer.request() == b"hello"
    assert transfer.status_code == 200
    assert handle.applied[-1].url == "http://example.test/ok"


def test_request_raises_for_missing_resource() -> None:
    transfer = Transfer("http://example.test/missing", handle=StubHandle(status=404, body=b"not found"))

    with pytest.raises(HttpStatusError) as excinfo:
        transfer.request()

    assert excinfo.value.status_code == 404
    assert excinfo.value.body == b"not found"


@pytest.mark.parametrize("status", [200, 201, 204, 250, 299])
def test_success_statuses_return_body(status: int) -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle(status=status, body=b"ok"))
    assert transfer.request() == b"ok"


@pytest.mark.parametrize("status", [100, 199, 300, 302, 404, 500, 503])
def test_other_statuses_raise_with_exact_code(status: int) -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle(status=status, body=b"x"))

    with pytest.raises(HttpStatusError) as excinfo:
        transfer.request()

    assert excinfo.value.status_code == status


@pytest.mark.parametrize("status", [200, 301, 404, 500])
def test_head_never_raises_on_status(status: int) -> None:
    raw = b"HTTP/1.1 %d Whatever\r\nServer: stub\r\n\r\n" % status
    handle = StubHandle(status=status, body=raw, info={"header_size": len(raw)})
    transfer = Transfer("http://example.test/", "HEAD", handle=handle)

    assert transfer.request() == raw
    assert transfer.response_headers("server") == "stub"


def test_transport_failure_is_raised_without_retry() -> None:
    handle = StubHandle(error=TransferError("Could not resolve host", code=6))
    transfer = Transfer("http://nowhere.test/", handle=handle)

    with pytest.raises(TransferError) as excinfo:
        transfer.request()

    assert excinfo.value.code == 6
    assert handle.performed == 1
    assert transfer.transport_error is excinfo.value


def test_head_forces_no_body_and_header_capture() -> None:
    handle = StubHandle()
    transfer = Transfer("http://example.test/", "head", handle=handle)

    assert transfer.method == "HEAD"
    assert handle.applied[-1].no_body is True
    assert handle.applied[-1].include_headers is True

    transfer.prepare_options("GET")
    assert handle.applied[-1].no_body is False


@pytest.mark.parametrize("switch", ["set_method", "set_option"])
def test_switching_away_from_head_with_setter_restores_body(switch: str) -> None:
    handle = StubHandle()
    transfer = Transfer("http://example.test/", "HEAD", handle=handle)

    if switch == "set_method":
        transfer.set_method("GET")
    else:
        transfer.set_option("method", "get")
    transfer.prepare_options()

    assert handle.applied[-1].method == "GET"
    assert handle.applied[-1].no_body is False


def test_explicit_no_body_survives_method_change() -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle())
    transfer.set_option("no_body", True).set_method("DELETE")

    assert transfer.options.no_body is True


def test_prepare_options_is_idempotent() -> None:
    handle = StubHandle()
    transfer = Transfer("http://example.test/", "POST", {"timeout": 5.0}, handle=handle)
    transfer.add_header("Accept", "text/html")

    transfer.prepare_options()
    first = handle.applied[-1]
    transfer.prepare_options()

    assert handle.applied[-1] == first
    assert transfer.options == first
    assert first.headers == ("Accept: text/html",)


def test_request_headers_last_write_wins() -> None:
    handle = StubHandle()
    transfer = Transfer("http://example.test/", handle=handle)
    transfer.add_header("Accept", "text/plain").add_header("Accept", "application/json")
    transfer.add_header("X-Trace", "1")

    transfer.prepare_options()
    assert handle.applied[-1].headers == ("Accept: application/json", "X-Trace: 1")

    transfer.set_headers()
    transfer.prepare_options()
    assert handle.applied[-1].headers == ()


def test_overrides_and_set_option_are_validated() -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle())

    transfer.set_option("timeout", 3.0).set_option("timeout", 7.0)
    assert transfer.options.timeout == 7.0

    with pytest.raises(InvalidArgumentError):
        transfer.set_option("no_such_option", 1)
    with pytest.raises(InvalidArgumentError):
        transfer.prepare_options(overrides={"bogus": True})


def test_settings_seed_default_options() -> None:
    settings = TransferSettings(connect_timeout=3.0, follow_redirects=True, user_agent="firefox")
    transfer = Transfer("http://example.test/", handle=StubHandle(), settings=settings)

    assert transfer.options.connect_timeout == 3.0
    assert transfer.options.follow_redirects is True
    assert transfer.options.user_agent == UA_FIREFOX


def test_headers_are_case_insensitive() -> None:
    block = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nX-Count: 2\r\n\r\n"
    transfer = _captured(block, b"hi")

    assert transfer.response_headers("content-type") == "text/plain"
    assert transfer.response_headers("CONTENT-TYPE") == "text/plain"
    assert transfer.response_headers("x-missing") == ""
    assert transfer.body == b"hi"


def test_redirect_keeps_only_final_header_block() -> None:
    first = b"HTTP/1.1 302 Found\r\nLocation: /final\r\nX-First: yes\r\n\r\n"
    second = b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n\r\n"
    transfer = _captured(first + second, b"<html></html>", redirect_count=1, url="http://example.test/final")

    headers = transfer.response_headers()

    assert dict(headers) == {"Content-Type": "text/html"}
    assert transfer.response_headers("x-first") == ""
    assert transfer.is_redirected() == 1
    assert transfer.get_url() == "http://example.test/final"
    assert transfer.get_url(source=True) == "http://example.test/"
    assert transfer.body == b"<html></html>"


def test_gzip_body_is_decoded_and_header_dropped() -> None:
    payload = b"hello world" * 10
    block = b"HTTP/1.1 200 OK\r\nContent-Encoding: gzip\r\nContent-Type: text/plain\r\n\r\n"
    transfer = _captured(block, gzip.compress(payload))

    assert transfer.body == payload
    assert transfer.response_headers("content-encoding") == ""
    assert transfer.response_headers("content-type") == "text/plain"
    assert transfer.body == payload


def test_headers_require_capture() -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle(body=b"x"))
    transfer.request()

    with pytest.raises(InvalidStateError):
        transfer.response_headers()


def test_body_split_requires_header_size() -> None:
    transfer = Transfer("http://example.test/", handle=StubHandle()).with_headers()
    transfer.set_response(b"HTTP/1.1 200 OK\r\n\r\nbody")
    transfer.set_response_info({"http_code": 200})

    with pytest.raises(InvalidStateError):
        transfer.get_response_body()


def test_response_info_requires_status_code() -> None:
    transfer = Transfer(handle=StubHandle())

    with pytest.raises(InvalidArgumentError):
        transfer.set_response_info({"url": "http://example.test/"})


def test_response_info_attribute_lookup() -> None:
    transfer = Transfer(handle=StubHandle())
    transfer.set_response_info({"http_code": 204, "total_time": 0.5})

    assert transfer.status_code == 204
    assert transfer.response_info("total_time") == 0.5
    assert transfer.response_info("missing") == ""
    assert transfer.response_info()["http_code"] == 204


def test_execute_invalidates_header_cache() -> None:
    block = b"HTTP/1.1 200 OK\r\nX-Version: 1\r\n\r\n"
    handle = StubHandle(body=block, info={"header_size": len(block)})
    transfer = Transfer("http://example.test/", handle=handle).with_headers()
    transfer.request()
    assert transfer.response_headers("x-version") == "1"

    newer = b"HTTP/1.1 200 OK\r\nX-Version: 2\r\n\r\n"
    handle._body = newer
    transfer.request()
    assert transfer.response_headers("x-version") == "2"


def test_post_helper_encodes_mapping_and_closes_handle() -> None:
    handle = StubHandle(status=201, body=b"created")

    body = Transfer.post("http://example.test/items", {"name": "a b", "n": 1}, handle=handle)

    assert body == b"created"
    assert handle.applied[-1].method == "POST"
    assert handle.applied[-1].post_fields == "name=a+b&n=1"
    assert handle.closed is True


def test_get_helper_returns_body() -> None:
    handle = StubHandle(body=b"page")
    assert Transfer.get("http://example.test/", handle=handle) == b"page"
    assert handle.closed is True


def test_reset_restores_defaults() -> None:
    transfer = Transfer("http://example.test/", "PUT", {"timeout": 9.0}, handle=StubHandle(body=b"x"))
    transfer.add_header("X-A", "1")
    transfer.request()

    transfer.reset()

    assert transfer.options == TransferOptions()
    assert transfer.request_headers == {}
    assert transfer.status_code == 0
    assert transfer.raw_response == b""
