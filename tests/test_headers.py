"""Tests for request header serialisation and response header parsing."""

from __future__ import annotations

from src.transfer.headers import parse_header_block, serialize_headers


def test_serialize_headers_keeps_insertion_order() -> None:
    assert serialize_headers({"Accept": "*/*", "X-Id": "7"}) == ("Accept: */*", "X-Id: 7")


def test_parse_splits_on_first_separator_only() -> None:
    block = b"HTTP/1.1 200 OK\r\nLink: <http://a.test/>; rel=next: yes\r\nbroken-line\r\n\r\n"

    headers = parse_header_block(block)

    assert headers["link"] == "<http://a.test/>; rel=next: yes"
    assert "broken-line" not in headers
    assert len(headers) == 1


def test_redirect_flag_selects_final_block() -> None:
    block = (
        "HTTP/1.1 301 Moved\r\nLocation: /b\r\n\r\n"
        "HTTP/1.1 200 OK\r\nContent-Length: 3\r\n\r\n"
    )

    assert parse_header_block(block, redirected=True).keys() == {"Content-Length"}
    assert "location" in parse_header_block(block, redirected=False)
