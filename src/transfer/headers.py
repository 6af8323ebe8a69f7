"""Request header serialisation and response header-block parsing."""

from __future__ import annotations

from typing import Mapping

from requests.structures import CaseInsensitiveDict

_BLOCK_SEPARATOR = "\r\n\r\n"
_LINE_SEPARATOR = "\r\n"
# Header bytes on the wire are not guaranteed to be UTF-8.
_HEADER_ENCODING = "iso-8859-1"


def serialize_headers(headers: Mapping[str, str]) -> tuple[str, ...]:
    return tuple(f"{name}: {value}" for name, value in headers.items())


def parse_header_block(block: bytes | str, *, redirected: bool = False) -> CaseInsensitiveDict:
    """Parse a raw response header block into a case-insensitive mapping.

    When the transfer followed redirects the engine hands back one block
    per hop; only the final hop is kept. The status line is dropped and
    each remaining line is split on the first ``": "``. Later duplicates
    replace earlier ones.
    """

    text = block.decode(_HEADER_ENCODING) if isinstance(block, bytes) else block
    text = text.strip()
    if redirected:
        text = text.split(_BLOCK_SEPARATOR)[-1]

    lines = [line for line in text.split(_LINE_SEPARATOR) if line]
    headers: CaseInsensitiveDict = CaseInsensitiveDict()
    for line in lines[1:]:
        name, sep, value = line.partition(": ")
        if not sep:
            continue
        headers[name] = value
    return headers


__all__ = ["parse_header_block", "serialize_headers"]
