"""HTTP transfers over libcurl: single requests and concurrent multi runs."""

from .engine import MULTI_CALL_AGAIN, MULTI_OK, CurlHandle, CurlMultiplexer, Multiplexer, TransferHandle
from .errors import (
    CurlKitError,
    HttpStatusError,
    InvalidArgumentError,
    InvalidStateError,
    TransferError,
)
from .multi import MultiTransfer
from .options import UA_CHROME, UA_FIREFOX, UA_IE10, TransferOptions
from .transfer import Transfer

__all__ = [
    "MULTI_CALL_AGAIN",
    "MULTI_OK",
    "CurlHandle",
    "CurlKitError",
    "CurlMultiplexer",
    "HttpStatusError",
    "InvalidArgumentError",
    "InvalidStateError",
    "MultiTransfer",
    "Multiplexer",
    "Transfer",
    "TransferError",
    "TransferHandle",
    "TransferOptions",
    "UA_CHROME",
    "UA_FIREFOX",
    "UA_IE10",
]
