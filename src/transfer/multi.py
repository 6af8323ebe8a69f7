"""Concurrent execution of several transfers over one multiplexer."""

from __future__ import annotations

import time
from typing import Callable, Iterator

from ..settings import MultiSettings, TransferSettings
from ..utils.logging import get_logger
from .engine import MULTI_CALL_AGAIN, MULTI_OK, CurlMultiplexer, Multiplexer
from .errors import InvalidStateError, TransferError
from .options import DEFAULT_METHOD
from .transfer import Transfer

LOGGER = get_logger(__name__)


class MultiTransfer:
    """Drive registered transfers to completion concurrently.

    Usage::

        multi = MultiTransfer()
        multi.add(Transfer("https://example.com/", "HEAD")).add_url("https://example.org/")
        multi.run()
        for transfer in multi:
            print(transfer.get_url(), transfer.status_code)

    ``run`` does not apply the status policy; per-transfer engine failures
    are recorded on ``Transfer.transport_error`` and listed in ``errors``.
    """

    def __init__(
        self,
        *,
        multiplexer: Multiplexer | None = None,
        settings: MultiSettings | None = None,
        transfer_settings: TransferSettings | None = None,
        multiplexer_factory: Callable[[], Multiplexer] = CurlMultiplexer,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._multiplexer = multiplexer if multiplexer is not None else multiplexer_factory()
        self._settings = settings or MultiSettings()
        self._transfer_settings = transfer_settings
        self._sleep = sleep
        self._transfers: list[Transfer] = []
        self._errors: list[tuple[Transfer, TransferError]] = []
        self._closed = False

    def __enter__(self) -> "MultiTransfer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[Transfer]:
        return iter(list(self._transfers))

    def __len__(self) -> int:
        return len(self._transfers)

    @property
    def transfers(self) -> list[Transfer]:
        return list(self._transfers)

    @property
    def errors(self) -> list[tuple[Transfer, TransferError]]:
        """Transfers whose exchange failed during the last ``run``."""
        return list(self._errors)

    def add(self, transfer: Transfer) -> "MultiTransfer":
        if transfer.attached_to is not None:
            raise InvalidStateError(
                "Transfer is already registered with a multi runner; remove it first.",
                details={"url": transfer.url},
            )
        self._multiplexer.attach(transfer.handle)
        transfer.attached_to = self
        self._transfers.append(transfer)
        return self

    def add_url(self, url: str, method: str = DEFAULT_METHOD) -> "MultiTransfer":
        return self.add(Transfer(url, method, settings=self._transfer_settings))

    def remove(self, transfer: Transfer) -> bool:
        for index, item in enumerate(self._transfers):
            if item is transfer:
                self._multiplexer.detach(item.handle)
                item.attached_to = None
                del self._transfers[index]
                return True
        return False

    def run(self) -> "MultiTransfer":
        """Run every registered transfer until none is active."""
        LOGGER.info(
            "Multi run started",
            extra={"event": "multi.run", "phase": "start", "transfers": len(self._transfers)},
        )
        for transfer in self._transfers:
            # A finished handle must be re-attached before the engine restarts it.
            self._multiplexer.detach(transfer.handle)
            transfer.prepare_options()
            self._multiplexer.attach(transfer.handle)

        status, active = self._advance()
        while active and status == MULTI_OK:
            if self._multiplexer.wait(self._settings.select_timeout) == -1:
                self._sleep(self._settings.idle_sleep)
            status, active = self._advance()

        if status != MULTI_OK:
            raise TransferError("Multiplexer reported an unrecoverable error", code=status)

        self._collect()
        LOGGER.info(
            "Multi run finished",
            extra={
                "event": "multi.run",
                "phase": "finish",
                "transfers": len(self._transfers),
                "failed": len(self._errors),
            },
        )
        return self

    def close(self) -> None:
        if self._closed:
            return
        for transfer in list(self._transfers):
            self.remove(transfer)
        self._multiplexer.close()
        self._closed = True

    def _advance(self) -> tuple[int, int]:
        status, active = self._multiplexer.advance()
        while status == MULTI_CALL_AGAIN:
            status, active = self._multiplexer.advance()
        return status, active

    def _collect(self) -> None:
        failures = {
            id(handle): (code, message)
            for handle, code, message in self._multiplexer.completed()
            if code != 0
        }
        self._errors = []
        for transfer in self._transfers:
            handle = transfer.handle
            transfer.store_response(handle.info(), handle.content())
            failure = failures.get(id(handle))
            if failure is None:
                transfer.transport_error = None
                continue
            code, message = failure
            error = TransferError(message, code=code, url=transfer.url)
            transfer.transport_error = error
            self._errors.append((transfer, error))
            LOGGER.warning(
                "Transfer failed during multi run",
                extra={"event": "multi.transfer_failed", "url": transfer.url, "code": code},
            )


__all__ = ["MultiTransfer"]
