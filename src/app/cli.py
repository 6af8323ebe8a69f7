"""Command-line interface for fetching one or many URLs."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Iterable, Sequence

from ..settings import AppConfig, load_config
from ..transfer import HttpStatusError, MultiTransfer, Transfer, TransferError
from ..transfer.options import HEAD
from ..utils.html import extract_title, looks_like_html
from ..utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(
        level=args.log_level or config.logging.level,
        structured=config.logging.structured and not args.log_plain,
        stream=sys.stderr,
    )

    handler: Callable[[argparse.Namespace, AppConfig], int] | None = getattr(
        args, "handler", None
    )
    if handler is None:
        parser.print_help(sys.stderr)
        return 1
    return handler(args, config)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="curlkit", description="libcurl transfer runner")
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs instead of JSON",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser(
        "fetch", help="Fetch URLs; several URLs are transferred concurrently"
    )
    fetch_parser.add_argument("urls", nargs="+", metavar="URL")
    fetch_parser.add_argument("--method", "-X", default="GET", help="Request method")
    fetch_parser.add_argument(
        "--header",
        "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header; may be repeated",
    )
    fetch_parser.add_argument(
        "--include",
        "-i",
        action="store_true",
        help="Capture response headers and print them before the body",
    )
    fetch_parser.add_argument(
        "--title",
        action="store_true",
        help="Print the HTML page title instead of the body",
    )
    fetch_parser.set_defaults(handler=_handle_fetch)

    return parser


def _handle_fetch(args: argparse.Namespace, config: AppConfig) -> int:
    headers = _parse_headers(args.header)
    include = args.include or args.title

    if len(args.urls) == 1:
        with _build_transfer(args.urls[0], args.method, headers, include, config) as transfer:
            return _fetch_single(transfer, args)

    with MultiTransfer(settings=config.multi, transfer_settings=config.transfer) as multi:
        for url in args.urls:
            multi.add(_build_transfer(url, args.method, headers, include, config))
        LOGGER.info(
            "Fetching concurrently",
            extra={"event": "cli.command", "command": "fetch", "urls": list(args.urls)},
        )
        try:
            multi.run()
            for transfer in multi:
                print(_summary_line(transfer, with_title=args.title))
            return 0 if all(_succeeded(transfer) for transfer in multi) else 1
        finally:
            for transfer in multi:
                transfer.close()


def _fetch_single(transfer: Transfer, args: argparse.Namespace) -> int:
    try:
        body = transfer.request()
    except HttpStatusError as exc:
        LOGGER.error(
            "Request returned an error status",
            extra={"event": "cli.error", "url": transfer.url, "status": exc.status_code},
        )
        print(_summary_line(transfer, with_title=False))
        return 1
    except TransferError as exc:
        LOGGER.error(
            "Request failed",
            extra={"event": "cli.error", "url": transfer.url, "code": exc.code},
        )
        return 1

    if args.title:
        print(_summary_line(transfer, with_title=True))
        return 0
    if args.include and transfer.method != HEAD:
        for name, value in transfer.response_headers().items():
            print(f"{name}: {value}")
        print()
    sys.stdout.buffer.write(body)
    sys.stdout.flush()
    return 0


def _build_transfer(
    url: str,
    method: str,
    headers: dict[str, str],
    include: bool,
    config: AppConfig,
) -> Transfer:
    transfer = Transfer(url, method, settings=config.transfer)
    transfer.set_headers(headers).with_headers(include)
    return transfer


def _parse_headers(raw: Iterable[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    invalid: list[str] = []
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            invalid.append(item)
            continue
        headers[name.strip()] = value.strip()
    if invalid:
        LOGGER.error(
            "Malformed request headers provided",
            extra={"event": "cli.error", "invalid_headers": invalid},
        )
        raise SystemExit(2)
    return headers


def _succeeded(transfer: Transfer) -> bool:
    if transfer.transport_error is not None:
        return False
    return 200 <= transfer.status_code < 300 or transfer.method == HEAD


def _summary_line(transfer: Transfer, *, with_title: bool) -> str:
    parts = [str(transfer.get_url()), str(transfer.status_code)]
    if transfer.transport_error is not None:
        parts.append(f"error {transfer.transport_error.code}: {transfer.transport_error}")
    elif with_title and looks_like_html(transfer.response_info("content_type")):
        parts.append(extract_title(transfer.body))
    return " --- ".join(parts)


__all__ = ["main"]
