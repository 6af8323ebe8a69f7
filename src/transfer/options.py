"""Typed transfer configuration and override merging."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, BinaryIO, Mapping

from ..settings import TransferSettings
from .errors import InvalidArgumentError

UA_FIREFOX = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:41.0) Gecko/20100101 Firefox/41.0"
UA_CHROME = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/46.0.2490.71 Safari/537.36"
)
UA_IE10 = "Mozilla/5.0 (Windows NT 6.1; WOW64; Trident/7.0; AS; rv:11.0) like Gecko"

USER_AGENTS = {
    "firefox": UA_FIREFOX,
    "chrome": UA_CHROME,
    "ie10": UA_IE10,
}

DEFAULT_METHOD = "GET"
HEAD = "HEAD"


@dataclass(slots=True)
class TransferOptions:
    """Everything the engine needs to run one exchange."""

    url: str = ""
    method: str = DEFAULT_METHOD
    connect_timeout: float = 10.0
    timeout: float | None = None
    include_headers: bool = False
    no_body: bool = False
    headers: tuple[str, ...] = ()
    follow_redirects: bool = False
    max_redirects: int | None = None
    user_agent: str | None = None
    post_fields: bytes | str | None = None
    verify_tls: bool = True
    # Applied after the in-memory buffer, so a stream takes precedence.
    output: BinaryIO | None = None


OPTION_NAMES = frozenset(f.name for f in fields(TransferOptions))


def normalize_method(method: str) -> str:
    value = str(method).strip().upper()
    if not value:
        raise InvalidArgumentError("Request method must not be empty")
    return value


def resolve_user_agent(value: str | None) -> str | None:
    """Expand a preset name (``firefox``, ``chrome``, ``ie10``) into a UA string."""

    if not value:
        return None
    return USER_AGENTS.get(value.lower(), value)


def default_options(settings: TransferSettings | None = None) -> TransferOptions:
    if settings is None:
        return TransferOptions()
    return TransferOptions(
        connect_timeout=settings.connect_timeout,
        timeout=settings.timeout,
        follow_redirects=settings.follow_redirects,
        max_redirects=settings.max_redirects,
        user_agent=resolve_user_agent(settings.user_agent),
        verify_tls=settings.verify_tls,
    )


def check_option_name(name: str) -> str:
    if name not in OPTION_NAMES:
        raise InvalidArgumentError(
            f"Unknown transfer option '{name}'",
            details={"available": sorted(OPTION_NAMES)},
        )
    return name


def merge_options(
    options: TransferOptions,
    overrides: Mapping[str, Any] | None = None,
    *,
    method: str | None = None,
) -> TransferOptions:
    """Return ``options`` with the method and overrides applied.

    A HEAD request always skips the body and captures headers, whatever
    the overrides say.
    """

    changes: dict[str, Any] = {}
    if method is not None:
        changes["method"] = normalize_method(method)
    for name, value in (overrides or {}).items():
        changes[check_option_name(name)] = value
    if "method" in changes:
        changes["method"] = normalize_method(changes["method"])

    merged = replace(options, **changes) if changes else options
    if merged.method == HEAD:
        merged = replace(merged, no_body=True, include_headers=True)
    elif options.method == HEAD and "no_body" not in changes:
        # Leaving HEAD: the forced no-body flag would otherwise stick.
        merged = replace(merged, no_body=False)
    return merged


__all__ = [
    "DEFAULT_METHOD",
    "HEAD",
    "OPTION_NAMES",
    "TransferOptions",
    "UA_CHROME",
    "UA_FIREFOX",
    "UA_IE10",
    "USER_AGENTS",
    "check_option_name",
    "default_options",
    "merge_options",
    "normalize_method",
    "resolve_user_agent",
]
