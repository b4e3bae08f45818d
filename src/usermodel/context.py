"""Shopping and search intent detection from visited URLs."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from urllib.parse import urlparse

from .config import DEFAULT_SEARCH_HOSTS, DEFAULT_SHOPPING_HOSTS
from .types import ContextFlag, FlagKind, UserModelState

HOST_RE = re.compile(r"^[A-Za-z0-9.-]+$")
TRIGGER_SCORE = 1.0


def hostname(url: str | None) -> str | None:
    """Return the registrable hostname of ``url`` (``www.amazon.com`` -> ``amazon.com``)."""

    if not url:
        return None
    parsed = urlparse(url)
    host = parsed.hostname
    if not host and parsed.scheme == "" and parsed.path:
        host = urlparse(f"http://{url}").hostname
    return _normalize_host(host)


def update_flag(
    state: UserModelState,
    kind: FlagKind,
    url: str,
    now: datetime,
    hosts: Iterable[str],
) -> UserModelState:
    """Set the flag when ``url`` is a trigger host, clear it otherwise.

    Only the most recent visit matters. An inactive flag is left as is.
    """

    current = state.flag(kind)
    if hostname(url) in {host.lower() for host in hosts}:
        flag = ContextFlag(active=True, source_url=url, score=TRIGGER_SCORE, timestamp=now)
    elif current.active:
        flag = ContextFlag()
    else:
        return state
    return replace(state, **{kind.value: flag})


def update_shopping(
    state: UserModelState,
    url: str,
    now: datetime,
    hosts: Iterable[str] = DEFAULT_SHOPPING_HOSTS,
) -> UserModelState:
    return update_flag(state, FlagKind.SHOPPING, url, now, hosts)


def update_search(
    state: UserModelState,
    url: str,
    now: datetime,
    hosts: Iterable[str] = DEFAULT_SEARCH_HOSTS,
) -> UserModelState:
    return update_flag(state, FlagKind.SEARCH, url, now, hosts)


def _normalize_host(host: str | None) -> str | None:
    if not host:
        return None
    candidate = host.strip().lower().rstrip(".")
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]
    if not candidate:
        return None

    try:
        ipaddress.ip_address(candidate)
        return candidate
    except ValueError:
        pass

    if not HOST_RE.match(candidate):
        return None

    labels = [label for label in candidate.split(".") if label]
    if not labels:
        return None
    return ".".join(labels[-2:])


__all__ = ["hostname", "update_flag", "update_search", "update_shopping"]
