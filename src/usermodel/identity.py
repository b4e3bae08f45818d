"""Anonymous per-user identifier management."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace

from .types import UserModelState

LOGGER = logging.getLogger(__name__)


def generate_ad_uuid() -> str:
    """Random version-4 UUID (122 random bits from the OS CSPRNG)."""

    return str(uuid.uuid4())


def ensure_identity(
    state: UserModelState,
    generator: Callable[[], str] = generate_ad_uuid,
) -> UserModelState:
    """Guarantee ``ads_enabled`` implies an identity; never replaces an existing one."""

    if not state.ads_enabled or state.ad_uuid is not None:
        return state
    LOGGER.info("Generated anonymous ad identifier")
    return replace(state, ad_uuid=generator())


def set_ads_enabled(
    state: UserModelState,
    enabled: bool,
    generator: Callable[[], str] = generate_ad_uuid,
) -> UserModelState:
    """Toggle ads; disabling keeps the identity so re-enabling reuses it."""

    return ensure_identity(replace(state, ads_enabled=bool(enabled)), generator)


__all__ = ["ensure_identity", "generate_ad_uuid", "set_ads_enabled"]
