"""Ad eligibility decision.

Checks run in a fixed order and the first failing check names the
suppression reason:

1. ads disabled or no ad identifier          -> ADS_DISABLED
2. model or catalog not loaded                -> NO_CATALOG
3. no winning category, or empty bucket       -> NO_CANDIDATES_FOR_CATEGORY
4. only the last served candidate is left     -> DUPLICATE_AD
5. last ad served no more than an hour ago    -> RATE_LIMITED
6. a required intent flag is inactive         -> NO_INTENT_SIGNAL

The stored ads-per-day preference is not part of this decision.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from .config import ThrottleConfig
from .history import AggregationPolicy, major_category, winning_category
from .loader import ModelContext
from .selector import candidate_ids
from .types import Decision, Serve, Suppress, SuppressReason, UserModelState


def decide(
    state: UserModelState,
    context: ModelContext,
    now: datetime,
    *,
    throttle: ThrottleConfig | None = None,
    policy: AggregationPolicy | None = None,
) -> Decision:
    throttle = throttle or ThrottleConfig()
    if not state.ads_enabled or state.ad_uuid is None:
        return Suppress(SuppressReason.ADS_DISABLED)
    if not context.ready or context.model is None or context.catalog is None:
        return Suppress(SuppressReason.NO_CATALOG)

    winner = winning_category(state.page_score_history, context.model.names, policy)
    if winner is None:
        return Suppress(SuppressReason.NO_CANDIDATES_FOR_CATEGORY)
    category = major_category(winner)
    if not candidate_ids(context.catalog, category):
        return Suppress(SuppressReason.NO_CANDIDATES_FOR_CATEGORY, category)

    last = state.ad_history
    if last.last_ad_id is not None and not candidate_ids(
        context.catalog, category, exclude={last.last_ad_id}
    ):
        return Suppress(SuppressReason.DUPLICATE_AD, category)

    if last.last_ad_time is not None:
        interval = timedelta(seconds=throttle.min_interval_seconds)
        if now - last.last_ad_time <= interval:
            return Suppress(SuppressReason.RATE_LIMITED, category)

    for kind in throttle.required_flags:
        if not state.flag(kind).active:
            return Suppress(SuppressReason.NO_INTENT_SIGNAL, category)

    return Serve(category)


__all__ = ["decide"]
