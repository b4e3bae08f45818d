"""User-model event handlers composing classification, history and ad serving.

Every handler takes a ``UserModelState`` snapshot and returns the next one.
The caller owns persistence and decides when each handler runs.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from functools import partial

from . import events
from .classifiers import ScoringPrimitive, argmax, classify, multinomial_log_scores
from .config import Config
from .context import update_flag
from .events import EventSink, LoggingEventSink
from .gate import decide
from .history import append, policy_from_config, winning_category
from .identity import ensure_identity, generate_ad_uuid, set_ads_enabled
from .loader import ModelContext, ModelSlot, load_resources
from .network import NetworkProbe, SSIDProbe
from .notifications import LogNotifier, Notifier
from .selector import select
from .text import page_tokens
from .types import (
    AdCandidate,
    AdHistoryRecord,
    ContextFlag,
    Decision,
    FlagKind,
    Rejected,
    RejectReason,
    ScrapedPage,
    Suppress,
    SuppressReason,
    UserModelState,
)

LOGGER = logging.getLogger(__name__)

SUPPRESSION_EVENTS: dict[SuppressReason, str] = {
    SuppressReason.ADS_DISABLED: events.ADS_DISABLED,
    SuppressReason.NO_CATALOG: events.NO_AD_CATALOG,
    SuppressReason.NO_CANDIDATES_FOR_CATEGORY: events.NO_ADS_FOR_CATEGORY,
    SuppressReason.DUPLICATE_AD: events.DUPLICATE_AD,
    SuppressReason.RATE_LIMITED: events.AD_THROTTLED,
    SuppressReason.NO_INTENT_SIGNAL: events.NO_INTENT_SIGNAL,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel:
    """Entry points invoked by browser events."""

    def __init__(
        self,
        config: Config,
        slot: ModelSlot,
        *,
        notifier: Notifier | None = None,
        event_sink: EventSink | None = None,
        network_probe: NetworkProbe | None = None,
        on_ssid: Callable[[str], None] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        scorer: ScoringPrimitive = multinomial_log_scores,
        uuid_factory: Callable[[], str] = generate_ad_uuid,
    ) -> None:
        self._config = config
        self._slot = slot
        self._notifier = notifier or LogNotifier()
        self._events = event_sink or LoggingEventSink()
        self._network = network_probe or SSIDProbe()
        self._on_ssid = on_ssid
        self._rng = rng or random.Random()
        self._clock = clock
        self._scorer = scorer
        self._uuid_factory = uuid_factory
        self._policy = policy_from_config(config.history)
        self._load_started = False

    @property
    def context(self) -> ModelContext:
        return self._slot.snapshot()

    def initialize(self, state: UserModelState, ads_enabled: bool | None = None) -> UserModelState:
        """Start the background model load and the SSID lookup."""

        if not self._load_started and not self._slot.is_published:
            if self._config.model.complete:
                self._slot.load_in_background(partial(load_resources, self._config.model))
                self._load_started = True
            else:
                LOGGER.warning("No category model configured; pages will not be classified")
        self.retrieve_ssid()
        if ads_enabled is not None:
            return set_ads_enabled(state, ads_enabled, self._uuid_factory)
        return ensure_identity(state, self._uuid_factory)

    def tab_update(self, state: UserModelState) -> UserModelState:
        return replace(state, last_user_activity=self._clock())

    def user_action(self, state: UserModelState) -> UserModelState:
        return replace(state, last_user_activity=self._clock())

    def record_un_idle(self, state: UserModelState) -> UserModelState:
        return replace(state, last_user_idle_stop_time=self._clock())

    def remove_history_site(self, state: UserModelState, url: str | None = None) -> UserModelState:
        # Page scores are not tracked per site, so any removal clears everything.
        return self.remove_all_history(state)

    def remove_all_history(self, state: UserModelState) -> UserModelState:
        cleared = replace(
            state,
            page_score_history=(),
            ad_history=AdHistoryRecord(),
            shopping=ContextFlag(),
            search=ContextFlag(),
            last_user_activity=None,
            last_user_idle_stop_time=None,
        )
        return ensure_identity(cleared, self._uuid_factory)

    def set_ads_enabled(self, state: UserModelState, enabled: bool) -> UserModelState:
        return set_ads_enabled(state, enabled, self._uuid_factory)

    def change_ad_frequency(self, state: UserModelState, frequency: float) -> UserModelState:
        """Store the ads-per-day preference. Not consulted when deciding."""

        value = float(frequency)
        if value < 0:
            raise ValueError("ad frequency cannot be negative")
        return replace(state, ad_frequency=value)

    def test_shopping_data(self, state: UserModelState, url: str) -> UserModelState:
        return self._update_flag(state, FlagKind.SHOPPING, url)

    def test_search_state(self, state: UserModelState, url: str) -> UserModelState:
        return self._update_flag(state, FlagKind.SEARCH, url)

    def classify_page(self, state: UserModelState, page: ScrapedPage) -> UserModelState:
        """Score a scraped page and record it in the rotating history."""

        if page.headers is None:
            return state
        context = self._slot.snapshot()
        vector = classify(
            page_tokens(page.headers, page.body),
            context,
            min_words=self._config.classifier.min_words,
            max_words=self._config.classifier.max_words,
            scorer=self._scorer,
        )
        if vector is None or context.model is None:
            return state

        history = append(state.page_score_history, vector, self._config.history.capacity)
        names = context.model.names
        winner_over_time = winning_category(history, names, self._policy)
        self._events.log(
            events.SITE_VISITED,
            {
                "url": page.url,
                "immediateWinner": names[argmax(vector)].split("-"),
                "winnerOverTime": winner_over_time.split("-") if winner_over_time else None,
            },
        )
        return replace(state, page_score_history=history)

    def evaluate(self, state: UserModelState, context: ModelContext | None = None) -> Decision:
        """Run the eligibility gate against the current model snapshot."""

        return decide(
            state,
            context or self._slot.snapshot(),
            self._clock(),
            throttle=self._config.throttle,
            policy=self._policy,
        )

    def check_ready_ad_serve(
        self,
        state: UserModelState,
        window_id: int | None = None,
    ) -> UserModelState:
        """Serve an ad if the gate allows it and record it in the ad history."""

        context = self._slot.snapshot()
        decision = self.evaluate(state, context)
        if isinstance(decision, Suppress):
            self._log_suppression(state, decision)
            return state
        if context.catalog is None:
            return state
        last_id = state.ad_history.last_ad_id
        outcome = select(
            context.catalog,
            decision.category,
            self._rng,
            exclude={last_id} if last_id else (),
        )
        if isinstance(outcome, Rejected):
            self._log_rejection(outcome)
            return state

        self.show_ad(window_id, outcome)
        self._events.log(
            events.AD_SHOWN,
            {
                "category": outcome.category,
                "candidateId": outcome.candidate_id,
                "notificationUrl": outcome.url,
                "notificationText": outcome.text,
                "advertiser": outcome.advertiser,
            },
        )
        record = AdHistoryRecord(
            last_ad_time=self._clock(),
            last_ad_id=outcome.candidate_id,
            last_ad_category=outcome.category,
        )
        return replace(state, ad_history=record)

    def show_ad(self, window_id: int | None, candidate: AdCandidate) -> None:
        self._notifier.show(window_id, candidate.advertiser, candidate.text, candidate.url)

    def retrieve_ssid(self) -> None:
        """Ask the network probe for the SSID; failures are logged only."""

        def _received(error: Exception | None, ssid: str | None) -> None:
            if error is not None or not ssid:
                self._events.log(events.SSID_UNAVAILABLE, {"reason": str(error)})
                return
            if self._on_ssid is not None:
                self._on_ssid(ssid)

        self._network.probe(_received)

    def on_ssid_received(self, state: UserModelState, ssid: str) -> UserModelState:
        return replace(state, network_id=ssid)

    def _update_flag(self, state: UserModelState, kind: FlagKind, url: str) -> UserModelState:
        hosts = self._config.context.hosts_for(kind)
        return update_flag(state, kind, url, self._clock(), hosts)

    def _log_suppression(self, state: UserModelState, decision: Suppress) -> None:
        payload: dict[str, object] = {"reason": decision.reason.value}
        if decision.category is not None:
            payload["category"] = decision.category
        if decision.reason is SuppressReason.DUPLICATE_AD:
            payload["candidateId"] = state.ad_history.last_ad_id
        self._events.log(SUPPRESSION_EVENTS[decision.reason], payload)

    def _log_rejection(self, rejected: Rejected) -> None:
        payload = {"category": rejected.category, "candidateId": rejected.candidate_id}
        if rejected.reason is RejectReason.INCOMPLETE_CANDIDATE:
            self._events.log(events.INCOMPLETE_AD, payload)
        else:
            self._events.log(events.NO_ADS_FOR_CATEGORY, payload)


__all__ = ["SUPPRESSION_EVENTS", "UserModel"]
