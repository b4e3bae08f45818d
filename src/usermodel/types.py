"""Core immutable data structures used throughout usermodel."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

ScoreVector = tuple[float, ...]
ScoreHistory = tuple[ScoreVector, ...]
CandidatePayload = Mapping[str, str]
Catalog = Mapping[str, Mapping[str, CandidatePayload]]


class FlagKind(str, Enum):
    """Transient browsing intents tracked per user."""

    SHOPPING = "shopping"
    SEARCH = "search"


class SuppressReason(str, Enum):
    """Why the eligibility gate refused to serve an ad."""

    ADS_DISABLED = "ads_disabled"
    NO_CATALOG = "no_catalog"
    NO_CANDIDATES_FOR_CATEGORY = "no_candidates_for_category"
    DUPLICATE_AD = "duplicate_ad"
    RATE_LIMITED = "rate_limited"
    NO_INTENT_SIGNAL = "no_intent_signal"


class RejectReason(str, Enum):
    """Why the catalog selector could not produce a candidate."""

    NO_CATEGORY_BUCKET = "no_category_bucket"
    INCOMPLETE_CANDIDATE = "incomplete_candidate"


@dataclass(frozen=True)
class ScrapedPage:
    """Text scraped from a rendered page."""

    url: str
    headers: Sequence[str] | None = None
    body: Sequence[str] | None = None


@dataclass(frozen=True)
class ContextFlag:
    """Level-triggered intent flag set by the most recent visit."""

    active: bool = False
    source_url: str | None = None
    score: float = 0.0
    timestamp: datetime | None = None


@dataclass(frozen=True)
class AdHistoryRecord:
    """Details of the most recently served ad."""

    last_ad_time: datetime | None = None
    last_ad_id: str | None = None
    last_ad_category: str | None = None


@dataclass(frozen=True)
class UserModelState:
    """Per-user snapshot; every operation returns a new instance."""

    ads_enabled: bool = False
    ad_uuid: str | None = None
    ad_frequency: float | None = None
    page_score_history: ScoreHistory = ()
    ad_history: AdHistoryRecord = field(default_factory=AdHistoryRecord)
    shopping: ContextFlag = field(default_factory=ContextFlag)
    search: ContextFlag = field(default_factory=ContextFlag)
    last_user_activity: datetime | None = None
    last_user_idle_stop_time: datetime | None = None
    network_id: str | None = None

    def flag(self, kind: FlagKind) -> ContextFlag:
        return self.shopping if kind is FlagKind.SHOPPING else self.search


@dataclass(frozen=True)
class Serve:
    """Gate outcome allowing an ad for the given major category."""

    category: str


@dataclass(frozen=True)
class Suppress:
    """Gate outcome refusing to serve an ad right now."""

    reason: SuppressReason
    category: str | None = None


Decision = Serve | Suppress


@dataclass(frozen=True)
class AdCandidate:
    """Validated ad payload chosen from the catalog."""

    candidate_id: str
    category: str
    text: str
    url: str
    advertiser: str


@dataclass(frozen=True)
class Rejected:
    """Selector outcome when no valid candidate could be produced."""

    reason: RejectReason
    category: str
    candidate_id: str | None = None


__all__ = [
    "AdCandidate",
    "AdHistoryRecord",
    "CandidatePayload",
    "Catalog",
    "ContextFlag",
    "Decision",
    "FlagKind",
    "Rejected",
    "RejectReason",
    "ScoreHistory",
    "ScoreVector",
    "ScrapedPage",
    "Serve",
    "Suppress",
    "SuppressReason",
    "UserModelState",
]
