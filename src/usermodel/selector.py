"""Ad candidate selection from the catalog."""

from __future__ import annotations

import logging
import random
from collections.abc import Collection, Mapping

from .types import AdCandidate, Catalog, Rejected, RejectReason

LOGGER = logging.getLogger(__name__)

TEXT_FIELD = "notificationText"
URL_FIELD = "notificationURL"
ADVERTISER_FIELD = "advertiser"


def candidate_ids(catalog: Catalog, category: str, exclude: Collection[str] = ()) -> list[str]:
    """Ids in the category bucket, in catalog order, minus ``exclude``."""

    bucket = catalog.get(category)
    if not bucket:
        return []
    return [candidate_id for candidate_id in bucket if candidate_id not in exclude]


def select(
    catalog: Catalog,
    category: str,
    rng: random.Random | None = None,
    exclude: Collection[str] = (),
) -> AdCandidate | Rejected:
    """Pick one candidate uniformly at random and validate it.

    An incomplete candidate is rejected outright; no second pick is made.
    """

    ids = candidate_ids(catalog, category, exclude)
    if not ids:
        return Rejected(reason=RejectReason.NO_CATEGORY_BUCKET, category=category)

    candidate_id = (rng or random).choice(ids)
    payload = catalog[category][candidate_id]
    if not isinstance(payload, Mapping):
        LOGGER.warning("Catalog entry %s/%s has no ad payload", category, candidate_id)
        return Rejected(
            reason=RejectReason.INCOMPLETE_CANDIDATE,
            category=category,
            candidate_id=candidate_id,
        )
    text = str(payload.get(TEXT_FIELD) or "").strip()
    url = str(payload.get(URL_FIELD) or "").strip()
    advertiser = str(payload.get(ADVERTISER_FIELD) or "").strip()
    if not text or not url or not advertiser:
        LOGGER.debug("Catalog entry %s/%s is incomplete", category, candidate_id)
        return Rejected(
            reason=RejectReason.INCOMPLETE_CANDIDATE,
            category=category,
            candidate_id=candidate_id,
        )
    return AdCandidate(
        candidate_id=candidate_id,
        category=category,
        text=text,
        url=url,
        advertiser=advertiser,
    )


__all__ = ["candidate_ids", "select"]
