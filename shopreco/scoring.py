"""Content-based scoring of catalogue items against a session's preference profile."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from shopreco.models import CatalogItem, PreferenceProfile, ScoredItem

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PENALTY = 0.5

# The storefront renders ``score * 20`` as a "% match" badge, capped at 100.
_MATCH_SCALE = 20.0


def score(
    item: CatalogItem,
    profile: PreferenceProfile,
    *,
    price_penalty: float = DEFAULT_PRICE_PENALTY,
) -> float:
    """Return the non-negative relevance of *item* for *profile*.

    ``category weight + sum of tag weights - price distance penalty``,
    clamped at zero.  The penalty is
    ``price_penalty * |price - affinity| / max(affinity, 1)`` and only
    applies once the profile has a price affinity.
    """
    return float(_score_vector([item], profile, price_penalty)[0])


def rank_catalogue(
    items: Sequence[CatalogItem],
    profile: PreferenceProfile,
    n: int,
    *,
    price_penalty: float = DEFAULT_PRICE_PENALTY,
) -> list[ScoredItem]:
    """Return the top *n* items for *profile*, best first.

    Ties are broken by ascending item id so the order is reproducible.

    Returns an empty list when no item scores above zero (cold start): an
    all-zero ranking carries no signal and the caller is expected to fall
    back to a non-personalised ordering instead.
    """
    if n <= 0 or not items:
        return []

    scores = _score_vector(items, profile, price_penalty)
    if not np.any(scores > 0.0):
        logger.debug("No item scored above zero; returning empty ranking.")
        return []

    order = sorted(range(len(items)), key=lambda k: (-scores[k], items[k].id))
    return [ScoredItem(items[k].id, float(scores[k])) for k in order[:n]]


def match_percentage(raw_score: float) -> int:
    """Map a raw score onto the 0-100 "% match" scale shown in the storefront."""
    return int(round(min(100.0, max(0.0, raw_score) * _MATCH_SCALE)))


def _score_vector(
    items: Sequence[CatalogItem],
    profile: PreferenceProfile,
    price_penalty: float,
) -> np.ndarray:
    """Score every item in *items* at once; see :func:`score`."""
    category = np.array(
        [profile.category_weights.get(item.category, 0.0) for item in items],
        dtype=np.float64,
    )
    tags = np.array(
        [math.fsum(profile.tag_weights.get(tag, 0.0) for tag in item.tags) for item in items],
        dtype=np.float64,
    )
    raw = category + tags

    if profile.price_affinity is not None:
        affinity = profile.price_affinity
        prices = np.array([item.price for item in items], dtype=np.float64)
        raw -= price_penalty * np.abs(prices - affinity) / max(affinity, 1.0)

    return np.maximum(raw, 0.0)
