"""Recommendation engine: records interactions and serves ranked products."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from shopreco.catalogue import ProductCatalogue
from shopreco.errors import UnknownItem
from shopreco.events import parse_event
from shopreco.models import (
    CatalogItem,
    InteractionEvent,
    ScoredItem,
    SessionState,
)
from shopreco.preferences import (
    DEFAULT_HALF_LIFE_SECONDS,
    DEFAULT_PRICE_ALPHA,
    PreferenceStore,
    apply_event,
)
from shopreco.scoring import DEFAULT_PRICE_PENALTY, rank_catalogue
from shopreco.trending import TrendingAggregator

logger = logging.getLogger(__name__)

FALLBACK_CATALOGUE = "catalogue"
FALLBACK_TRENDING = "trending"
_FALLBACKS = (FALLBACK_CATALOGUE, FALLBACK_TRENDING)


class RecommendationEngine:
    """Single entry point used by the storefront for personalisation.

    Session lifecycle::

        start_session()  ->  created
        record_interaction(...)  ->  active
        end_session()  ->  gone (every later call raises UnknownSession)

    ``recommend`` and ``trending`` are valid while a session is created or
    active.  A session without any signal gets the configured *fallback*
    ordering, with zero scores, instead of an arbitrary ranking:

    ==============  ==================================================
    Fallback        Ordering
    ==============  ==================================================
    ``catalogue``   Catalogue insertion order.
    ``trending``    Currently trending items, then catalogue order.
    ==============  ==================================================

    Args:
        catalogue: The :class:`~shopreco.catalogue.ProductCatalogue`.
        preference_store: Per-session profile storage.
        trending: The process-wide :class:`~shopreco.trending.TrendingAggregator`.
        half_life_seconds: Preference decay time constant.
        price_alpha: Smoothing factor of the price affinity average.
        price_penalty: Weight of the price distance penalty when scoring.
        fallback: ``"catalogue"`` or ``"trending"``.
    """

    def __init__(
        self,
        catalogue: ProductCatalogue,
        preference_store: PreferenceStore,
        trending: TrendingAggregator,
        *,
        half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
        price_alpha: float = DEFAULT_PRICE_ALPHA,
        price_penalty: float = DEFAULT_PRICE_PENALTY,
        fallback: str = FALLBACK_CATALOGUE,
    ) -> None:
        if half_life_seconds <= 0:
            raise ValueError(f"half_life_seconds must be positive, got {half_life_seconds!r}")
        if fallback not in _FALLBACKS:
            raise ValueError(f"fallback must be one of {_FALLBACKS}, got {fallback!r}")
        self._catalogue = catalogue
        self._store = preference_store
        self._trending = trending
        self._half_life = half_life_seconds
        self._alpha = price_alpha
        self._penalty = price_penalty
        self._fallback = fallback

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_session(self) -> str:
        """Create a session with an empty profile and return its id."""
        return self._store.create()

    def end_session(self, session_id: str) -> None:
        """Discard the session's profile.

        Raises:
            UnknownSession: If the session does not exist or already ended.
        """
        self._store.discard(session_id)
        logger.debug("Session %s ended (%d still open).", session_id, len(self._store))

    def session_state(self, session_id: str) -> SessionState:
        return self._store.state(session_id)

    def snapshot_profile(self, session_id: str) -> dict[str, Any]:
        """Return the session's profile in its serialised form.

        This is the explicit flush hook for an adapter that wants to carry a
        profile across sessions; the engine itself never persists anything.
        """
        return self._store.get(session_id).to_dict()

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    def record_interaction(
        self,
        session_id: str,
        event: InteractionEvent | Mapping[str, Any],
        item: CatalogItem | None = None,
    ) -> None:
        """Fold one shopper interaction into the session profile and trending.

        All checks run before anything is mutated, so a failed call leaves
        both the profile and trending untouched.

        Args:
            session_id: An id returned by :meth:`start_session`.
            event: A validated event, or a raw mapping to validate.
            item: The product the event refers to.  Looked up by
                ``event.item_id`` when omitted.

        Raises:
            InvalidEventKind: If a raw event has an unknown kind.
            InvalidDuration: If a raw event's duration is invalid.
            InvalidEvent: If the event has no item id or a non-finite timestamp.
            UnknownSession: If the session does not exist.
            UnknownItem: If the item is not in the catalogue.
        """
        if not isinstance(event, InteractionEvent):
            event = parse_event(event)
        resolved = self._resolve_item(event, item)

        with self._store.session_lock(session_id):
            profile = self._store.get(session_id)
            updated = apply_event(
                profile,
                event,
                resolved,
                half_life_seconds=self._half_life,
                alpha=self._alpha,
            )
            self._store.put(session_id, updated)
        self._trending.record_global(event)

        logger.debug(
            "Session %s recorded %s on %r (events=%d).",
            session_id,
            event.kind.value,
            event.item_id,
            updated.event_count,
        )

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def recommend(self, session_id: str, n: int) -> list[ScoredItem]:
        """Return up to *n* products for the session, best first.

        Raises:
            UnknownSession: If the session does not exist.
            ValueError: If *n* is negative.
        """
        _check_count(n)
        profile = self._store.get(session_id)
        items = self._catalogue.get_all_items()

        ranked = rank_catalogue(items, profile, n, price_penalty=self._penalty)
        if ranked or n == 0:
            return ranked

        logger.debug("Session %s has no signal; using %s fallback.", session_id, self._fallback)
        return self._fallback_ordering(items, n)

    def trending(self, n: int) -> list[str]:
        """Return up to *n* item ids by global popularity.

        Raises:
            ValueError: If *n* is negative.
        """
        _check_count(n)
        return self._trending.trending(n)

    def trending_with_scores(self, n: int) -> list[tuple[str, float]]:
        """Like :meth:`trending`, with each id's decayed popularity.

        Raises:
            ValueError: If *n* is negative.
        """
        _check_count(n)
        return self._trending.top(n)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_item(
        self, event: InteractionEvent, item: CatalogItem | None
    ) -> CatalogItem:
        if item is not None and item.id != event.item_id:
            raise UnknownItem(item.id)
        resolved = self._catalogue.get_item(event.item_id)
        if resolved is None:
            raise UnknownItem(event.item_id)
        return resolved

    def _fallback_ordering(self, items: list[CatalogItem], n: int) -> list[ScoredItem]:
        ordered: list[str] = []
        if self._fallback == FALLBACK_TRENDING:
            ordered = [
                item_id for item_id in self._trending.trending(n)
                if item_id in self._catalogue
            ]
        seen = set(ordered)
        for item in items:
            if len(ordered) >= n:
                break
            if item.id not in seen:
                ordered.append(item.id)
                seen.add(item.id)
        return [ScoredItem(item_id, 0.0) for item_id in ordered[:n]]


def _check_count(n: int) -> None:
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n!r}")
