"""Trending aggregator: process-wide, decaying popularity across all sessions."""

from __future__ import annotations

import logging
import math
import threading
import time

from shopreco.models import EVENT_WEIGHTS, InteractionEvent

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_SECONDS = 3600.0
DEFAULT_RESET_INTERVAL_SECONDS = 86400

# Re-anchor the window once growth factors exceed e**50 to stay well clear
# of float overflow.
_MAX_EXPONENT = 50.0


class TrendingAggregator:
    """Decaying engagement score per item, shared by every session.

    Every recorded event adds its kind's base weight (view 1, timed view 1,
    cart 5, wishlist 3) to the item.  Older contributions fade by
    ``exp(-dt / half_life_seconds)``.  Rather than rescaling the whole map on
    every event, contributions are stored relative to ``window_start``: an
    event at time ``t`` adds ``weight * exp((t - window_start) / half_life)``.
    Dividing every stored value by the same factor yields the decayed scores,
    so the ranking is identical and each update touches a single entry.

    One instance is created per process and injected into the
    :class:`~shopreco.engine.RecommendationEngine`.  All methods are
    thread-safe.

    Args:
        half_life_seconds: Decay time constant.
    """

    def __init__(self, half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS) -> None:
        if half_life_seconds <= 0:
            raise ValueError(f"half_life_seconds must be positive, got {half_life_seconds!r}")
        self._half_life = half_life_seconds
        self._lock = threading.Lock()
        self._item_scores: dict[str, float] = {}
        self._window_start: float | None = None
        self._latest: float | None = None
        self._reset_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def record_global(self, event: InteractionEvent) -> None:
        """Fold *event* into the popularity of its item."""
        weight = EVENT_WEIGHTS[event.kind]
        with self._lock:
            if self._window_start is None:
                self._window_start = event.timestamp
            exponent = (event.timestamp - self._window_start) / self._half_life
            if exponent > _MAX_EXPONENT:
                self._rebase(event.timestamp)
                exponent = 0.0
            self._item_scores[event.item_id] = (
                self._item_scores.get(event.item_id, 0.0) + weight * math.exp(exponent)
            )
            if self._latest is None or event.timestamp > self._latest:
                self._latest = event.timestamp

    def trending(self, n: int) -> list[str]:
        """Return up to *n* item ids by popularity, ties broken by ascending id."""
        return [item_id for item_id, _ in self.top(n)]

    def top(self, n: int) -> list[tuple[str, float]]:
        """Return up to *n* ``(item_id, score)`` pairs from one consistent snapshot."""
        if n <= 0:
            return []
        with self._lock:
            scale = self._scale()
            ranked = sorted(self._item_scores.items(), key=lambda kv: (-kv[1], kv[0]))
        return [(item_id, value * scale) for item_id, value in ranked[:n]]

    def reset(self) -> None:
        """Forget all popularity and start a fresh window."""
        with self._lock:
            cleared = len(self._item_scores)
            self._item_scores = {}
            self._window_start = None
            self._latest = None
        logger.info("Trending window reset (%d items cleared).", cleared)

    def start_reset_loop(
        self, interval_seconds: int = DEFAULT_RESET_INTERVAL_SECONDS
    ) -> None:
        """Start a background daemon thread that calls :meth:`reset` every interval.

        Safe to call multiple times; only one thread is started.
        """
        if self._reset_thread is not None and self._reset_thread.is_alive():
            return
        self._reset_thread = threading.Thread(
            target=self._reset_loop,
            args=(interval_seconds,),
            name="trending-reset",
            daemon=True,
        )
        self._reset_thread.start()
        logger.debug("Trending reset loop started (interval=%ds).", interval_seconds)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _scale(self) -> float:
        """Factor turning stored values into decayed scores. Caller holds the lock."""
        if self._window_start is None or self._latest is None:
            return 1.0
        return math.exp(-(self._latest - self._window_start) / self._half_life)

    def _rebase(self, new_start: float) -> None:
        """Move ``window_start`` to *new_start*. Caller holds the lock."""
        scale = math.exp(-(new_start - self._window_start) / self._half_life)
        self._item_scores = {k: v * scale for k, v in self._item_scores.items()}
        self._window_start = new_start
        logger.debug("Trending window re-anchored at %.3f.", new_start)

    def _reset_loop(self, interval_seconds: int) -> None:
        """Periodically reset the window. Runs in a daemon thread."""
        while True:
            time.sleep(interval_seconds)
            self.reset()
