"""Preference store: per-session affinity profiles and the decay/accumulate maths."""

from __future__ import annotations

import logging
import math
import threading
import uuid
from dataclasses import dataclass, field

from shopreco.errors import UnknownSession
from shopreco.models import (
    EVENT_WEIGHTS,
    CatalogItem,
    EventKind,
    InteractionEvent,
    PreferenceProfile,
    SessionState,
)

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_SECONDS = 3600.0
DEFAULT_PRICE_ALPHA = 0.3

# A timed view earns one extra point per 20 seconds, up to 60 seconds.
_DURATION_CAP_SECONDS = 60.0
_DURATION_DIVISOR = 20.0


def event_weight(event: InteractionEvent) -> float:
    """Return the affinity contribution of *event* to its item's category and tags.

    ========================  ==============================
    Event                     Weight
    ========================  ==============================
    view                      1
    viewWithDuration          ``1 + min(duration, 60) / 20``
    addToCart                 5
    addToWishlist             3
    ========================  ==============================
    """
    weight = EVENT_WEIGHTS[event.kind]
    if event.kind is EventKind.VIEW_WITH_DURATION:
        weight += min(event.duration_seconds, _DURATION_CAP_SECONDS) / _DURATION_DIVISOR
    return weight


def apply_event(
    profile: PreferenceProfile,
    event: InteractionEvent,
    item: CatalogItem,
    *,
    half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
    alpha: float = DEFAULT_PRICE_ALPHA,
) -> PreferenceProfile:
    """Return a new profile with *event* folded into *profile*.

    Existing weights are first decayed by ``exp(-dt / half_life_seconds)``
    where ``dt`` is the time since the profile was last updated.  An event
    stamped earlier than ``last_updated`` (late delivery) decays nothing, and
    ``last_updated`` never moves backwards.

    The price affinity moves towards the item price only for cart and
    wishlist events; the first such event seeds it with the item price.

    *profile* is left untouched.
    """
    factor = 1.0
    last_updated = event.timestamp
    if profile.last_updated is not None:
        elapsed = max(0.0, event.timestamp - profile.last_updated)
        factor = math.exp(-elapsed / half_life_seconds)
        last_updated = max(profile.last_updated, event.timestamp)

    category_weights = {k: w * factor for k, w in profile.category_weights.items()}
    tag_weights = {k: w * factor for k, w in profile.tag_weights.items()}

    delta = event_weight(event)
    category_weights[item.category] = category_weights.get(item.category, 0.0) + delta
    for tag in item.tags:
        tag_weights[tag] = tag_weights.get(tag, 0.0) + delta

    price_affinity = profile.price_affinity
    if event.kind.is_intent:
        if price_affinity is None:
            price_affinity = item.price
        else:
            price_affinity = alpha * item.price + (1.0 - alpha) * price_affinity

    return PreferenceProfile(
        category_weights=category_weights,
        tag_weights=tag_weights,
        price_affinity=price_affinity,
        last_updated=last_updated,
        event_count=profile.event_count + 1,
    )


@dataclass
class _SessionSlot:
    profile: PreferenceProfile = field(default_factory=PreferenceProfile)
    state: SessionState = SessionState.CREATED
    lock: threading.Lock = field(default_factory=threading.Lock)


class PreferenceStore:
    """Thread-safe in-memory map of active sessions to their profiles.

    Each session has its own lock; :class:`~shopreco.engine.RecommendationEngine`
    holds it across read-modify-write so updates to one session are
    serialised while different sessions never wait on each other.  Profiles
    live only as long as their session and are never shared between sessions.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: dict[str, _SessionSlot] = {}

    def create(self) -> str:
        """Open a new session with an empty profile and return its id."""
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = _SessionSlot()
        logger.info("Started session %s.", session_id)
        return session_id

    def discard(self, session_id: str) -> None:
        """Drop *session_id* and its profile.

        Raises:
            UnknownSession: If the session does not exist.
        """
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise UnknownSession(session_id)
        logger.info("Ended session %s.", session_id)

    def get(self, session_id: str) -> PreferenceProfile:
        """Return the current profile for *session_id*.

        Raises:
            UnknownSession: If the session does not exist.
        """
        return self._slot(session_id).profile

    def put(self, session_id: str, profile: PreferenceProfile) -> None:
        """Store *profile* as the current one and mark the session active.

        Raises:
            UnknownSession: If the session was ended in the meantime.
        """
        with self._lock:
            slot = self._slot(session_id)
            slot.profile = profile
            slot.state = SessionState.ACTIVE

    def state(self, session_id: str) -> SessionState:
        return self._slot(session_id).state

    def session_lock(self, session_id: str) -> threading.Lock:
        """Return the write lock guarding *session_id*'s profile."""
        return self._slot(session_id).lock

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _slot(self, session_id: str) -> _SessionSlot:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise UnknownSession(session_id) from None
