"""Core domain dataclasses shared across all recommender modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shopreco.errors import InvalidDuration, InvalidEvent, InvalidEventKind


class EventKind(str, Enum):
    """Categories of shopper interaction tracked by the system."""

    VIEW = "view"
    VIEW_WITH_DURATION = "viewWithDuration"
    ADD_TO_CART = "addToCart"
    ADD_TO_WISHLIST = "addToWishlist"

    @property
    def is_intent(self) -> bool:
        """True for kinds that signal purchase intent rather than idle browsing."""
        return self in (EventKind.ADD_TO_CART, EventKind.ADD_TO_WISHLIST)


# Base engagement weight per event kind.  A timed view additionally earns a
# duration bonus in the preference profile, but not in trending.
EVENT_WEIGHTS: dict[EventKind, float] = {
    EventKind.VIEW: 1.0,
    EventKind.VIEW_WITH_DURATION: 1.0,
    EventKind.ADD_TO_CART: 5.0,
    EventKind.ADD_TO_WISHLIST: 3.0,
}


class SessionState(str, Enum):
    """Lifecycle of a shopper session.  Ended sessions are discarded entirely."""

    CREATED = "created"
    ACTIVE = "active"


@dataclass(frozen=True)
class CatalogItem:
    """A single product in the storefront catalogue.

    Attributes:
        id: Unique, immutable product identifier.
        category: One label from a small closed set (e.g. ``"Tops"``).
        tags: Free-form product labels (e.g. ``"casual"``, ``"summer"``).
        price: Non-negative unit price.
        name: Display name; not used for scoring.
    """

    id: str
    category: str
    tags: frozenset[str] = frozenset()
    price: float = 0.0
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))
        if self.price < 0:
            raise ValueError(f"Price must be non-negative, got {self.price!r}")


@dataclass(frozen=True)
class InteractionEvent:
    """A single shopper interaction, consumed once by the engine.

    ``duration_seconds`` is present for, and only for,
    :attr:`EventKind.VIEW_WITH_DURATION`; any other combination is rejected
    at construction.

    Attributes:
        item_id: The product involved.
        kind: The category of interaction.
        timestamp: Monotonic time of occurrence, in seconds.
        duration_seconds: How long the product detail stayed open.
    """

    item_id: str
    kind: EventKind
    timestamp: float
    duration_seconds: float | None = None

    def __post_init__(self) -> None:
        try:
            kind = EventKind(self.kind)
        except ValueError:
            raise InvalidEventKind(f"Unknown event kind {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)

        if not _is_finite_number(self.timestamp):
            raise InvalidEvent(f"Timestamp must be a finite number, got {self.timestamp!r}")

        if kind is EventKind.VIEW_WITH_DURATION:
            if self.duration_seconds is None:
                raise InvalidDuration("viewWithDuration requires duration_seconds")
            if not _is_finite_number(self.duration_seconds) or self.duration_seconds < 0:
                raise InvalidDuration(
                    f"Duration must be a non-negative number, got {self.duration_seconds!r}"
                )
        elif self.duration_seconds is not None:
            raise InvalidDuration(f"{kind.value} events do not carry a duration")

    @classmethod
    def view(cls, item_id: str, timestamp: float) -> InteractionEvent:
        return cls(item_id, EventKind.VIEW, timestamp)

    @classmethod
    def timed_view(
        cls, item_id: str, timestamp: float, duration_seconds: float
    ) -> InteractionEvent:
        return cls(item_id, EventKind.VIEW_WITH_DURATION, timestamp, duration_seconds)

    @classmethod
    def add_to_cart(cls, item_id: str, timestamp: float) -> InteractionEvent:
        return cls(item_id, EventKind.ADD_TO_CART, timestamp)

    @classmethod
    def add_to_wishlist(cls, item_id: str, timestamp: float) -> InteractionEvent:
        return cls(item_id, EventKind.ADD_TO_WISHLIST, timestamp)


@dataclass
class PreferenceProfile:
    """Decaying affinity state for a single shopper session.

    Weights only ever shrink through decay and grow through new events, so
    they never go negative.  They are compared relative to each other, never
    against an absolute scale.

    The field set is also the serialization contract for any adapter that
    snapshots a profile (see :meth:`to_dict`).

    Attributes:
        category_weights: Accumulated affinity per category label.
        tag_weights: Accumulated affinity per tag label.
        price_affinity: Exponential moving average of prices of items the
            shopper carted or wishlisted.  ``None`` until the first such event.
        last_updated: Timestamp of the latest contributing event.
        event_count: Number of events folded into this profile.
    """

    category_weights: dict[str, float] = field(default_factory=dict)
    tag_weights: dict[str, float] = field(default_factory=dict)
    price_affinity: float | None = None
    last_updated: float | None = None
    event_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.event_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "categoryWeight": dict(self.category_weights),
            "tagWeight": dict(self.tag_weights),
            "priceAffinity": self.price_affinity,
            "lastUpdated": self.last_updated,
            "eventCount": self.event_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreferenceProfile:
        return cls(
            category_weights={k: float(v) for k, v in data.get("categoryWeight", {}).items()},
            tag_weights={k: float(v) for k, v in data.get("tagWeight", {}).items()},
            price_affinity=data.get("priceAffinity"),
            last_updated=data.get("lastUpdated"),
            event_count=int(data.get("eventCount", 0)),
        )


@dataclass(frozen=True)
class ScoredItem:
    """A catalogue item id paired with its raw relevance score."""

    item_id: str
    score: float

    @property
    def match_percentage(self) -> int:
        """The storefront's "% match" badge value for this score."""
        from shopreco.scoring import match_percentage

        return match_percentage(self.score)


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
