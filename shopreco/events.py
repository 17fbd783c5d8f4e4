"""Validation of raw interaction payloads coming from the storefront UI."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from shopreco.errors import InvalidDuration, InvalidEvent, InvalidEventKind
from shopreco.models import EventKind, InteractionEvent

# Payloads arrive camelCased from the UI but snake_case from Python callers.
_ITEM_ID_KEYS = ("itemId", "item_id")
_DURATION_KEYS = ("durationSeconds", "duration_seconds")


def parse_event(raw: Mapping[str, Any]) -> InteractionEvent:
    """Turn a loosely-typed event description into an :class:`InteractionEvent`.

    Args:
        raw: Mapping with ``itemId``, ``kind``, ``timestamp`` and, for
            ``viewWithDuration`` only, ``durationSeconds``.

    Returns:
        A validated :class:`~shopreco.models.InteractionEvent`.

    Raises:
        InvalidEventKind: If ``kind`` is missing or unknown.
        InvalidDuration: If a duration is present on a kind that does not
            take one, or is missing, non-numeric or negative.
        InvalidEvent: If ``itemId`` or ``timestamp`` is missing or malformed.
    """
    item_id = _first(raw, _ITEM_ID_KEYS)
    if item_id is None or item_id == "":
        raise InvalidEvent("Event is missing itemId")

    kind_value = raw.get("kind")
    try:
        kind = EventKind(kind_value)
    except ValueError:
        raise InvalidEventKind(f"Unknown event kind {kind_value!r}") from None

    try:
        timestamp = float(raw["timestamp"])
    except KeyError:
        raise InvalidEvent("Event is missing timestamp") from None
    except (TypeError, ValueError):
        raise InvalidEvent(f"Malformed timestamp {raw['timestamp']!r}") from None

    duration = _first(raw, _DURATION_KEYS)
    if duration is not None:
        try:
            duration = float(duration)
        except (TypeError, ValueError):
            raise InvalidDuration(f"Malformed duration {duration!r}") from None

    return InteractionEvent(
        item_id=str(item_id),
        kind=kind,
        timestamp=timestamp,
        duration_seconds=duration,
    )


def collapse_view(item_id: str, started_at: float, ended_at: float) -> InteractionEvent:
    """Collapse a ``viewStart``/``viewEnd`` pair into one timed view event.

    The product detail panel reports when it opens and closes; the engine only
    ever sees the resulting ``viewWithDuration`` event, stamped at close time.

    Raises:
        InvalidDuration: If *ended_at* precedes *started_at*.
    """
    if ended_at < started_at:
        raise InvalidDuration(
            f"View of {item_id!r} ended at {ended_at} before it started at {started_at}"
        )
    return InteractionEvent.timed_view(item_id, ended_at, ended_at - started_at)


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None
