"""Error types raised by the recommendation core."""

from __future__ import annotations


class RecommenderError(Exception):
    """Base class for all errors raised by :mod:`shopreco`."""


class InvalidEvent(RecommenderError, ValueError):
    """A raw interaction event could not be turned into an :class:`InteractionEvent`."""


class InvalidEventKind(InvalidEvent):
    """The event ``kind`` is not one of the known :class:`EventKind` values."""


class InvalidDuration(InvalidEvent):
    """A duration was supplied where none is allowed, or is missing or negative."""


class UnknownSession(RecommenderError, LookupError):
    """The session id was never started or has already been ended."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown or ended session {session_id!r}")
        self.session_id = session_id


class UnknownItem(RecommenderError, LookupError):
    """The item referenced by an event does not resolve against the catalogue."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item {item_id!r} is not in the catalogue")
        self.item_id = item_id
