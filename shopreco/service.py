"""gRPC servicer: the entry point for all inbound calls from the storefront."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from shopreco.engine import RecommendationEngine
from shopreco.errors import InvalidEvent, UnknownItem, UnknownSession

logger = logging.getLogger(__name__)

SERVICE_NAME = "shopreco.Recommender"

_RECOMMENDATION_WARN_THRESHOLD_MS = 50

_METHODS = ("StartSession", "EndSession", "RecordInteraction", "Recommend", "Trending")


class RecommenderServicer:
    """Exposes :class:`~shopreco.engine.RecommendationEngine` over gRPC.

    Messages are ``google.protobuf.Struct`` values so the storefront can send
    the same camelCased JSON payloads it builds for the UI.  Register with
    :func:`add_servicer_to_server`.

    ====================  =================================  ==========================
    Method                Request fields                     Response fields
    ====================  =================================  ==========================
    StartSession          (none)                             ``sessionId``
    EndSession            ``sessionId``                      (none)
    RecordInteraction     ``sessionId``, ``event``           (none)
    Recommend             ``sessionId``, ``n``               ``items``
    Trending              ``n``                              ``itemIds``, ``trendScore``
    ====================  =================================  ==========================

    When a request omits ``n``, *default_count* items are returned.

    Args:
        engine: The :class:`~shopreco.engine.RecommendationEngine`.
        default_count: Number of items for requests without ``n``.
    """

    def __init__(self, engine: RecommendationEngine, default_count: int = 4) -> None:
        self._engine = engine
        self._default_count = default_count

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def StartSession(self, request: Struct, context: Any) -> Struct:
        result = self._invoke(context, "starting session", self._engine.start_session)
        if result is None:
            return Struct()
        return _to_struct({"sessionId": result})

    def EndSession(self, request: Struct, context: Any) -> Struct:
        payload = _to_dict(request)
        self._invoke(
            context, "ending session", self._engine.end_session, payload.get("sessionId", "")
        )
        return Struct()

    # ------------------------------------------------------------------
    # Fire-and-forget events
    # ------------------------------------------------------------------

    def RecordInteraction(self, request: Struct, context: Any) -> Struct:
        """Record one shopper interaction.

        ``event`` carries ``itemId``, ``kind``, ``timestamp`` and, for timed
        views, ``durationSeconds``.
        """
        payload = _to_dict(request)
        self._invoke(
            context,
            "recording interaction",
            self._engine.record_interaction,
            payload.get("sessionId", ""),
            payload.get("event") or {},
        )
        return Struct()

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def Recommend(self, request: Struct, context: Any) -> Struct:
        """Return the session's top ``n`` items with raw score and match percentage."""
        payload = _to_dict(request)
        session_id = payload.get("sessionId", "")

        start_ms = time.monotonic() * 1000
        try:
            ranked = self._invoke(
                context, "generating recommendations", self._recommend, session_id, payload
            )
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _RECOMMENDATION_WARN_THRESHOLD_MS:
                logger.warning(
                    "Recommend for session=%r took %.1fms", session_id, elapsed_ms
                )
            else:
                logger.debug("Recommend for session=%r took %.1fms", session_id, elapsed_ms)

        if ranked is None:
            return Struct()
        return _to_struct(
            {
                "items": [
                    {
                        "itemId": entry.item_id,
                        "score": entry.score,
                        "matchPercentage": entry.match_percentage,
                    }
                    for entry in ranked
                ]
            }
        )

    def Trending(self, request: Struct, context: Any) -> Struct:
        payload = _to_dict(request)
        top = self._invoke(context, "ranking trending items", self._trending, payload)
        if top is None:
            return Struct()
        return _to_struct(
            {
                "itemIds": [item_id for item_id, _ in top],
                "trendScore": dict(top),
            }
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recommend(self, session_id: str, payload: dict[str, Any]) -> Any:
        return self._engine.recommend(session_id, self._count(payload))

    def _trending(self, payload: dict[str, Any]) -> Any:
        return self._engine.trending_with_scores(self._count(payload))

    def _count(self, payload: dict[str, Any]) -> int:
        """Return the requested ``n``, or the default when it is absent.

        Raises:
            ValueError: If ``n`` is not a whole number.
        """
        value = payload.get("n")
        if value is None:
            return self._default_count
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"n must be a whole number, got {value!r}")
        if not float(value).is_integer():
            raise ValueError(f"n must be a whole number, got {value!r}")
        return int(value)

    @staticmethod
    def _invoke(context: Any, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Call *fn* and translate failures into gRPC status codes.

        Returns ``None`` after setting the status on *context* when *fn*
        raises.
        """
        try:
            return fn(*args)
        except (InvalidEvent, ValueError) as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
        except (UnknownSession, UnknownItem) as exc:
            context.set_code(grpc.StatusCode.NOT_FOUND)
            context.set_details(str(exc))
        except Exception:
            logger.exception("Unexpected error %s (args=%r)", action, args)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details(f"Internal error {action}.")
        return None


def add_servicer_to_server(servicer: RecommenderServicer, server: grpc.Server) -> None:
    """Register every :class:`RecommenderServicer` method on *server*."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=Struct.FromString,
            response_serializer=Struct.SerializeToString,
        )
        for name in _METHODS
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


def _to_dict(message: Struct) -> dict[str, Any]:
    return json_format.MessageToDict(message)


def _to_struct(payload: dict[str, Any]) -> Struct:
    message = Struct()
    message.update(payload)
    return message
