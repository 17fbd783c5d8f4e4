"""Product catalogue: loads and caches storefront products from a JSON file."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from shopreco.models import CatalogItem

logger = logging.getLogger(__name__)


class ProductCatalogue:
    """Read-only, thread-safe view of the storefront's product catalogue.

    Items keep the order in which they were loaded; that order is the
    non-personalised default ordering used for cold-start sessions.

    The catalogue can be seeded directly with *items*, or pointed at a JSON
    file (a list of ``{"id", "category", "tags", "price", "name"}`` objects)
    that is read by :meth:`refresh` and, optionally, re-read by a background
    daemon thread every *refresh_interval_seconds*.

    Args:
        items: Initial products.
        path: JSON file to load from on :meth:`refresh`.
        refresh_interval_seconds: Interval for :meth:`start_refresh_loop`.
    """

    def __init__(
        self,
        items: Iterable[CatalogItem] = (),
        path: str | Path | None = None,
        refresh_interval_seconds: int = 300,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._refresh_interval = refresh_interval_seconds
        self._lock = threading.RLock()
        self._items: dict[str, CatalogItem] = {}
        self._refresh_thread: threading.Thread | None = None
        self.replace(items)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def replace(self, items: Iterable[CatalogItem]) -> None:
        """Swap the cached products for *items*.

        Raises:
            ValueError: If two items share an id.
        """
        new_items: dict[str, CatalogItem] = {}
        for item in items:
            if item.id in new_items:
                raise ValueError(f"Duplicate catalogue item id {item.id!r}")
            new_items[item.id] = item
        with self._lock:
            self._items = new_items

    def refresh(self) -> None:
        """Re-read the catalogue file and update the cache.

        On failure, logs an error and preserves the existing cache so the
        service can continue running.
        """
        if self._path is None:
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self.replace(item_from_dict(entry) for entry in raw)
            logger.info("Product catalogue refreshed: %d items loaded.", len(self))
        except Exception:
            logger.exception(
                "Failed to refresh product catalogue from %s; keeping existing %d items.",
                self._path,
                len(self),
            )

    def start_refresh_loop(self) -> None:
        """Start a background daemon thread that periodically calls :meth:`refresh`.

        Safe to call multiple times; only one refresh thread is started.
        """
        if self._refresh_thread is not None and self._refresh_thread.is_alive():
            return
        self._refresh_thread = threading.Thread(
            target=self._refresh_loop,
            name="catalogue-refresh",
            daemon=True,
        )
        self._refresh_thread.start()
        logger.debug("Catalogue refresh loop started (interval=%ds).", self._refresh_interval)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_item(self, item_id: str) -> CatalogItem | None:
        """Return a single product by id, or ``None`` if not found."""
        with self._lock:
            return self._items.get(item_id)

    def get_all_items(self) -> list[CatalogItem]:
        """Return a snapshot of all products in catalogue order."""
        with self._lock:
            return list(self._items.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _refresh_loop(self) -> None:
        """Periodically refresh the catalogue. Runs in a daemon thread."""
        while True:
            time.sleep(self._refresh_interval)
            self.refresh()


def item_from_dict(entry: dict[str, Any]) -> CatalogItem:
    """Build a :class:`CatalogItem` from one catalogue file entry."""
    return CatalogItem(
        id=str(entry["id"]),
        category=entry["category"],
        tags=frozenset(entry.get("tags", ())),
        price=float(entry.get("price", 0.0)),
        name=entry.get("name", ""),
    )
