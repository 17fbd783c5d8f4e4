"""Shared pytest fixtures for all recommender tests."""

from __future__ import annotations

import pytest

from shopreco.models import CatalogItem, PreferenceProfile


T0 = 1_000.0

# ---------------------------------------------------------------------------
# Catalogue item fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def item_a() -> CatalogItem:
    return CatalogItem("A", "Tops", frozenset(), 30.0, "Linen Shirt")


@pytest.fixture
def item_b() -> CatalogItem:
    return CatalogItem("B", "Tops", frozenset(), 32.0, "Cotton Shirt")


@pytest.fixture
def item_c() -> CatalogItem:
    return CatalogItem("C", "Outerwear", frozenset(), 200.0, "Wool Coat")


@pytest.fixture
def abc_items(item_a, item_b, item_c) -> list[CatalogItem]:
    return [item_a, item_b, item_c]


@pytest.fixture
def sample_items(abc_items) -> list[CatalogItem]:
    """Catalogue spanning several categories, tags and price points."""
    extra = [
        CatalogItem("d_floral", "Dresses", frozenset({"floral", "summer"}), 60.0),
        CatalogItem("d_evening", "Dresses", frozenset({"evening", "satin"}), 90.0),
        CatalogItem("t_tank", "Tops", frozenset({"basics", "summer"}), 18.0),
        CatalogItem("b_jeans", "Bottoms", frozenset({"denim", "casual"}), 64.0),
        CatalogItem("o_jacket", "Outerwear", frozenset({"denim", "casual"}), 79.0),
    ]
    return abc_items + extra


# ---------------------------------------------------------------------------
# Profile fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def empty_profile() -> PreferenceProfile:
    """A brand-new session with no history (cold-start case)."""
    return PreferenceProfile()


@pytest.fixture
def summer_profile() -> PreferenceProfile:
    """A session that has been browsing summer dresses around 60."""
    return PreferenceProfile(
        category_weights={"Dresses": 6.0, "Tops": 1.0},
        tag_weights={"summer": 4.0, "floral": 3.0},
        price_affinity=60.0,
        last_updated=T0,
        event_count=4,
    )

