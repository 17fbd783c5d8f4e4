"""Tests for shopreco.preferences.

These verify the decay and accumulation maths that drive every
recommendation.
"""

from __future__ import annotations

import math
import threading

import pytest

from shopreco.errors import UnknownSession
from shopreco.models import CatalogItem, InteractionEvent, SessionState
from shopreco.preferences import PreferenceStore, apply_event, event_weight

T0 = 1_000.0

HOUR = 3600.0

SHIRT = CatalogItem("s1", "Tops", frozenset({"linen", "summer"}), 30.0)
COAT = CatalogItem("c1", "Outerwear", frozenset({"wool"}), 200.0)


class TestEventWeight:
    def test_view(self) -> None:
        assert event_weight(InteractionEvent.view("s1", T0)) == 1.0

    def test_cart(self) -> None:
        assert event_weight(InteractionEvent.add_to_cart("s1", T0)) == 5.0

    def test_wishlist(self) -> None:
        assert event_weight(InteractionEvent.add_to_wishlist("s1", T0)) == 3.0

    def test_timed_view_adds_duration_bonus(self) -> None:
        event = InteractionEvent.timed_view("s1", T0, 30.0)
        assert event_weight(event) == pytest.approx(2.5)

    def test_timed_view_bonus_is_capped(self) -> None:
        long_view = InteractionEvent.timed_view("s1", T0, 3600.0)
        assert event_weight(long_view) == pytest.approx(4.0)

    def test_zero_duration_equals_plain_view(self) -> None:
        assert event_weight(InteractionEvent.timed_view("s1", T0, 0.0)) == 1.0


class TestApplyEvent:
    def test_adds_weight_to_category_and_tags(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.view("s1", T0), SHIRT)
        assert profile.category_weights == {"Tops": 1.0}
        assert profile.tag_weights == {"linen": 1.0, "summer": 1.0}
        assert profile.last_updated == T0
        assert profile.event_count == 1

    def test_input_profile_is_not_mutated(self, summer_profile) -> None:
        before = summer_profile.to_dict()
        apply_event(summer_profile, InteractionEvent.add_to_cart("s1", T0 + 10), SHIRT)
        assert summer_profile.to_dict() == before

    def test_same_timestamp_accumulates_without_decay(self, empty_profile) -> None:
        profile = empty_profile
        for _ in range(3):
            profile = apply_event(profile, InteractionEvent.view("s1", T0), SHIRT)
        assert profile.category_weights["Tops"] == pytest.approx(3.0)

    def test_existing_weights_decay_with_elapsed_time(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.view("s1", T0), SHIRT)
        profile = apply_event(profile, InteractionEvent.view("c1", T0 + HOUR), COAT)
        assert profile.category_weights["Tops"] == pytest.approx(math.exp(-1.0))
        assert profile.category_weights["Outerwear"] == pytest.approx(1.0)

    def test_repeated_event_after_gap_is_less_than_double(self, empty_profile) -> None:
        event = InteractionEvent.add_to_cart("s1", T0)
        once = apply_event(empty_profile, event, SHIRT)
        twice = apply_event(once, InteractionEvent.add_to_cart("s1", T0 + 10 * HOUR), SHIRT)
        single = once.category_weights["Tops"]
        assert single < twice.category_weights["Tops"] < 2 * single

    def test_half_life_is_configurable(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.view("s1", T0), SHIRT)
        profile = apply_event(
            profile, InteractionEvent.view("c1", T0 + 60), COAT, half_life_seconds=60.0
        )
        assert profile.category_weights["Tops"] == pytest.approx(math.exp(-1.0))

    def test_late_event_does_not_inflate_weights(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.view("s1", T0), SHIRT)
        late = apply_event(profile, InteractionEvent.view("c1", T0 - HOUR), COAT)
        assert late.category_weights["Tops"] == pytest.approx(1.0)
        assert late.last_updated == T0

    def test_weights_never_negative(self, empty_profile) -> None:
        profile = empty_profile
        for i in range(20):
            profile = apply_event(
                profile, InteractionEvent.view("s1", T0 + i * 100 * HOUR), SHIRT
            )
        assert all(w >= 0 for w in profile.category_weights.values())
        assert all(w >= 0 for w in profile.tag_weights.values())


class TestPriceAffinity:
    def test_views_do_not_move_price_affinity(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.view("s1", T0), SHIRT)
        profile = apply_event(profile, InteractionEvent.timed_view("s1", T0, 40.0), SHIRT)
        assert profile.price_affinity is None

    def test_first_intent_seeds_with_item_price(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.add_to_cart("s1", T0), SHIRT)
        assert profile.price_affinity == pytest.approx(30.0)

    def test_moving_average(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.add_to_cart("s1", T0), SHIRT)
        profile = apply_event(profile, InteractionEvent.add_to_wishlist("c1", T0), COAT)
        assert profile.price_affinity == pytest.approx(0.3 * 200.0 + 0.7 * 30.0)

    def test_alpha_is_configurable(self, empty_profile) -> None:
        profile = apply_event(empty_profile, InteractionEvent.add_to_cart("s1", T0), SHIRT)
        profile = apply_event(
            profile, InteractionEvent.add_to_cart("c1", T0), COAT, alpha=1.0
        )
        assert profile.price_affinity == pytest.approx(200.0)


class TestPreferenceStore:
    def test_create_returns_unique_ids(self) -> None:
        store = PreferenceStore()
        ids = {store.create() for _ in range(10)}
        assert len(ids) == 10
        assert len(store) == 10

    def test_new_session_has_empty_profile(self) -> None:
        store = PreferenceStore()
        sid = store.create()
        assert store.get(sid).is_empty
        assert store.state(sid) is SessionState.CREATED

    def test_put_marks_session_active(self, summer_profile) -> None:
        store = PreferenceStore()
        sid = store.create()
        store.put(sid, summer_profile)
        assert store.get(sid) is summer_profile
        assert store.state(sid) is SessionState.ACTIVE

    def test_discard_removes_session(self) -> None:
        store = PreferenceStore()
        sid = store.create()
        store.discard(sid)
        assert len(store) == 0
        with pytest.raises(UnknownSession):
            store.get(sid)

    def test_discard_twice_raises(self) -> None:
        store = PreferenceStore()
        sid = store.create()
        store.discard(sid)
        with pytest.raises(UnknownSession):
            store.discard(sid)

    def test_put_after_discard_raises(self, summer_profile) -> None:
        store = PreferenceStore()
        sid = store.create()
        store.discard(sid)
        with pytest.raises(UnknownSession):
            store.put(sid, summer_profile)

    def test_unknown_session_lock_raises(self) -> None:
        with pytest.raises(UnknownSession):
            PreferenceStore().session_lock("missing")

    def test_sessions_have_independent_locks(self) -> None:
        store = PreferenceStore()
        a, b = store.create(), store.create()
        with store.session_lock(a):
            acquired = store.session_lock(b).acquire(blocking=False)
            assert acquired
            store.session_lock(b).release()

    def test_session_lock_is_stable(self) -> None:
        store = PreferenceStore()
        sid = store.create()
        assert isinstance(store.session_lock(sid), type(threading.Lock()))
        assert store.session_lock(sid) is store.session_lock(sid)
