#!/usr/bin/env python3
"""
Tests for the intent cache: expiry, eviction, fuzzy lookup and variations
"""

from agents.cache.intent_cache import IntentCache
from models.intent_models import ParsedIntent


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_cache(**kwargs):
    clock = FakeClock()
    return IntentCache(clock=clock, **kwargs), clock


def test_cache_key_normalization():
    cache, _ = make_cache()
    assert cache.get_cache_key("  Paris   TRIP ") == "paris trip"
    assert cache.get_cache_key("") == ""


def test_set_and_get_until_ttl_expires():
    cache, clock = make_cache(ttl_seconds=3600)
    cache.set("rome", ParsedIntent(destination="Rome"))

    clock.advance(3599)
    assert cache.get("rome").destination == "Rome"
    assert cache.has("rome")

    clock.advance(2)
    assert cache.get("rome") is None
    assert not cache.has("rome")
    assert len(cache) == 0


def test_oldest_entry_is_evicted_when_full():
    cache, clock = make_cache(max_entries=2)
    cache.set("a", ParsedIntent(destination="Athens"))
    clock.advance(1)
    cache.set("b", ParsedIntent(destination="Berlin"))
    clock.advance(1)
    cache.set("c", ParsedIntent(destination="Cairo"))

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b").destination == "Berlin"
    assert cache.get("c").destination == "Cairo"


def test_overwrite_does_not_evict():
    cache, _ = make_cache(max_entries=2)
    cache.set("a", ParsedIntent(destination="Athens"))
    cache.set("b", ParsedIntent(destination="Berlin"))
    cache.set("a", ParsedIntent(destination="Amsterdam"))

    assert len(cache) == 2
    assert cache.get("a").destination == "Amsterdam"
    assert cache.get("b").destination == "Berlin"


def test_returned_values_are_copies():
    cache, _ = make_cache()
    intent = ParsedIntent(destination="Rome", duration=3)
    cache.set("rome", intent)

    intent.duration = 10
    first = cache.get("rome")
    first.duration = 20

    assert cache.get("rome").duration == 3


def test_get_intent_exact_match():
    cache, _ = make_cache()
    cache.set_intent("Weekend trip to Rome", ParsedIntent(destination="Rome", duration=3))

    cached = cache.get_intent("  weekend   trip to ROME ")
    assert cached.destination == "Rome"
    assert cached.duration == 3


def test_get_intent_fuzzy_match():
    cache, _ = make_cache()
    cache.set_intent("weekend trip to rome with friends", ParsedIntent(destination="Rome"))

    assert cache.get_intent("weekend trip to rome").destination == "Rome"


def test_get_intent_fuzzy_ignores_expired_entries():
    cache, clock = make_cache(ttl_seconds=10)
    cache.set_intent("weekend trip to rome with friends", ParsedIntent(destination="Rome"))
    clock.advance(11)

    assert cache.get_intent("weekend trip to rome") is None


def test_get_intent_miss():
    cache, _ = make_cache()
    cache.set_intent("weekend trip to rome", ParsedIntent(destination="Rome"))

    assert cache.get_intent("sushi") is None


def test_variations_are_stored():
    cache, _ = make_cache()
    cache.set_intent("Please plan a trip to Rome next week", ParsedIntent(destination="Rome"))

    assert cache.has("plan a trip to rome next week")
    assert cache.has("please plan a trip to rome 7 days")
    assert len(cache) == 3


def test_generate_variations():
    cache, _ = make_cache()
    assert cache.generate_variations("can you find me a beach this weekend") == [
        "find me a beach this weekend",
        "can you find me a beach 3 days",
    ]
    assert cache.generate_variations("3 days in London") == []


def test_clean_expired():
    cache, clock = make_cache(ttl_seconds=10)
    cache.set("old", ParsedIntent(destination="Oslo"))
    clock.advance(8)
    cache.set("new", ParsedIntent(destination="Nice"))
    clock.advance(5)

    assert cache.clean_expired() == 1
    assert cache.has("new")
    assert not cache.has("old")


def test_stats_and_clear():
    cache, clock = make_cache(ttl_seconds=100, max_entries=5)
    cache.set_intent("3 days in london", ParsedIntent(destination="London", duration=3))
    clock.advance(4)

    cache.get_intent("3 days in london")
    cache.get_intent("sushi")

    stats = cache.get_cache_stats()
    assert stats["size"] == 1
    assert stats["max_entries"] == 5
    assert stats["ttl_seconds"] == 100
    assert stats["oldest_entry_age_seconds"] == 4
    assert stats["hits"] == 1
    assert stats["misses"] == 1

    cache.clear()
    assert len(cache) == 0
    assert cache.get_cache_stats()["oldest_entry_age_seconds"] is None
