from datetime import timedelta
import threading

import pytest

from neynar_webhook.caches import DeduplicationCache, ResponseCache, normalize_cache_key


class FakeTimer:
    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def advance(self, seconds: float) -> None:
        self._current += seconds

    def __call__(self) -> float:
        return self._current


def test_check_and_mark_reports_first_sighting_only():
    cache = DeduplicationCache(timer=FakeTimer())

    assert cache.check_and_mark("0xabc") is True
    assert cache.check_and_mark("0xabc") is False
    assert cache.check_and_mark("0xdef") is True


def test_dedup_entries_stay_visible_until_ttl_then_expire():
    timer = FakeTimer()
    cache = DeduplicationCache(max_entries=10, ttl=timedelta(minutes=10), timer=timer)

    assert cache.check_and_mark("0xabc") is True
    timer.advance(599)
    assert cache.check_and_mark("0xabc") is False

    timer.advance(1)
    assert cache.check_and_mark("0xabc") is True


def test_dedup_cache_never_exceeds_max_entries():
    cache = DeduplicationCache(max_entries=3, ttl=timedelta(minutes=10), timer=FakeTimer())

    for index in range(10):
        cache.check_and_mark(f"0x{index}")
        assert len(cache) <= 3

    # Least recently inserted ids are evicted first.
    assert cache.check_and_mark("0x9") is False
    assert cache.check_and_mark("0x0") is True


def test_exactly_one_concurrent_caller_sees_first_time():
    cache = DeduplicationCache()
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(32)

    def worker():
        barrier.wait()
        outcome = cache.check_and_mark("0xsame")
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(32)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert results.count(False) == 31


def test_response_cache_normalizes_keys():
    cache = ResponseCache(timer=FakeTimer())

    cache.set("  What's the best Charizard?  ", "Base Set, always.")

    assert cache.get("what's the best charizard?") == "Base Set, always."
    assert cache.get("WHAT'S THE BEST CHARIZARD?\n") == "Base Set, always."
    assert cache.get("something else") is None


def test_response_cache_entries_expire_after_ttl():
    timer = FakeTimer()
    cache = ResponseCache(ttl=timedelta(minutes=5), timer=timer)

    cache.set("hello", "hi there")
    timer.advance(299)
    assert cache.get("hello") == "hi there"

    timer.advance(1)
    assert cache.get("hello") is None
    assert len(cache) == 0


def test_response_cache_evicts_least_recently_used():
    cache = ResponseCache(max_entries=2, timer=FakeTimer())

    cache.set("a", "1")
    cache.set("b", "2")
    assert cache.get("a") == "1"
    cache.set("c", "3")

    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.get("c") == "3"


def test_normalize_cache_key_casefolds_and_trims():
    assert normalize_cache_key("  Straße\t") == "strasse"


@pytest.mark.parametrize("factory", [DeduplicationCache, ResponseCache])
@pytest.mark.parametrize(
    "kwargs",
    [{"max_entries": 0}, {"ttl": timedelta(seconds=0)}],
)
def test_invalid_configuration_raises_value_error(factory, kwargs):
    with pytest.raises(ValueError):
        factory(**kwargs)
