import pytest

from qrpay.models.amounts import AmountTriple
from qrpay.models.payment import QRFormat
from qrpay.services.cache import CacheKey, PayloadCache, make_cache_key


def key(n: int, fmt: QRFormat = QRFormat.FAST_PAYMENT) -> CacheKey:
    return CacheKey(f"{n}.00", f"{n * 10}.00", fmt)


class TestLookup:
    def test_miss_counts_and_changes_nothing(self):
        cache = PayloadCache(capacity=2)
        cache.insert(key(1), "img1", 100)
        assert cache.lookup(key(2)) is None
        stats = cache.statistics()
        assert (stats.hits, stats.misses, stats.count, stats.total_bytes) == (0, 1, 1, 100)
        assert key(2) not in cache

    def test_hit_counts_and_keeps_bytes(self):
        cache = PayloadCache(capacity=2)
        cache.insert(key(1), "img1", 100)
        assert cache.lookup(key(1)) == "img1"
        stats = cache.statistics()
        assert (stats.hits, stats.misses, stats.total_bytes) == (1, 0, 100)

    def test_contains_does_not_count(self):
        cache = PayloadCache()
        cache.insert(key(1), "img1", 1)
        assert key(1) in cache
        assert cache.statistics().hits == 0


class TestEviction:
    def test_evicts_least_recent_on_overflow(self):
        cache = PayloadCache(capacity=3)
        for n in range(1, 5):
            cache.insert(key(n), f"img{n}", 10)
        assert cache.keys() == [key(2), key(3), key(4)]
        assert cache.statistics().total_bytes == 30

    def test_lookup_protects_entry(self):
        cache = PayloadCache(capacity=2)
        cache.insert(key(1), "img1", 10)
        cache.insert(key(2), "img2", 20)
        cache.lookup(key(1))
        cache.insert(key(3), "img3", 30)
        assert key(2) not in cache
        assert key(1) in cache and key(3) in cache
        assert cache.statistics().total_bytes == 40

    def test_overwrite_does_not_evict_or_double_count(self):
        cache = PayloadCache(capacity=2)
        cache.insert(key(1), "img1", 10)
        cache.insert(key(2), "img2", 20)
        cache.insert(key(1), "img1b", 15)
        assert len(cache) == 2
        assert cache.keys() == [key(2), key(1)]
        assert cache.statistics().total_bytes == 35
        assert cache.lookup(key(1)) == "img1b"

    def test_unbounded(self):
        cache = PayloadCache(capacity=None)
        for n in range(500):
            cache.insert(key(n), n, 1)
        assert len(cache) == 500
        assert cache.statistics().capacity is None

    def test_formats_are_distinct_keys(self):
        cache = PayloadCache(capacity=5)
        cache.insert(key(1, QRFormat.FAST_PAYMENT), "a", 1)
        cache.insert(key(1, QRFormat.BANK_TRANSFER), "b", 1)
        assert len(cache) == 2


def test_clear_resets_everything():
    cache = PayloadCache(capacity=2)
    cache.insert(key(1), "img1", 10)
    cache.lookup(key(1))
    cache.lookup(key(9))
    cache.clear()
    stats = cache.statistics()
    assert stats.as_dict() == {
        "hits": 0,
        "misses": 0,
        "total_bytes": 0,
        "count": 0,
        "capacity": 2,
    }


def test_restore_counters():
    cache = PayloadCache()
    cache.restore_counters(7, 3)
    stats = cache.statistics()
    assert (stats.hits, stats.misses) == (7, 3)


@pytest.mark.parametrize("capacity", [0, -1])
def test_rejects_non_positive_capacity(capacity):
    with pytest.raises(ValueError):
        PayloadCache(capacity=capacity)


def test_key_is_stable_for_equal_amounts():
    a = AmountTriple(rate=3.0, amount_a=0.1 + 0.2, amount_b=0.9000000000000001)
    b = AmountTriple(rate=3.0, amount_a=0.3, amount_b=0.9)
    assert make_cache_key(a, QRFormat.PLAIN_TEXT) == make_cache_key(b, QRFormat.PLAIN_TEXT)
    assert make_cache_key(b, QRFormat.PLAIN_TEXT) == CacheKey("0.30", "0.90", QRFormat.PLAIN_TEXT)


def test_key_follows_truncated_sum():
    a = AmountTriple(rate=11.655, amount_a=1.0, amount_b=11.655)
    b = AmountTriple(rate=11.66, amount_a=1.0, amount_b=11.66)
    c = AmountTriple(rate=11.659, amount_a=1.0, amount_b=11.659)
    fmt = QRFormat.FAST_PAYMENT
    assert make_cache_key(a, fmt) != make_cache_key(b, fmt)
    assert make_cache_key(a, fmt) == make_cache_key(c, fmt) == CacheKey("1.00", "11.65", fmt)
