import asyncio

import pytest

from qrpay.db.dal import Database
from qrpay.db.migrate import CURRENT_SCHEMA_VERSION, SCHEMA_VERSION_KEY, apply_migrations
from qrpay.models.payment import QRFormat
from qrpay.services.cache import CacheKey, PayloadCache
from qrpay.services.preferences import PreferencesStore, StoredPreferences
from qrpay.services.stats_flusher import StatsFlusher


@pytest.fixture
def store(tmp_path) -> PreferencesStore:
    db_path = tmp_path / "prefs.sqlite3"
    apply_migrations(db_path)
    return PreferencesStore(Database(db_path))


@pytest.fixture
def broken_store(tmp_path) -> PreferencesStore:
    # A directory cannot be opened as a database file
    return PreferencesStore(Database(tmp_path))


def test_migrations_record_version(tmp_path):
    db_path = tmp_path / "v.sqlite3"
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION
    stored = Database(db_path).get_meta_many([SCHEMA_VERSION_KEY])
    assert stored == {SCHEMA_VERSION_KEY: str(CURRENT_SCHEMA_VERSION)}
    # Re-running is a no-op
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION


def test_newer_schema_is_refused(tmp_path):
    db_path = tmp_path / "v.sqlite3"
    apply_migrations(db_path)
    Database(db_path).set_meta_many({SCHEMA_VERSION_KEY: str(CURRENT_SCHEMA_VERSION + 1)})
    with pytest.raises(RuntimeError):
        apply_migrations(db_path)


def test_fresh_store_loads_defaults(store):
    assert store.load() == StoredPreferences()


def test_fields_roundtrip(store):
    assert store.save_fields(11.65, 1000.0, 11650.0, True, "47")
    prefs = store.load()
    assert prefs.rate == 11.65
    assert prefs.amount_a == 1000.0
    assert prefs.amount_b == 11650.0
    assert prefs.contract_enabled is True
    assert prefs.contract_number == "47"


def test_empty_field_keeps_last_value(store):
    store.save_fields(10.0, 100.0, 1000.0, False, "22")
    store.save_fields(12.0, None, 1200.0, False, "22")
    prefs = store.load()
    assert prefs.rate == 12.0
    assert prefs.amount_a == 100.0


def test_counters_roundtrip(store):
    assert store.save_counters(5, 2)
    prefs = store.load()
    assert (prefs.cache_hits, prefs.cache_misses) == (5, 2)


def test_garbage_values_fall_back(store, tmp_path):
    Database(tmp_path / "prefs.sqlite3").set_meta_many(
        {"exchange_rate": "abc", "rmb_amount": "inf", "cache_hits": "-3"}
    )
    prefs = store.load()
    assert prefs.rate is None
    assert prefs.amount_a is None
    assert prefs.cache_hits == 0


def test_unavailable_store_is_not_fatal(broken_store, caplog):
    assert broken_store.load() == StoredPreferences()
    assert broken_store.save_fields(1.0, 1.0, 1.0, False, "22") is False
    assert broken_store.save_counters(1, 1) is False
    assert "preference store unavailable" in caplog.text


class TestStatsFlusher:
    def _cache_with_traffic(self) -> PayloadCache:
        cache = PayloadCache(capacity=4)
        key = CacheKey("1.00", "10.00", QRFormat.FAST_PAYMENT)
        cache.insert(key, "img", 1)
        cache.lookup(key)
        cache.lookup(CacheKey("2.00", "20.00", QRFormat.FAST_PAYMENT))
        return cache

    def test_flush_writes_only_changes(self, store):
        cache = self._cache_with_traffic()
        flusher = StatsFlusher(cache, store, interval_seconds=60)
        assert flusher.flush() is True
        assert flusher.flush() is False
        prefs = store.load()
        assert (prefs.cache_hits, prefs.cache_misses) == (1, 1)

    def test_failed_flush_is_retried(self, broken_store):
        flusher = StatsFlusher(self._cache_with_traffic(), broken_store, interval_seconds=60)
        assert flusher.flush() is False
        assert flusher.flush() is False

    def test_rejects_non_positive_interval(self, store):
        with pytest.raises(ValueError):
            StatsFlusher(PayloadCache(), store, interval_seconds=0)

    @pytest.mark.asyncio
    async def test_periodic_flush_and_final_flush_on_stop(self, store):
        cache = self._cache_with_traffic()
        flusher = StatsFlusher(cache, store, interval_seconds=0.05)
        await flusher.start()
        assert flusher.is_running
        await asyncio.sleep(0.2)
        assert store.load().cache_hits == 1

        cache.lookup(CacheKey("1.00", "10.00", QRFormat.FAST_PAYMENT))
        await flusher.stop()
        assert not flusher.is_running
        assert store.load().cache_hits == 2

    @pytest.mark.asyncio
    async def test_double_start_is_ignored(self, store):
        flusher = StatsFlusher(PayloadCache(), store, interval_seconds=60)
        await flusher.start()
        await flusher.start()
        await flusher.stop()
        await flusher.stop()
        assert not flusher.is_running
