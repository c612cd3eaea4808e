import random

import pytest

from csim.cache import (
    ADDRESS_MASK,
    Cache,
    CacheConfig,
    InvalidConfiguration,
    Outcome,
    Results,
    decompose,
)


def test_decompose():
    assert decompose(0x1F4, 1, 4) == (15, 1)
    assert decompose(0xFFFFFFFF, 2, 5) == (33554431, 3)
    assert decompose(36, 1, 3) == (2, 0)


def test_decompose_single_set():
    assert decompose(0x1234, 0, 4) == (0x123, 0)


def test_decompose_no_offset_bits():
    assert decompose(0b1011, 2, 0) == (0b10, 0b11)


def test_decompose_recovers_address():
    rng = random.Random(7)
    for _ in range(500):
        address = rng.getrandbits(64)
        setBits = rng.randrange(0, 32)
        offsetBits = rng.randrange(0, 64 - setBits)
        tag, setIndex = decompose(address, setBits, offsetBits)
        assert setIndex < 1 << setBits
        offset = address & ((1 << offsetBits) - 1)
        assert (tag << (setBits + offsetBits)) | (setIndex << offsetBits) | offset == address


def test_decompose_wide_fields():
    assert decompose(ADDRESS_MASK, 60, 4) == (0, (1 << 60) - 1)
    assert decompose(ADDRESS_MASK, 30, 40) == (0, (1 << 24) - 1)
    assert decompose(ADDRESS_MASK, 0, 64) == (0, 0)
    assert decompose(ADDRESS_MASK, 8, 100) == (0, 0)


def test_decompose_truncates_to_64_bits():
    assert decompose((1 << 64) | 5, 1, 0) == (2, 1)


def test_config():
    config = CacheConfig(3, 2, 4)
    assert config.nSets == 8
    assert config.associativity == 2
    assert CacheConfig(0, 1, 0).nSets == 1


@pytest.mark.parametrize("args", [
    (0, 0, 0),
    (-1, 1, 0),
    (0, 1, -1),
    ("1", 1, 0),
    (1, 2.0, 0),
    (True, 1, 0),
])
def test_config_rejects_invalid_shape(args):
    with pytest.raises(InvalidConfiguration):
        CacheConfig(*args)


def test_invalid_configuration_is_value_error():
    with pytest.raises(ValueError, match="associativity"):
        CacheConfig(2, 0, 2)


def test_new_cache_is_empty():
    cache = Cache(CacheConfig(2, 3, 4))
    assert len(cache.sets) == 4
    assert all(len(lines) == 3 for lines in cache.sets)
    assert not any(line.valid for lines in cache.sets for line in lines)
    assert cache.counter == 0
    assert cache.results == Results()


def test_lru_replacement():
    cache = Cache(CacheConfig(0, 2, 0))
    assert cache.access(0, 1) is Outcome.MISS
    assert cache.sets[0][0].lastAccess == 1
    assert cache.access(0, 2) is Outcome.MISS
    assert cache.sets[0][1].lastAccess == 2
    assert cache.access(0, 1) is Outcome.HIT
    assert cache.sets[0][0].lastAccess == 3
    assert cache.access(0, 3) is Outcome.EVICTION

    assert [line.tag for line in cache.sets[0]] == [1, 3]
    assert cache.sets[0][1].lastAccess == 4
    assert cache.results == Results(hits=1, misses=3, evictions=1)


def test_miss_fills_first_free_line():
    cache = Cache(CacheConfig(0, 4, 0))
    cache.access(0, 1)
    cache.access(0, 2)
    cache.sets[0][0].valid = False
    assert cache.access(0, 9) is Outcome.MISS
    assert cache.sets[0][0].tag == 9
    assert not cache.sets[0][2].valid


def test_invalid_line_never_hits():
    cache = Cache(CacheConfig(0, 2, 0))
    assert cache.access(0, 0) is Outcome.MISS
    cache.sets[0][0].valid = False
    assert cache.access(0, 0) is Outcome.MISS
    assert cache.results.hits == 0


def test_select_victim_takes_oldest_line():
    cache = Cache(CacheConfig(0, 3, 0))
    for tag in (10, 11, 12):
        cache.access(0, tag)
    cache.access(0, 10)
    cache.access(0, 12)
    assert cache.selectVictim(0) == 1
    assert cache.access(0, 13) is Outcome.EVICTION
    assert sorted(line.tag for line in cache.sets[0]) == [10, 12, 13]


def test_sets_are_independent():
    cache = Cache(CacheConfig(1, 1, 0))
    assert cache.access(0, 5) is Outcome.MISS
    assert cache.access(1, 5) is Outcome.MISS
    assert cache.access(0, 5) is Outcome.HIT
    assert cache.access(1, 5) is Outcome.HIT
    assert cache.results.evictions == 0


def test_uncounted_access_updates_state_only():
    cache = Cache(CacheConfig(0, 1, 0))
    assert cache.access(0, 1, count=False) is Outcome.MISS
    assert cache.access(0, 2, count=False) is Outcome.EVICTION
    assert cache.results == Results()
    assert cache.counter == 2
    assert cache.access(0, 2) is Outcome.HIT
    assert cache.results == Results(hits=1)


def test_set_index_out_of_range():
    cache = Cache(CacheConfig(1, 1, 0))
    with pytest.raises(IndexError):
        cache.access(2, 0)
    with pytest.raises(IndexError):
        cache.access(-1, 0)


def test_close():
    cache = Cache(CacheConfig(1, 2, 0))
    cache.access(0, 1)
    cache.close()
    assert cache.closed
    cache.close()
    with pytest.raises(RuntimeError):
        cache.access(0, 1)


def test_context_manager_closes_cache():
    with Cache(CacheConfig(1, 2, 0)) as cache:
        assert not cache.closed
    assert cache.closed


def test_context_manager_closes_cache_on_error():
    with pytest.raises(KeyError):
        with Cache(CacheConfig(1, 2, 0)) as cache:
            raise KeyError("boom")
    assert cache.closed


def test_results():
    results = Results(hits=3, misses=1, evictions=1)
    assert results.summary() == "hits:3 misses:1 evictions:1"
    assert results.hitRate() == 0.75
    assert Results().hitRate() == 0.0
    assert repr(results) == "Results(hits=3, misses=1, evictions=1)"
