import threading

from mediashelf.services.metadata import BookMetadata
from mediashelf.services.metadata_cache import MetadataCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _meta(title):
    return BookMetadata(title=title)


def test_entry_is_valid_until_ttl_and_absent_after():
    clock = FakeClock()
    cache = MetadataCache(ttl=100, clock=clock)
    cache.put('isbn:1', _meta('One'))

    clock.advance(100 - 0.001)
    assert cache.get('isbn:1').title == 'One'

    clock.advance(0.002)
    assert cache.get('isbn:1') is None
    # evicted as a side effect of the lookup
    assert len(cache) == 0


def test_put_overwrites_and_refreshes_timestamp():
    clock = FakeClock()
    cache = MetadataCache(ttl=100, clock=clock)
    cache.put('k', _meta('Old'))
    clock.advance(90)
    cache.put('k', _meta('New'))
    clock.advance(90)
    assert cache.get('k').title == 'New'


def test_capacity_sweep_removes_expired_and_keeps_fresh_entries():
    clock = FakeClock()
    cache = MetadataCache(ttl=100, max_entries=1000, clock=clock)

    for i in range(500):
        cache.put(f'old:{i}', _meta(f'old {i}'))
    clock.advance(150)
    for i in range(500):
        cache.put(f'new:{i}', _meta(f'new {i}'))
    assert len(cache) == 1000

    cache.put('trigger', _meta('trigger'))

    assert len(cache) == 501
    for i in range(500):
        assert cache.get(f'new:{i}').title == f'new {i}'
    assert cache.get('trigger') is not None


def test_capacity_sweep_without_expired_entries_allows_overflow():
    clock = FakeClock()
    cache = MetadataCache(ttl=100, max_entries=3, clock=clock)
    for i in range(5):
        cache.put(str(i), _meta(str(i)))
    assert len(cache) == 5
    assert all(cache.get(str(i)) is not None for i in range(5))


def test_purge_expired_and_clear():
    clock = FakeClock()
    cache = MetadataCache(ttl=10, clock=clock)
    cache.put('a', _meta('a'))
    clock.advance(20)
    cache.put('b', _meta('b'))

    assert cache.purge_expired() == 1
    assert cache.get('b') is not None

    cache.clear()
    assert len(cache) == 0


def test_concurrent_puts_and_gets_do_not_corrupt_the_cache():
    cache = MetadataCache(ttl=0.0001, max_entries=50)
    errors = []

    def worker(prefix):
        try:
            for i in range(300):
                cache.put(f'{prefix}:{i}', _meta(prefix))
                cache.get(f'{prefix}:{i // 2}')
        except Exception as e:  # pragma: no cover - failure path
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(f't{n}',)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert cache.purge_expired() >= 0
