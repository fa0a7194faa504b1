"""
Unit tests for the caching election service.
"""

import asyncio
import pytest
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import InvalidInputError, NotFoundError, PersistenceError
from shared.metrics import MetricsCollector
from service_elections.app.cache import KeyValueCache
from service_elections.app.models import Election, ElectionInput
from service_elections.app.persistence import InMemoryElectionRepository
from service_elections.app.services import CachingElectionService
from service_elections.app.services.elections import (
    ALL_ELECTIONS_KEY,
    election_key,
)


class CountingElectionRepository(InMemoryElectionRepository):
    """In-memory repository that counts calls per method."""

    def __init__(self):
        super().__init__()
        self.calls = Counter()
        self._calls_lock = threading.Lock()

    def _count(self, name):
        with self._calls_lock:
            self.calls[name] += 1

    async def save(self, entity):
        self._count("save")
        return await super().save(entity)

    async def find_by_id(self, entity_id):
        self._count("find_by_id")
        return await super().find_by_id(entity_id)

    async def find_all(self):
        self._count("find_all")
        return await super().find_all()

    async def update(self, entity_id, entity):
        self._count("update")
        return await super().update(entity_id, entity)

    async def delete_by_id(self, entity_id):
        self._count("delete_by_id")
        return await super().delete_by_id(entity_id)

    async def exists_by_id(self, entity_id):
        self._count("exists_by_id")
        return await super().exists_by_id(entity_id)

    async def count(self):
        self._count("count")
        return await super().count()


def _input(name="Student Council", start=date(2024, 10, 1), end=date(2024, 10, 7),
           academic_year="2024/2025"):
    return ElectionInput(name=name, start_date=start, end_date=end, academic_year=academic_year)


class TestCachingElectionService:
    """Test cases for CachingElectionService."""

    @pytest.fixture
    def repository(self):
        """Create a call-counting in-memory repository."""
        return CountingElectionRepository()

    @pytest.fixture
    def cache(self):
        """Create an empty election cache."""
        return KeyValueCache("elections")

    @pytest.fixture
    def metrics(self):
        """Create an isolated metrics collector."""
        return MetricsCollector("elections-test")

    @pytest.fixture
    def service(self, repository, cache, metrics):
        """Create service under test."""
        return CachingElectionService(repository, cache, metrics)

    async def _seed(self, repository, count=2):
        seeded = []
        for i in range(count):
            seeded.append(await repository.save(Election(
                name=f"Election {i + 1}",
                start_date=date(2024, 10, 1 + i),
                end_date=date(2024, 10, 10 + i),
                academic_year="2024/2025",
            )))
        repository.calls.clear()
        return seeded

    @pytest.mark.asyncio
    async def test_get_all_reads_through_once(self, service, repository):
        """Second get_all is served from cache without querying the store."""
        e1, e2 = await self._seed(repository)

        first = await service.get_all()
        second = await service.get_all()

        # Newest start date first
        assert first == [e2, e1]
        assert second == first
        assert repository.calls["find_all"] == 1

    @pytest.mark.asyncio
    async def test_get_all_returns_independent_lists(self, service, repository):
        """Mutating a returned list does not corrupt the cached collection."""
        await self._seed(repository)

        first = await service.get_all()
        first.clear()

        assert len(await service.get_all()) == 2

    @pytest.mark.asyncio
    async def test_get_all_empty_store_is_cached(self, service, repository, cache):
        """An empty collection is a cacheable value."""
        assert await service.get_all() == []
        assert await service.get_all() == []
        assert repository.calls["find_all"] == 1
        assert cache.get(ALL_ELECTIONS_KEY) == ()

    @pytest.mark.asyncio
    async def test_get_by_id_reads_through_once(self, service, repository, cache):
        """Consecutive get_by_id calls hit the store once."""
        e1, _ = await self._seed(repository)

        first = await service.get_by_id(e1.id)
        second = await service.get_by_id(e1.id)

        assert first == second == e1
        assert repository.calls["find_by_id"] == 1
        assert cache.contains(election_key(e1.id))

    @pytest.mark.asyncio
    async def test_get_by_id_missing_is_not_cached(self, service, cache):
        """Not found propagates and leaves no cache entry."""
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_by_id(5)

        assert exc_info.value.message == "Election not found with id: 5"
        assert not cache.contains(election_key(5))
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_create_invalidates_collection(self, service, repository, cache):
        """Create assigns an id and drops the cached collection."""
        await self._seed(repository)
        await service.get_all()

        created = await service.create(_input(name="  Senate  "))

        assert created.id == 3
        assert created.name == "Senate"
        assert not cache.contains(ALL_ELECTIONS_KEY)

        elections = await service.get_all()
        assert created in elections
        assert repository.calls["find_all"] == 2

    @pytest.mark.asyncio
    async def test_create_drops_whole_namespace(self, service, repository, cache):
        """Create clears per-id entries too but leaves foreign keys alone."""
        e1, e2 = await self._seed(repository)
        await service.get_by_id(e1.id)
        await service.get_by_id(e2.id)
        await service.get_all()
        cache.put("students:all", ())

        await service.create(_input())

        assert cache.keys() == ["students:all"]

    @pytest.mark.asyncio
    async def test_create_invalid_input_touches_nothing(self, service, repository, cache):
        """Validation runs before the store or cache is touched."""
        await self._seed(repository)
        await service.get_all()

        with pytest.raises(InvalidInputError):
            await service.create(_input(start=date(2024, 11, 1), end=date(2024, 10, 1)))

        assert repository.calls["save"] == 0
        assert cache.contains(ALL_ELECTIONS_KEY)

    @pytest.mark.asyncio
    async def test_update_invalid_name_leaves_cache(self, service, repository, cache):
        """An invalid update keeps the per-id and collection entries."""
        await self._seed(repository, count=3)
        cached_all = await service.get_all()
        cached_three = await service.get_by_id(3)

        with pytest.raises(InvalidInputError) as exc_info:
            await service.update(3, _input(name=""))

        assert exc_info.value.message == "Election name cannot be empty"
        assert repository.calls["update"] == 0
        assert cache.get(election_key(3)) == cached_three
        assert list(cache.get(ALL_ELECTIONS_KEY)) == cached_all

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, service, repository):
        """Update of an unknown id fails before validation."""
        with pytest.raises(NotFoundError):
            await service.update(42, _input(name=""))
        assert repository.calls["update"] == 0

    @pytest.mark.asyncio
    async def test_update_then_get_is_fresh(self, service, repository, cache):
        """A read after update never returns the pre-update value."""
        e1, e2 = await self._seed(repository)
        await service.get_by_id(e1.id)
        await service.get_by_id(e2.id)
        await service.get_all()

        updated = await service.update(e1.id, _input(name="Renamed"))

        assert updated.name == "Renamed"
        assert not cache.contains(election_key(e1.id))
        assert not cache.contains(ALL_ELECTIONS_KEY)
        # Entries for other elections survive a targeted invalidation
        assert cache.contains(election_key(e2.id))

        fetched = await service.get_by_id(e1.id)
        assert fetched.name == "Renamed"
        assert repository.calls["find_by_id"] == 3

    @pytest.mark.asyncio
    async def test_delete_invalidates_entry(self, service, repository, cache):
        """Delete removes the row and its cache entries."""
        e1, e2 = await self._seed(repository)
        await service.get_by_id(e1.id)
        await service.get_all()

        await service.delete(e1.id)

        assert not cache.contains(election_key(e1.id))
        assert not cache.contains(ALL_ELECTIONS_KEY)
        assert await service.get_all() == [e2]
        with pytest.raises(NotFoundError):
            await service.get_by_id(e1.id)

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, service, repository):
        """Delete of an unknown id fails without calling delete."""
        with pytest.raises(NotFoundError):
            await service.delete(99)
        assert repository.calls["delete_by_id"] == 0

    @pytest.mark.asyncio
    async def test_count_is_not_cached(self, service, repository, cache):
        """Count always goes to the store."""
        await self._seed(repository, count=3)

        assert await service.count() == 3
        assert await service.count() == 3
        assert repository.calls["count"] == 2
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_concurrent_get_by_id_tasks(self, service, repository):
        """Concurrent tasks agree on the value."""
        await self._seed(repository, count=7)

        results = await asyncio.gather(*(service.get_by_id(7) for _ in range(10)))

        assert all(r == results[0] for r in results)
        assert 1 <= repository.calls["find_by_id"] <= 10

    def test_concurrent_get_by_id_threads(self, repository, cache):
        """Threads each running their own loop share one cache."""
        service = CachingElectionService(repository, cache)
        asyncio.run(self._seed(repository, count=7))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: asyncio.run(service.get_by_id(7)), range(16)))

        assert len(set(results)) == 1
        assert results[0].id == 7
        assert 1 <= repository.calls["find_by_id"] <= 16
        assert cache.get(election_key(7)) == results[0]

    @pytest.mark.asyncio
    async def test_cache_metrics_recorded(self, service, repository, metrics):
        """Hits, misses and invalidations are counted."""
        e1, _ = await self._seed(repository)

        await service.get_by_id(e1.id)
        await service.get_by_id(e1.id)
        await service.create(_input())
        await service.update(e1.id, _input(name="Renamed"))

        assert metrics.get_sample_value("cache_misses_total", {"cache_type": "elections"}) == 1
        assert metrics.get_sample_value("cache_hits_total", {"cache_type": "elections"}) == 1
        assert metrics.get_sample_value(
            "cache_invalidations_total", {"cache_type": "elections", "scope": "namespace"}
        ) == 1
        assert metrics.get_sample_value(
            "cache_invalidations_total", {"cache_type": "elections", "scope": "entry"}
        ) == 1


class TestCachingElectionServicePersistenceFailures:
    """Store failures propagate and never invalidate."""

    @pytest.fixture
    def cache(self):
        """Create a cache pre-populated with election entries."""
        cache = KeyValueCache("elections")
        election = Election(
            id=1, name="Council", start_date=date(2024, 10, 1),
            end_date=date(2024, 10, 7), academic_year="2024/2025"
        )
        cache.put(election_key(1), election)
        cache.put(ALL_ELECTIONS_KEY, (election,))
        return cache

    @pytest.fixture
    def repository(self):
        """Create a store mock whose writes fail."""
        repository = AsyncMock()
        repository.exists_by_id.return_value = True
        repository.save.side_effect = PersistenceError("Failed to save election")
        repository.update.side_effect = PersistenceError("Failed to update election")
        repository.delete_by_id.side_effect = PersistenceError("Failed to delete election")
        return repository

    @pytest.fixture
    def service(self, repository, cache):
        """Create service under test."""
        return CachingElectionService(repository, cache)

    @pytest.mark.asyncio
    async def test_failed_create_keeps_cache(self, service, cache):
        """A failed save does not drop the namespace."""
        with pytest.raises(PersistenceError):
            await service.create(_input())
        assert cache.size() == 2

    @pytest.mark.asyncio
    async def test_failed_update_keeps_cache(self, service, cache):
        """A failed update does not drop the entry."""
        with pytest.raises(PersistenceError):
            await service.update(1, _input(name="Renamed"))
        assert cache.get(election_key(1)).name == "Council"
        assert cache.contains(ALL_ELECTIONS_KEY)

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_cache(self, service, cache):
        """A failed delete does not drop the entry."""
        with pytest.raises(PersistenceError):
            await service.delete(1)
        assert cache.size() == 2

    @pytest.mark.asyncio
    async def test_failed_read_is_not_cached(self, repository):
        """A failed read-through leaves the cache empty."""
        repository.find_all.side_effect = PersistenceError("Failed to fetch elections")
        cache = KeyValueCache("elections")
        service = CachingElectionService(repository, cache)

        with pytest.raises(PersistenceError):
            await service.get_all()
        assert cache.size() == 0
