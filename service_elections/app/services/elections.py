"""
Election service with read-through caching.
"""

from typing import List, Optional, Tuple, Union

from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..cache import KeyValueCache
from ..models import Election, ElectionInput, build_election
from ..persistence.base import ElectionRepository

# Every election key lives under this namespace so one prefix drops them all
ELECTIONS_NAMESPACE = "elections:"
ALL_ELECTIONS_KEY = ELECTIONS_NAMESPACE + "all"
ELECTION_KEY_PREFIX = ELECTIONS_NAMESPACE + "id:"

ElectionCacheEntry = Union[Election, Tuple[Election, ...]]


def election_key(election_id: int) -> str:
    return f"{ELECTION_KEY_PREFIX}{election_id}"


class CachingElectionService:
    """Election CRUD fronted by a read-through, write-invalidate cache.

    Reads consult the cache first and populate it on a miss. Writes go to
    the repository and only after they succeed drop the affected keys:
    create drops the whole namespace, update and delete drop the per-id
    key and the collection key. Validation runs before any store or cache
    access. count() is never cached.
    """

    CACHE_TYPE = "elections"

    def __init__(
        self,
        repository: ElectionRepository,
        cache: KeyValueCache[ElectionCacheEntry],
        metrics: Optional[MetricsCollector] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("elections.service.elections")

    def _record_lookup(self, hit: bool) -> None:
        if self.metrics is None:
            return
        if hit:
            self.metrics.record_cache_hit(self.CACHE_TYPE)
        else:
            self.metrics.record_cache_miss(self.CACHE_TYPE)

    def _record_invalidation(self, scope: str) -> None:
        if self.metrics is not None:
            self.metrics.record_cache_invalidation(self.CACHE_TYPE, scope)

    async def get_all(self) -> List[Election]:
        cached = self.cache.get(ALL_ELECTIONS_KEY)
        self._record_lookup(cached is not None)
        if cached is not None:
            return list(cached)

        elections = await self.repository.find_all()
        self.cache.put(ALL_ELECTIONS_KEY, tuple(elections))
        return list(elections)

    async def get_by_id(self, election_id: int) -> Election:
        key = election_key(election_id)
        cached = self.cache.get(key)
        self._record_lookup(cached is not None)
        if cached is not None:
            return cached

        election = await self.repository.find_by_id(election_id)
        if election is None:
            raise NotFoundError(
                f"Election not found with id: {election_id}", {"election_id": election_id}
            )

        self.cache.put(key, election)
        return election

    async def create(self, data: ElectionInput) -> Election:
        election = build_election(data.name, data.start_date, data.end_date, data.academic_year)
        created = await self.repository.save(election)

        removed = self.cache.invalidate_pattern(ELECTIONS_NAMESPACE)
        self._record_invalidation("namespace")
        self.logger.info("Election created", election_id=created.id, name=created.name,
                         invalidated=removed)
        return created

    async def update(self, election_id: int, data: ElectionInput) -> Election:
        await self._require_exists(election_id)
        election = build_election(
            data.name, data.start_date, data.end_date, data.academic_year, election_id=election_id
        )
        updated = await self.repository.update(election_id, election)

        self._invalidate_election(election_id)
        self.logger.info("Election updated", election_id=election_id)
        return updated

    async def delete(self, election_id: int) -> None:
        await self._require_exists(election_id)
        await self.repository.delete_by_id(election_id)

        self._invalidate_election(election_id)
        self.logger.info("Election deleted", election_id=election_id)

    async def count(self) -> int:
        return await self.repository.count()

    async def _require_exists(self, election_id: int) -> None:
        if not await self.repository.exists_by_id(election_id):
            raise NotFoundError(
                f"Election not found with id: {election_id}", {"election_id": election_id}
            )

    def _invalidate_election(self, election_id: int) -> None:
        self.cache.invalidate(election_key(election_id))
        self.cache.invalidate(ALL_ELECTIONS_KEY)
        self._record_invalidation("entry")
