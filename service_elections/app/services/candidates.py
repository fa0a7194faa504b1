"""
Candidate service.
"""

from typing import List

from shared.config import BaseConfig
from shared.errors import InvalidInputError, NotFoundError
from shared.logging import get_logger

from ..models import Candidate, CandidateInput, build_candidate
from ..persistence.base import CandidateRepository, ElectionRepository


class CandidateService:
    """Candidate CRUD with eligibility rules. Reads are not cached."""

    def __init__(
        self,
        repository: CandidateRepository,
        election_repository: ElectionRepository,
        config: BaseConfig,
    ):
        self.repository = repository
        self.election_repository = election_repository
        self.config = config
        self.logger = get_logger("elections.service.candidates")
        self.audit = get_logger("elections.audit")

    async def get_all(self) -> List[Candidate]:
        return await self.repository.find_all()

    async def get_by_id(self, candidate_id: int) -> Candidate:
        candidate = await self.repository.find_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError(
                f"Candidate not found with id: {candidate_id}", {"candidate_id": candidate_id}
            )
        return candidate

    async def get_by_election_id(self, election_id: int) -> List[Candidate]:
        await self._require_election(election_id)
        return await self.repository.find_by_election_id(election_id)

    async def create(self, data: CandidateInput) -> Candidate:
        candidate = self._build(data)
        await self._require_election(candidate.election_id)
        await self._require_capacity(candidate.election_id)

        created = await self.repository.save(candidate)
        self.audit.info(
            "Candidate registered",
            action="CANDIDATE_REGISTERED",
            candidate_id=created.id,
            candidate_name=created.name,
            election_id=created.election_id,
        )
        return created

    async def update(self, candidate_id: int, data: CandidateInput) -> Candidate:
        existing = await self.get_by_id(candidate_id)
        candidate = self._build(data, candidate_id)
        await self._require_election(candidate.election_id)
        if candidate.election_id != existing.election_id:
            await self._require_capacity(candidate.election_id)

        updated = await self.repository.update(candidate_id, candidate)
        self.logger.info("Candidate updated", candidate_id=candidate_id)
        return updated

    async def delete(self, candidate_id: int) -> None:
        if not await self.repository.exists_by_id(candidate_id):
            raise NotFoundError(
                f"Candidate not found with id: {candidate_id}", {"candidate_id": candidate_id}
            )
        await self.repository.delete_by_id(candidate_id)
        self.logger.info("Candidate deleted", candidate_id=candidate_id)

    async def count(self) -> int:
        return await self.repository.count()

    def _build(self, data: CandidateInput, candidate_id=None) -> Candidate:
        return build_candidate(
            data.name,
            data.faculty,
            data.year_of_study,
            data.election_id,
            data.campaign,
            min_year=self.config.min_candidate_year,
            max_year=self.config.max_candidate_year,
            candidate_id=candidate_id,
        )

    async def _require_election(self, election_id: int) -> None:
        if not await self.election_repository.exists_by_id(election_id):
            raise NotFoundError(
                f"Election not found with id: {election_id}", {"election_id": election_id}
            )

    async def _require_capacity(self, election_id: int) -> None:
        limit = self.config.max_candidates_per_election
        if await self.repository.count_by_election_id(election_id) >= limit:
            raise InvalidInputError(
                f"Election {election_id} already has the maximum of {limit} candidates",
                {"election_id": election_id, "max_candidates": limit}
            )
