"""
In-memory persistence layer for Elections Service.

Used for local runs and tests. Methods never await while touching the
tables, so each call is atomic on the event loop.
"""

import dataclasses
import itertools
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from shared.errors import DuplicateResourceError, NotFoundError
from shared.logging import get_logger

from ..models import Candidate, Election, Student
from .base import CandidateRepository, ElectionRepository, StudentRepository

T = TypeVar("T")


class _InMemoryTable(Generic[T]):
    """Dict-backed table with auto-incrementing integer ids."""

    entity_label = "Entity"

    def __init__(self):
        self._rows: Dict[int, T] = {}
        self._ids = itertools.count(1)
        self.logger = get_logger(f"elections.persistence.memory.{self.entity_label.lower()}")

    def _sort_key(self, entity: T):
        return entity.id

    def _check_unique(self, entity: T, entity_id: Optional[int]) -> None:
        """Hook for unique constraints."""

    async def save(self, entity: T) -> T:
        self._check_unique(entity, None)
        stored = dataclasses.replace(entity, id=next(self._ids))
        self._rows[stored.id] = stored
        self.logger.info(f"{self.entity_label} saved", id=stored.id)
        return stored

    async def find_by_id(self, entity_id: int) -> Optional[T]:
        return self._rows.get(entity_id)

    async def find_all(self) -> List[T]:
        return sorted(self._rows.values(), key=self._sort_key)

    async def update(self, entity_id: int, entity: T) -> T:
        if entity_id not in self._rows:
            raise NotFoundError(f"{self.entity_label} not found with id: {entity_id}")
        self._check_unique(entity, entity_id)
        stored = dataclasses.replace(entity, id=entity_id)
        self._rows[entity_id] = stored
        self.logger.info(f"{self.entity_label} updated", id=entity_id)
        return stored

    async def delete_by_id(self, entity_id: int) -> None:
        if self._rows.pop(entity_id, None) is None:
            raise NotFoundError(f"{self.entity_label} not found with id: {entity_id}")
        self.logger.info(f"{self.entity_label} deleted", id=entity_id)

    async def exists_by_id(self, entity_id: int) -> bool:
        return entity_id in self._rows

    async def count(self) -> int:
        return len(self._rows)


class InMemoryElectionRepository(_InMemoryTable[Election], ElectionRepository):
    """Elections kept in process memory."""

    entity_label = "Election"

    def __init__(self):
        super().__init__()
        self._on_delete: List[Callable[[int], None]] = []

    def on_delete(self, callback: Callable[[int], None]) -> None:
        """Register a callback run after an election is deleted (cascades)."""
        self._on_delete.append(callback)

    def _sort_key(self, election: Election):
        return (-election.start_date.toordinal(), election.id)

    async def delete_by_id(self, entity_id: int) -> None:
        await super().delete_by_id(entity_id)
        for callback in self._on_delete:
            callback(entity_id)


class InMemoryCandidateRepository(_InMemoryTable[Candidate], CandidateRepository):
    """Candidates kept in process memory."""

    entity_label = "Candidate"

    async def find_by_election_id(self, election_id: int) -> List[Candidate]:
        return [c for c in await self.find_all() if c.election_id == election_id]

    async def count_by_election_id(self, election_id: int) -> int:
        return sum(1 for c in self._rows.values() if c.election_id == election_id)

    def remove_for_election(self, election_id: int) -> None:
        doomed = [cid for cid, c in self._rows.items() if c.election_id == election_id]
        for cid in doomed:
            del self._rows[cid]
        if doomed:
            self.logger.info("Candidates removed with election", election_id=election_id, count=len(doomed))


class InMemoryStudentRepository(_InMemoryTable[Student], StudentRepository):
    """Students kept in process memory."""

    entity_label = "Student"

    def _check_unique(self, student: Student, entity_id: Optional[int]) -> None:
        for existing in self._rows.values():
            if existing.student_id == student.student_id and existing.id != entity_id:
                raise DuplicateResourceError(
                    f"Student ID already exists: {student.student_id}",
                    {"student_id": student.student_id}
                )

    async def find_by_student_id(self, student_id: str) -> Optional[Student]:
        for student in self._rows.values():
            if student.student_id == student_id:
                return student
        return None

    async def find_by_voting_status(self, has_voted: bool) -> List[Student]:
        return [s for s in await self.find_all() if s.has_voted == has_voted]
