"""
Repository contracts for Elections Service.
"""

from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

from ..models import Candidate, Election, Student

T = TypeVar("T")


class CrudRepository(ABC, Generic[T]):
    """Generic CRUD contract keyed by integer id.

    Implementations raise NotFoundError from update/delete_by_id when the
    row is missing and PersistenceError when the backing store fails.
    """

    @abstractmethod
    async def save(self, entity: T) -> T:
        """Insert `entity` and return it with its assigned id."""

    @abstractmethod
    async def find_by_id(self, entity_id: int) -> Optional[T]:
        ...

    @abstractmethod
    async def find_all(self) -> List[T]:
        ...

    @abstractmethod
    async def update(self, entity_id: int, entity: T) -> T:
        ...

    @abstractmethod
    async def delete_by_id(self, entity_id: int) -> None:
        ...

    @abstractmethod
    async def exists_by_id(self, entity_id: int) -> bool:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class ElectionRepository(CrudRepository[Election]):
    """Elections, listed newest start date first."""


class CandidateRepository(CrudRepository[Candidate]):
    """Candidates, listed by id."""

    @abstractmethod
    async def find_by_election_id(self, election_id: int) -> List[Candidate]:
        ...

    @abstractmethod
    async def count_by_election_id(self, election_id: int) -> int:
        ...


class StudentRepository(CrudRepository[Student]):
    """Students, listed by id. `student_id` is unique."""

    @abstractmethod
    async def find_by_student_id(self, student_id: str) -> Optional[Student]:
        ...

    @abstractmethod
    async def find_by_voting_status(self, has_voted: bool) -> List[Student]:
        ...
