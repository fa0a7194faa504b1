"""
Student service.
"""

import dataclasses
from typing import List

from shared.config import BaseConfig
from shared.errors import InvalidInputError, NotFoundError
from shared.logging import get_logger

from ..models import Student, StudentInput, build_student
from ..persistence.base import StudentRepository


class StudentService:
    """Student CRUD plus vote bookkeeping. Reads are not cached."""

    def __init__(self, repository: StudentRepository, config: BaseConfig):
        self.repository = repository
        self.config = config
        self.logger = get_logger("elections.service.students")
        self.audit = get_logger("elections.audit")

    async def get_all(self) -> List[Student]:
        return await self.repository.find_all()

    async def get_by_id(self, record_id: int) -> Student:
        student = await self.repository.find_by_id(record_id)
        if student is None:
            raise NotFoundError(f"Student not found with id: {record_id}", {"id": record_id})
        return student

    async def get_by_student_id(self, student_id: str) -> Student:
        student = await self.repository.find_by_student_id(student_id)
        if student is None:
            raise NotFoundError(
                f"Student not found with student ID: {student_id}", {"student_id": student_id}
            )
        return student

    async def get_by_voting_status(self, has_voted: bool) -> List[Student]:
        return await self.repository.find_by_voting_status(has_voted)

    async def create(self, data: StudentInput) -> Student:
        # New students have never voted, whatever the request says
        student = self._build(data, has_voted=False)
        created = await self.repository.save(student)
        self.logger.info("Student created", id=created.id, student_id=created.student_id)
        return created

    async def update(self, record_id: int, data: StudentInput) -> Student:
        existing = await self.get_by_id(record_id)
        has_voted = existing.has_voted if data.has_voted is None else data.has_voted
        student = self._build(data, has_voted=has_voted, record_id=record_id)

        updated = await self.repository.update(record_id, student)
        self.logger.info("Student updated", id=record_id)
        return updated

    async def mark_as_voted(self, record_id: int) -> Student:
        student = await self.get_by_id(record_id)

        if not self.config.voting_enabled:
            raise InvalidInputError("Voting is currently disabled", {"id": record_id})
        if student.has_voted:
            raise InvalidInputError("Student has already voted", {"id": record_id})
        if not student.can_vote(self.config.min_voter_year, self.config.max_voter_year):
            raise InvalidInputError(
                f"Student in year {student.year_of_study} is not eligible to vote", {"id": record_id}
            )

        updated = await self.repository.update(record_id, dataclasses.replace(student, has_voted=True))
        self.audit.info(
            "Vote recorded",
            action="VOTE_CAST",
            id=record_id,
            student_id=updated.student_id,
        )
        return updated

    async def delete(self, record_id: int) -> None:
        if not await self.repository.exists_by_id(record_id):
            raise NotFoundError(f"Student not found with id: {record_id}", {"id": record_id})
        await self.repository.delete_by_id(record_id)
        self.logger.info("Student deleted", id=record_id)

    async def count(self) -> int:
        return await self.repository.count()

    def _build(self, data: StudentInput, has_voted: bool, record_id=None) -> Student:
        return build_student(
            data.name,
            data.student_id,
            data.faculty,
            data.year_of_study,
            has_voted,
            min_year=self.config.min_voter_year,
            max_year=self.config.max_voter_year,
            record_id=record_id,
        )
