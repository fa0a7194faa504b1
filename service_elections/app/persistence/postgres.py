"""
PostgreSQL persistence layer for Elections Service.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import DuplicateResourceError, NotFoundError, PersistenceError
from ..models import Candidate, Election, Student
from .base import CandidateRepository, ElectionRepository, StudentRepository


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS elections (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        start_date DATE NOT NULL,
        end_date DATE NOT NULL,
        academic_year VARCHAR(20) NOT NULL,
        CHECK (start_date <= end_date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS candidates (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        faculty VARCHAR(255) NOT NULL,
        year_of_study INTEGER NOT NULL,
        campaign TEXT,
        election_id INTEGER NOT NULL REFERENCES elections(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS students (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        student_id VARCHAR(50) NOT NULL UNIQUE,
        faculty VARCHAR(255) NOT NULL,
        year_of_study INTEGER NOT NULL,
        has_voted BOOLEAN NOT NULL DEFAULT FALSE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_candidates_election ON candidates(election_id);",
    "CREATE INDEX IF NOT EXISTS idx_students_has_voted ON students(has_voted);",
)


class PostgresDatabase:
    """Owns the asyncpg pool shared by the repositories."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10, command_timeout: float = 30):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.logger = get_logger("elections.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the pool and create tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
            await self._create_tables()
            self.logger.info("PostgreSQL persistence started")

        except (asyncpg.PostgresError, OSError) as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise PersistenceError(f"Failed to start PostgreSQL persistence: {e}")

    async def stop(self):
        """Close the pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)

    @asynccontextmanager
    async def connection(self, operation: str):
        """Acquire a connection, translating driver errors for `operation`."""
        if self.pool is None:
            raise PersistenceError("PostgreSQL persistence is not started", {"operation": operation})
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError as e:
            raise DuplicateResourceError(getattr(e, "detail", None) or str(e), {"operation": operation})
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self.logger.error("Database operation failed", operation=operation, error=str(e))
            raise PersistenceError(f"Failed to {operation}: {e}", {"operation": operation})

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError):
            return False


def _rows_affected(status: str) -> int:
    """Parse asyncpg command status such as 'UPDATE 1' or 'DELETE 0'."""
    return int(status.split()[-1])


class _PostgresTable(ABC):
    """Shared single-table operations."""

    table = ""
    label = ""

    def __init__(self, db: PostgresDatabase):
        self.db = db
        self.logger = get_logger(f"elections.persistence.postgres.{self.table}")

    @abstractmethod
    def _from_row(self, row: Any):
        """Map a database row to an entity."""

    async def find_by_id(self, entity_id: int):
        async with self.db.connection(f"fetch {self.label}") as conn:
            row = await conn.fetchrow(f"SELECT * FROM {self.table} WHERE id = $1", entity_id)
        return self._from_row(row) if row else None

    async def delete_by_id(self, entity_id: int) -> None:
        async with self.db.connection(f"delete {self.label}") as conn:
            status = await conn.execute(f"DELETE FROM {self.table} WHERE id = $1", entity_id)

        if _rows_affected(status) == 0:
            raise NotFoundError(f"{self.label.title()} not found with id: {entity_id}")
        self.logger.info(f"{self.label.title()} deleted", id=entity_id)

    async def exists_by_id(self, entity_id: int) -> bool:
        async with self.db.connection(f"check {self.label}") as conn:
            return bool(await conn.fetchval(
                f"SELECT EXISTS(SELECT 1 FROM {self.table} WHERE id = $1)", entity_id
            ))

    async def count(self) -> int:
        async with self.db.connection(f"count {self.table}") as conn:
            count = await conn.fetchval(f"SELECT COUNT(*) FROM {self.table}")
        return count or 0


class PostgresElectionRepository(_PostgresTable, ElectionRepository):
    """Elections stored in PostgreSQL."""

    table = "elections"
    label = "election"

    def _from_row(self, row) -> Election:
        return Election(
            id=row["id"],
            name=row["name"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            academic_year=row["academic_year"],
        )

    async def save(self, election: Election) -> Election:
        async with self.db.connection("save election") as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO elections (name, start_date, end_date, academic_year)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                """,
                election.name, election.start_date, election.end_date, election.academic_year
            )
        saved = self._from_row(row)
        self.logger.info("Election saved", id=saved.id, name=saved.name)
        return saved

    async def find_all(self) -> List[Election]:
        async with self.db.connection("fetch elections") as conn:
            rows = await conn.fetch("SELECT * FROM elections ORDER BY start_date DESC, id")
        return [self._from_row(row) for row in rows]

    async def update(self, entity_id: int, election: Election) -> Election:
        async with self.db.connection("update election") as conn:
            row = await conn.fetchrow(
                """
                UPDATE elections
                SET name = $1, start_date = $2, end_date = $3, academic_year = $4
                WHERE id = $5
                RETURNING *
                """,
                election.name, election.start_date, election.end_date, election.academic_year, entity_id
            )
        if row is None:
            raise NotFoundError(f"Election not found with id: {entity_id}")
        return self._from_row(row)


class PostgresCandidateRepository(_PostgresTable, CandidateRepository):
    """Candidates stored in PostgreSQL."""

    table = "candidates"
    label = "candidate"

    def _from_row(self, row) -> Candidate:
        return Candidate(
            id=row["id"],
            name=row["name"],
            faculty=row["faculty"],
            year_of_study=row["year_of_study"],
            campaign=row["campaign"],
            election_id=row["election_id"],
        )

    async def save(self, candidate: Candidate) -> Candidate:
        async with self.db.connection("save candidate") as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO candidates (name, faculty, year_of_study, campaign, election_id)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING *
                """,
                candidate.name, candidate.faculty, candidate.year_of_study,
                candidate.campaign, candidate.election_id
            )
        saved = self._from_row(row)
        self.logger.info("Candidate saved", id=saved.id, election_id=saved.election_id)
        return saved

    async def find_all(self) -> List[Candidate]:
        async with self.db.connection("fetch candidates") as conn:
            rows = await conn.fetch("SELECT * FROM candidates ORDER BY id")
        return [self._from_row(row) for row in rows]

    async def find_by_election_id(self, election_id: int) -> List[Candidate]:
        async with self.db.connection("fetch candidates") as conn:
            rows = await conn.fetch(
                "SELECT * FROM candidates WHERE election_id = $1 ORDER BY id", election_id
            )
        return [self._from_row(row) for row in rows]

    async def count_by_election_id(self, election_id: int) -> int:
        async with self.db.connection("count candidates") as conn:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM candidates WHERE election_id = $1", election_id
            )
        return count or 0

    async def update(self, entity_id: int, candidate: Candidate) -> Candidate:
        async with self.db.connection("update candidate") as conn:
            row = await conn.fetchrow(
                """
                UPDATE candidates
                SET name = $1, faculty = $2, year_of_study = $3, campaign = $4, election_id = $5
                WHERE id = $6
                RETURNING *
                """,
                candidate.name, candidate.faculty, candidate.year_of_study,
                candidate.campaign, candidate.election_id, entity_id
            )
        if row is None:
            raise NotFoundError(f"Candidate not found with id: {entity_id}")
        return self._from_row(row)


class PostgresStudentRepository(_PostgresTable, StudentRepository):
    """Students stored in PostgreSQL."""

    table = "students"
    label = "student"

    def _from_row(self, row) -> Student:
        return Student(
            id=row["id"],
            name=row["name"],
            student_id=row["student_id"],
            faculty=row["faculty"],
            year_of_study=row["year_of_study"],
            has_voted=row["has_voted"],
        )

    async def save(self, student: Student) -> Student:
        async with self.db.connection("save student") as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO students (name, student_id, faculty, year_of_study, has_voted)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING *
                """,
                student.name, student.student_id, student.faculty,
                student.year_of_study, student.has_voted
            )
        saved = self._from_row(row)
        self.logger.info("Student saved", id=saved.id, student_id=saved.student_id)
        return saved

    async def find_all(self) -> List[Student]:
        async with self.db.connection("fetch students") as conn:
            rows = await conn.fetch("SELECT * FROM students ORDER BY id")
        return [self._from_row(row) for row in rows]

    async def find_by_student_id(self, student_id: str) -> Optional[Student]:
        async with self.db.connection("fetch student") as conn:
            row = await conn.fetchrow("SELECT * FROM students WHERE student_id = $1", student_id)
        return self._from_row(row) if row else None

    async def find_by_voting_status(self, has_voted: bool) -> List[Student]:
        async with self.db.connection("fetch students") as conn:
            rows = await conn.fetch(
                "SELECT * FROM students WHERE has_voted = $1 ORDER BY id", has_voted
            )
        return [self._from_row(row) for row in rows]

    async def update(self, entity_id: int, student: Student) -> Student:
        async with self.db.connection("update student") as conn:
            row = await conn.fetchrow(
                """
                UPDATE students
                SET name = $1, student_id = $2, faculty = $3, year_of_study = $4, has_voted = $5
                WHERE id = $6
                RETURNING *
                """,
                student.name, student.student_id, student.faculty,
                student.year_of_study, student.has_voted, entity_id
            )
        if row is None:
            raise NotFoundError(f"Student not found with id: {entity_id}")
        return self._from_row(row)
