"""
Persistence package for Elections Service.

Repositories share one contract (persistence.base) with two backends:
dict-backed tables for local runs and tests, and asyncpg for PostgreSQL.
"""

from .base import CandidateRepository, CrudRepository, ElectionRepository, StudentRepository
from .memory import InMemoryCandidateRepository, InMemoryElectionRepository, InMemoryStudentRepository
from .postgres import (
    PostgresCandidateRepository,
    PostgresDatabase,
    PostgresElectionRepository,
    PostgresStudentRepository,
)

__all__ = [
    "CrudRepository",
    "ElectionRepository",
    "CandidateRepository",
    "StudentRepository",
    "InMemoryElectionRepository",
    "InMemoryCandidateRepository",
    "InMemoryStudentRepository",
    "PostgresDatabase",
    "PostgresElectionRepository",
    "PostgresCandidateRepository",
    "PostgresStudentRepository",
]
