"""
Elections service for the University Elections API.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import status

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config

from .cache import KeyValueCache
from .models import (
    CacheStatsResponse,
    CandidateInput,
    CandidateResponse,
    CountResponse,
    DeleteResponse,
    ElectionInput,
    ElectionResponse,
    StudentInput,
    StudentResponse,
)
from .persistence import (
    InMemoryCandidateRepository,
    InMemoryElectionRepository,
    InMemoryStudentRepository,
    PostgresCandidateRepository,
    PostgresDatabase,
    PostgresElectionRepository,
    PostgresStudentRepository,
)
from .services import CachingElectionService, CandidateService, StudentService
from .services.elections import ElectionCacheEntry

SERVICE_NAME = "elections"
SERVICE_PORT = 8080


class ElectionsService(BaseService):
    """Elections service implementation and composition root."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.database: Optional[PostgresDatabase] = None
        self._build_repositories()

        # One cache instance for the lifetime of the process
        self.election_cache: KeyValueCache[ElectionCacheEntry] = KeyValueCache("elections")

        self.elections = CachingElectionService(self.election_repository, self.election_cache, self.metrics)
        self.candidates = CandidateService(self.candidate_repository, self.election_repository, self.config)
        self.students = StudentService(self.student_repository, self.config)

        self._setup_root_routes()
        self._setup_election_routes()
        self._setup_candidate_routes()
        self._setup_student_routes()
        self._setup_cache_routes()

    def _build_repositories(self):
        backend = self.config.storage_backend.lower()
        if backend == "postgres":
            self.database = PostgresDatabase(
                self.config.postgres_dsn,
                min_size=self.config.postgres_min_pool_size,
                max_size=self.config.postgres_max_pool_size,
                command_timeout=self.config.postgres_command_timeout,
            )
            self.election_repository = PostgresElectionRepository(self.database)
            self.candidate_repository = PostgresCandidateRepository(self.database)
            self.student_repository = PostgresStudentRepository(self.database)
        elif backend == "memory":
            self.election_repository = InMemoryElectionRepository()
            self.candidate_repository = InMemoryCandidateRepository()
            self.student_repository = InMemoryStudentRepository()
            self.election_repository.on_delete(self.candidate_repository.remove_for_election)
        else:
            raise ValueError(f"Unknown storage backend: {self.config.storage_backend}")

        self.logger.info("Repositories configured", backend=backend)

    def _setup_root_routes(self):

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "University Elections API",
                "version": "1.0.0",
                "capabilities": ["elections", "candidates", "students", "caching"],
                "storage_backend": self.config.storage_backend,
            }

    def _setup_election_routes(self):
        """Set up election routes."""

        @self.app.get("/api/elections", response_model=List[ElectionResponse])
        async def get_all_elections():
            elections = await self.elections.get_all()
            return [ElectionResponse.from_entity(e) for e in elections]

        @self.app.get("/api/elections/count", response_model=CountResponse)
        async def count_elections():
            return CountResponse(count=await self.elections.count())

        @self.app.get("/api/elections/{election_id}", response_model=ElectionResponse)
        async def get_election(election_id: int):
            return ElectionResponse.from_entity(await self.elections.get_by_id(election_id))

        @self.app.post("/api/elections", response_model=ElectionResponse, status_code=status.HTTP_201_CREATED)
        async def create_election(request: ElectionInput):
            return ElectionResponse.from_entity(await self.elections.create(request))

        @self.app.put("/api/elections/{election_id}", response_model=ElectionResponse)
        async def update_election(election_id: int, request: ElectionInput):
            return ElectionResponse.from_entity(await self.elections.update(election_id, request))

        @self.app.delete("/api/elections/{election_id}", response_model=DeleteResponse)
        async def delete_election(election_id: int):
            await self.elections.delete(election_id)
            return DeleteResponse(message="Election deleted successfully", id=str(election_id))

    def _setup_candidate_routes(self):
        """Set up candidate routes."""

        @self.app.get("/api/candidates", response_model=List[CandidateResponse])
        async def get_all_candidates():
            return [CandidateResponse.from_entity(c) for c in await self.candidates.get_all()]

        @self.app.get("/api/candidates/count", response_model=CountResponse)
        async def count_candidates():
            return CountResponse(count=await self.candidates.count())

        @self.app.get("/api/candidates/election/{election_id}", response_model=List[CandidateResponse])
        async def get_candidates_by_election(election_id: int):
            candidates = await self.candidates.get_by_election_id(election_id)
            return [CandidateResponse.from_entity(c) for c in candidates]

        @self.app.get("/api/candidates/{candidate_id}", response_model=CandidateResponse)
        async def get_candidate(candidate_id: int):
            return CandidateResponse.from_entity(await self.candidates.get_by_id(candidate_id))

        @self.app.post("/api/candidates", response_model=CandidateResponse, status_code=status.HTTP_201_CREATED)
        async def create_candidate(request: CandidateInput):
            return CandidateResponse.from_entity(await self.candidates.create(request))

        @self.app.put("/api/candidates/{candidate_id}", response_model=CandidateResponse)
        async def update_candidate(candidate_id: int, request: CandidateInput):
            return CandidateResponse.from_entity(await self.candidates.update(candidate_id, request))

        @self.app.delete("/api/candidates/{candidate_id}", response_model=DeleteResponse)
        async def delete_candidate(candidate_id: int):
            await self.candidates.delete(candidate_id)
            return DeleteResponse(message="Candidate deleted successfully", id=str(candidate_id))

    def _setup_student_routes(self):
        """Set up student routes."""

        @self.app.get("/api/students", response_model=List[StudentResponse])
        async def get_all_students():
            return [StudentResponse.from_entity(s) for s in await self.students.get_all()]

        @self.app.get("/api/students/count", response_model=CountResponse)
        async def count_students():
            return CountResponse(count=await self.students.count())

        @self.app.get("/api/students/studentId/{student_id}", response_model=StudentResponse)
        async def get_student_by_student_id(student_id: str):
            return StudentResponse.from_entity(await self.students.get_by_student_id(student_id))

        @self.app.get("/api/students/voted/{has_voted}", response_model=List[StudentResponse])
        async def get_students_by_voting_status(has_voted: bool):
            students = await self.students.get_by_voting_status(has_voted)
            return [StudentResponse.from_entity(s) for s in students]

        @self.app.get("/api/students/{record_id}", response_model=StudentResponse)
        async def get_student(record_id: int):
            return StudentResponse.from_entity(await self.students.get_by_id(record_id))

        @self.app.post("/api/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
        async def create_student(request: StudentInput):
            return StudentResponse.from_entity(await self.students.create(request))

        @self.app.put("/api/students/{record_id}", response_model=StudentResponse)
        async def update_student(record_id: int, request: StudentInput):
            return StudentResponse.from_entity(await self.students.update(record_id, request))

        @self.app.post("/api/students/{record_id}/vote", response_model=StudentResponse)
        async def mark_student_as_voted(record_id: int):
            return StudentResponse.from_entity(await self.students.mark_as_voted(record_id))

        @self.app.delete("/api/students/{record_id}", response_model=DeleteResponse)
        async def delete_student(record_id: int):
            await self.students.delete(record_id)
            return DeleteResponse(message="Student deleted successfully", id=str(record_id))

    def _setup_cache_routes(self):
        """Set up cache diagnostics routes."""

        @self.app.get("/api/cache/stats", response_model=CacheStatsResponse)
        async def get_cache_stats():
            return CacheStatsResponse(**self.election_cache.stats())

        @self.app.delete("/api/cache")
        async def clear_cache():
            self.election_cache.clear()
            return {"success": True, "cleared_at": datetime.now().isoformat()}

    async def _check_dependencies(self):
        """Check elections service dependencies."""
        dependencies = {}

        if self.database is not None:
            dependencies["postgres"] = "ok" if await self.database.health_check() else "error"

        return dependencies

    async def start(self):
        """Start elections service components."""
        if self.database is not None:
            await self.database.start()
        self.logger.info("Elections service started", backend=self.config.storage_backend)

    async def stop(self):
        """Stop elections service components."""
        if self.database is not None:
            await self.database.stop()
        self.logger.info("Elections service stopped")


def create_app(config: Optional[ServiceConfig] = None):
    """Create elections service application."""
    service = ElectionsService(config)
    return service.app


if __name__ == "__main__":
    service = ElectionsService(get_config(SERVICE_NAME, SERVICE_PORT))
    service.run()
