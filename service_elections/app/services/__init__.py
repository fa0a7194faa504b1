"""
Business services for Elections Service.
"""

from .candidates import CandidateService
from .elections import CachingElectionService
from .students import StudentService

__all__ = ["CachingElectionService", "CandidateService", "StudentService"]
