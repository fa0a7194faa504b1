"""
Entity and request models for the Elections Service.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field

from shared.errors import InvalidInputError


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class Election:
    """University election."""
    name: str
    start_date: date
    end_date: date
    academic_year: str
    id: Optional[int] = None


@dataclass(frozen=True)
class Candidate:
    """Student standing in an election."""
    name: str
    faculty: str
    year_of_study: int
    election_id: int
    campaign: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class Student:
    """Registered voter."""
    name: str
    student_id: str
    faculty: str
    year_of_study: int
    has_voted: bool = False
    id: Optional[int] = None

    def is_eligible(self, min_year: int = 1, max_year: int = 4) -> bool:
        return min_year <= self.year_of_study <= max_year

    def can_vote(self, min_year: int = 1, max_year: int = 4) -> bool:
        return self.is_eligible(min_year, max_year) and not self.has_voted


def build_election(
    name: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    academic_year: Optional[str],
    election_id: Optional[int] = None,
) -> Election:
    """Validate election fields and construct an Election.

    Raises InvalidInputError naming the first rule that is violated:
    name and academic year must be non-empty, both dates must be present
    and the start date may not fall after the end date.
    """
    if _is_blank(name):
        raise InvalidInputError("Election name cannot be empty", {"field": "name"})
    if start_date is None:
        raise InvalidInputError("Start date cannot be null", {"field": "start_date"})
    if end_date is None:
        raise InvalidInputError("End date cannot be null", {"field": "end_date"})
    if start_date > end_date:
        raise InvalidInputError(
            "Start date must be before end date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
        )
    if _is_blank(academic_year):
        raise InvalidInputError("Academic year cannot be empty", {"field": "academic_year"})

    return Election(
        id=election_id,
        name=name.strip(),
        start_date=start_date,
        end_date=end_date,
        academic_year=academic_year.strip(),
    )


def build_candidate(
    name: Optional[str],
    faculty: Optional[str],
    year_of_study: Optional[int],
    election_id: Optional[int],
    campaign: Optional[str] = None,
    *,
    min_year: int = 2,
    max_year: int = 4,
    candidate_id: Optional[int] = None,
) -> Candidate:
    """Validate candidate fields and construct a Candidate."""
    if _is_blank(name):
        raise InvalidInputError("Candidate name cannot be empty", {"field": "name"})
    if _is_blank(faculty):
        raise InvalidInputError("Candidate faculty cannot be empty", {"field": "faculty"})
    if year_of_study is None:
        raise InvalidInputError("Candidate year of study is required", {"field": "year_of_study"})
    if not min_year <= year_of_study <= max_year:
        raise InvalidInputError(
            f"Candidate must be in year {min_year} to {max_year}. Current year: {year_of_study}",
            {"field": "year_of_study", "min": min_year, "max": max_year}
        )
    if election_id is None:
        raise InvalidInputError("Candidate must be associated with an election", {"field": "election_id"})

    return Candidate(
        id=candidate_id,
        name=name.strip(),
        faculty=faculty.strip(),
        year_of_study=year_of_study,
        election_id=election_id,
        campaign=campaign,
    )


def build_student(
    name: Optional[str],
    student_id: Optional[str],
    faculty: Optional[str],
    year_of_study: Optional[int],
    has_voted: bool = False,
    *,
    min_year: int = 1,
    max_year: int = 4,
    record_id: Optional[int] = None,
) -> Student:
    """Validate student fields and construct a Student."""
    if _is_blank(name):
        raise InvalidInputError("Student name cannot be empty", {"field": "name"})
    if _is_blank(student_id):
        raise InvalidInputError("Student ID cannot be empty", {"field": "student_id"})
    if _is_blank(faculty):
        raise InvalidInputError("Student faculty cannot be empty", {"field": "faculty"})
    if year_of_study is None:
        raise InvalidInputError("Student year of study is required", {"field": "year_of_study"})
    if not min_year <= year_of_study <= max_year:
        raise InvalidInputError(
            f"Student must be in year {min_year} to {max_year}. Current year: {year_of_study}",
            {"field": "year_of_study", "min": min_year, "max": max_year}
        )

    return Student(
        id=record_id,
        name=name.strip(),
        student_id=student_id.strip(),
        faculty=faculty.strip(),
        year_of_study=year_of_study,
        has_voted=has_voted,
    )


class ElectionInput(BaseModel):
    """Request model for creating or replacing an election."""
    name: Optional[str] = Field(None, description="Election name")
    start_date: Optional[date] = Field(None, description="First voting day")
    end_date: Optional[date] = Field(None, description="Last voting day")
    academic_year: Optional[str] = Field(None, description="Academic year label, e.g. 2024/2025")


class ElectionResponse(BaseModel):
    """Response model for election operations."""
    id: int
    name: str
    start_date: date
    end_date: date
    academic_year: str

    @classmethod
    def from_entity(cls, election: Election) -> "ElectionResponse":
        return cls(
            id=election.id,
            name=election.name,
            start_date=election.start_date,
            end_date=election.end_date,
            academic_year=election.academic_year,
        )


class CandidateInput(BaseModel):
    """Request model for creating or replacing a candidate."""
    name: Optional[str] = Field(None, description="Candidate name")
    faculty: Optional[str] = Field(None, description="Faculty")
    year_of_study: Optional[int] = Field(None, description="Current year of study")
    campaign: Optional[str] = Field(None, description="Campaign message")
    election_id: Optional[int] = Field(None, description="Election the candidate stands in")


class CandidateResponse(BaseModel):
    """Response model for candidate operations."""
    id: int
    name: str
    faculty: str
    year_of_study: int
    campaign: Optional[str]
    election_id: int

    @classmethod
    def from_entity(cls, candidate: Candidate) -> "CandidateResponse":
        return cls(
            id=candidate.id,
            name=candidate.name,
            faculty=candidate.faculty,
            year_of_study=candidate.year_of_study,
            campaign=candidate.campaign,
            election_id=candidate.election_id,
        )


class StudentInput(BaseModel):
    """Request model for creating or replacing a student."""
    name: Optional[str] = Field(None, description="Student name")
    student_id: Optional[str] = Field(None, description="University student identifier")
    faculty: Optional[str] = Field(None, description="Faculty")
    year_of_study: Optional[int] = Field(None, description="Current year of study")
    has_voted: Optional[bool] = Field(None, description="Voting status (ignored on create)")


class StudentResponse(BaseModel):
    """Response model for student operations."""
    id: int
    name: str
    student_id: str
    faculty: str
    year_of_study: int
    has_voted: bool

    @classmethod
    def from_entity(cls, student: Student) -> "StudentResponse":
        return cls(
            id=student.id,
            name=student.name,
            student_id=student.student_id,
            faculty=student.faculty,
            year_of_study=student.year_of_study,
            has_voted=student.has_voted,
        )


class CountResponse(BaseModel):
    count: int


class DeleteResponse(BaseModel):
    message: str
    id: str


class CacheStatsResponse(BaseModel):
    name: str
    size: int
    keys: List[str]
