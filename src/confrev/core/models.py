"""Core domain models for users, conferences, papers and reviews."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .ids import new_id


class Role(str, Enum):
    """Closed set of capabilities a user can hold."""

    AUTHOR = "AUTHOR"
    REVIEWER = "REVIEWER"
    ORGANIZER = "ORGANIZER"


class PaperStatus(str, Enum):
    """Lifecycle states of a submitted paper."""

    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    ACCEPTED = "ACCEPTED"
    # Reserved for organizer action; no transition produces it yet.
    REJECTED = "REJECTED"


class ReviewStatus(str, Enum):
    """Decision state of a single review."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class User(BaseModel):
    """A platform user with exactly one role."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: Role


class Conference(BaseModel):
    """An event with a date range, an organizer and a reviewer pool."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: date
    end_date: date
    organizer_id: str
    # Pool order is significant for auto-assignment; membership is unique.
    reviewer_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_dates(self) -> "Conference":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class Paper(BaseModel):
    """A versioned submission tied to one conference and one author."""

    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    status: PaperStatus = PaperStatus.SUBMITTED
    version: int = Field(1, ge=1)
    conference_id: str
    author_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Review(BaseModel):
    """One reviewer's decision record for one paper."""

    id: str = Field(default_factory=new_id)
    paper_id: str
    reviewer_id: str
    status: ReviewStatus = ReviewStatus.PENDING
    feedback: Optional[str] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# Read models: records returned with their related entities embedded.


class UserSummary(BaseModel):
    """Public identity of a user shown next to records they touch."""

    id: str
    name: str
    email: Optional[str] = None


class ConferenceSummary(BaseModel):
    id: str
    name: str


class ConferenceDetail(Conference):
    """A conference with its organizer and reviewer pool resolved to users."""

    organizer: Optional[UserSummary] = None
    reviewers: List[UserSummary] = Field(default_factory=list)


class ReviewDetail(Review):
    reviewer: Optional[UserSummary] = None


class PaperSummary(Paper):
    """A paper with its conference and author names."""

    conference: Optional[ConferenceSummary] = None
    author: Optional[UserSummary] = None


class PaperDetail(PaperSummary):
    """A paper with its reviews, each naming its reviewer."""

    reviews: List[ReviewDetail] = Field(default_factory=list)


class ReviewAssignment(Review):
    """A review as its reviewer sees it, with the paper under review."""

    paper: Optional[PaperSummary] = None
