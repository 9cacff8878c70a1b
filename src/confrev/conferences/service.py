"""Conference management for organizers."""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..auth.context import AuthContext
from ..core.errors import NotFoundError, ValidationError
from ..core.models import Conference, ConferenceDetail, Role, User, UserSummary
from ..storage.base import Repository
from ..utils.logging import get_logger
from .pool import ReviewerPool

logger = get_logger(__name__)


class ConferenceDraft(BaseModel):
    """Editable conference attributes as supplied by an organizer."""

    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ConferenceService:
    """Create, edit, delete and staff conferences."""

    def __init__(self, repo: Repository, pool: Optional[ReviewerPool] = None) -> None:
        self.repo = repo
        self.pool = pool or ReviewerPool(repo)

    def _load(self, conference_id: str) -> Conference:
        conference = self.repo.get_conference(conference_id)
        if conference is None:
            raise NotFoundError("Conference", conference_id)
        return conference

    def get(self, conference_id: str) -> Conference:
        return self._load(conference_id)

    def list_conferences(self, organizer_id: Optional[str] = None) -> List[Conference]:
        return self.repo.list_conferences(organizer_id=organizer_id)

    def describe(self, conference: Conference) -> ConferenceDetail:
        """``conference`` with organizer and reviewers resolved to users."""
        people = {u.id: u for u in self.repo.list_users()}

        def summary(user_id: str) -> Optional[UserSummary]:
            user = people.get(user_id)
            return UserSummary(id=user.id, name=user.name, email=user.email) if user else None

        reviewers = [summary(uid) for uid in conference.reviewer_ids]
        return ConferenceDetail(
            **conference.model_dump(),
            organizer=summary(conference.organizer_id),
            reviewers=[r for r in reviewers if r is not None],
        )

    def detail(self, conference_id: str) -> ConferenceDetail:
        return self.describe(self._load(conference_id))

    def list_details(self) -> List[ConferenceDetail]:
        return [self.describe(c) for c in self.list_conferences()]

    def create(self, ctx: AuthContext, draft: ConferenceDraft) -> Conference:
        ctx.require("manage_conference", "Only organizers can create conferences")
        if not (draft.name and draft.location and draft.start_date and draft.end_date):
            raise ValidationError("Name, location, start date and end date are required")
        try:
            conference = Conference(
                name=draft.name,
                location=draft.location,
                description=draft.description,
                start_date=draft.start_date,
                end_date=draft.end_date,
                organizer_id=ctx.user_id,
            )
        except PydanticValidationError as exc:
            raise ValidationError(str(exc.errors()[0]["msg"])) from exc
        conference = self.repo.add_conference(conference)
        logger.info(f"Conference '{conference.name}' created", extra={"conference_id": conference.id})
        return conference

    def update(self, ctx: AuthContext, conference_id: str, draft: ConferenceDraft) -> Conference:
        """Apply the fields set on ``draft``; unset fields keep their value."""
        conference = self._load(conference_id)
        ctx.require_owner(conference.organizer_id, "Only the organizer can edit this conference")
        changes = draft.model_dump(exclude_unset=True)
        for key in ("name", "location", "start_date", "end_date"):
            if key in changes and not changes[key]:
                raise ValidationError(f"{key} cannot be empty")
        try:
            updated = Conference.model_validate({**conference.model_dump(), **changes})
        except PydanticValidationError as exc:
            raise ValidationError(str(exc.errors()[0]["msg"])) from exc
        updated = self.repo.update_conference(updated)
        logger.info("Conference updated", extra={"conference_id": conference_id})
        return updated

    def delete(self, ctx: AuthContext, conference_id: str) -> None:
        conference = self._load(conference_id)
        ctx.require_owner(conference.organizer_id, "Only the organizer can delete this conference")
        self.repo.delete_conference(conference_id)
        logger.info("Conference deleted", extra={"conference_id": conference_id})

    def assign_reviewers(self, ctx: AuthContext, conference_id: str, reviewer_ids: Sequence[str]) -> Conference:
        conference = self._load(conference_id)
        ctx.require_owner(conference.organizer_id, "Only the organizer can assign reviewers")
        self.pool.set_reviewers(conference, reviewer_ids)
        return self._load(conference_id)

    def reviewer_candidates(self) -> List[User]:
        """All users who could be placed in a reviewer pool."""
        return self.repo.list_users(role=Role.REVIEWER)
