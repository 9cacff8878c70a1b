"""Read-side queries over papers and reviews, filtered by role.

Results carry their related records: papers embed their conference,
author and reviews (each with the reviewer's name), and a reviewer's
own reviews embed the paper and its author.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from ..auth.context import AuthContext
from ..core.errors import AuthorizationError, NotFoundError
from ..core.models import (
    ConferenceSummary,
    Paper,
    PaperDetail,
    PaperSummary,
    ReviewAssignment,
    ReviewDetail,
    Role,
    UserSummary,
)
from ..storage.base import Repository


class PaperQueries:
    """Answer "what can this user see" questions."""

    def __init__(self, repo: Repository) -> None:
        self.repo = repo
        self._people: Dict[str, Optional[UserSummary]] = {}

    def _person(self, user_id: str) -> Optional[UserSummary]:
        if user_id not in self._people:
            user = self.repo.get_user(user_id)
            self._people[user_id] = UserSummary(id=user.id, name=user.name) if user else None
        return self._people[user_id]

    def summarize(self, paper: Paper) -> PaperSummary:
        conference = self.repo.get_conference(paper.conference_id)
        return PaperSummary(
            **paper.model_dump(),
            conference=ConferenceSummary(id=conference.id, name=conference.name) if conference else None,
            author=self._person(paper.author_id),
        )

    def describe(self, paper: Paper, reviewer_id: Optional[str] = None) -> PaperDetail:
        """``paper`` with its reviews; only ``reviewer_id``'s review when given."""
        reviews = self.repo.list_reviews(paper_id=paper.id, reviewer_id=reviewer_id)
        return PaperDetail(
            **self.summarize(paper).model_dump(),
            reviews=[
                ReviewDetail(**r.model_dump(), reviewer=self._person(r.reviewer_id))
                for r in reviews
            ],
        )

    def visible_papers(self, ctx: AuthContext) -> List[PaperDetail]:
        """Papers the acting user is involved with.

        Authors see their own submissions and organizers every paper sent
        to their conferences, both with all reviews.  Reviewers see the
        papers they are assigned to, with their own review only.
        """
        if ctx.role is Role.AUTHOR:
            return [self.describe(p) for p in self.repo.list_papers(author_id=ctx.user_id)]
        if ctx.role is Role.REVIEWER:
            paper_ids = [r.paper_id for r in self.repo.list_reviews(reviewer_id=ctx.user_id)]
            return [
                self.describe(p, reviewer_id=ctx.user_id)
                for p in self.repo.list_papers(paper_ids=paper_ids)
            ]
        if ctx.role is Role.ORGANIZER:
            conference_ids = [c.id for c in self.repo.list_conferences(organizer_id=ctx.user_id)]
            return [self.describe(p) for p in self.repo.list_papers(conference_ids=conference_ids)]
        raise AuthorizationError(f"Unknown role {ctx.role!r}")

    def get_paper(self, paper_id: str) -> Paper:
        paper = self.repo.get_paper(paper_id)
        if paper is None:
            raise NotFoundError("Paper", paper_id)
        return paper

    def paper_detail(self, paper_id: str) -> PaperDetail:
        return self.describe(self.get_paper(paper_id))

    def reviews_for_paper(self, paper_id: str) -> List[ReviewDetail]:
        return self.paper_detail(paper_id).reviews

    def my_reviews(self, ctx: AuthContext) -> List[ReviewAssignment]:
        if not ctx.is_reviewer:
            raise AuthorizationError("Only reviewers can access this")
        out = []
        for review in self.repo.list_reviews(reviewer_id=ctx.user_id):
            paper = self.repo.get_paper(review.paper_id)
            out.append(
                ReviewAssignment(
                    **review.model_dump(),
                    paper=self.summarize(paper) if paper else None,
                )
            )
        return out
