"""Reviewer pool assignment for conferences."""

from __future__ import annotations

from typing import List, Sequence

from ..core.errors import ValidationError
from ..core.models import Conference, Role
from ..storage.base import Repository
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ReviewerPool:
    """Maintain the set of reviewers eligible for a conference's papers."""

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def set_reviewers(self, conference: Conference, reviewer_ids: Sequence[str]) -> List[str]:
        """Replace the pool of ``conference`` with ``reviewer_ids``.

        Ids that do not resolve to a user holding the REVIEWER role are
        dropped without error, as are repeated ids.  The surviving ids
        keep the order in which they were given; that order is the pool
        order used for auto-assignment.
        """
        if isinstance(reviewer_ids, (str, bytes)) or not isinstance(reviewer_ids, (list, tuple)):
            raise ValidationError("reviewer_ids must be a list of user ids")
        eligible: List[str] = []
        for rid in reviewer_ids:
            if not isinstance(rid, str) or rid in eligible:
                continue
            user = self.repo.get_user(rid)
            if user is not None and user.role is Role.REVIEWER:
                eligible.append(rid)
        dropped = len(reviewer_ids) - len(eligible)
        pool = self.repo.set_reviewer_pool(conference.id, eligible)
        logger.info(
            f"Reviewer pool set to {len(pool)} reviewers ({dropped} ids dropped)",
            extra={"conference_id": conference.id},
        )
        return pool

    def reviewers(self, conference_id: str) -> List[str]:
        """Return the pool of ``conference_id`` in pool order."""
        return self.repo.get_reviewer_pool(conference_id)

    def select(self, conference_id: str, count: int) -> List[str]:
        """Pick the first ``count`` reviewers in pool order."""
        return self.reviewers(conference_id)[:count]
