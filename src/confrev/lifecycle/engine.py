"""Paper lifecycle engine.

The engine owns ``Paper.status`` and ``Paper.version``.  Three
transitions exist:

``submit``
    create the paper, auto-assign reviewers from the conference pool
    and move to UNDER_REVIEW when at least one reviewer was assigned.
``revise``
    the author uploads a new document; the version is bumped, every
    review is reset to PENDING and the paper returns to UNDER_REVIEW.
``review-decision``
    an assigned reviewer records ACCEPTED or REVISION_REQUESTED; the
    paper status is recomputed with :func:`aggregate`.

Each transition holds a per-paper lock and runs inside a repository
transaction, so concurrent decisions on one paper cannot lose updates
and a failing transition leaves no trace.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, Optional, Union

from ..auth.context import AuthContext
from ..config.settings import settings
from ..conferences.pool import ReviewerPool
from ..core.errors import AuthorizationError, NotFoundError, ValidationError
from ..core.models import Paper, PaperStatus, Review, ReviewStatus, User
from ..storage.base import Repository
from ..utils.logging import get_logger
from .aggregation import aggregate

logger = get_logger(__name__)

DECISIONS = (ReviewStatus.ACCEPTED, ReviewStatus.REVISION_REQUESTED)


class KeyedLocks:
    """One re-entrant lock per key, kept only while someone holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._holders: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if not self._holders[key]:
                    del self._holders[key]
                    del self._locks[key]


def parse_decision(decision: Union[str, ReviewStatus, None]) -> ReviewStatus:
    """Validate a reviewer decision; PENDING is not a decision."""
    try:
        status = ReviewStatus(decision)
    except ValueError:
        status = None
    if status not in DECISIONS:
        raise ValidationError("Status must be ACCEPTED or REVISION_REQUESTED")
    return status  # type: ignore[return-value]


class PaperLifecycleEngine:
    """Apply lifecycle transitions to papers and their reviews."""

    def __init__(
        self,
        repo: Repository,
        reviewers_per_paper: Optional[int] = None,
        pool: Optional[ReviewerPool] = None,
    ) -> None:
        self.repo = repo
        self.pool = pool or ReviewerPool(repo)
        self.reviewers_per_paper = reviewers_per_paper or settings.reviewers_per_paper
        self._paper_locks = KeyedLocks()
        self._conference_locks = KeyedLocks()

    def _context(self, user_id: str) -> AuthContext:
        user: Optional[User] = self.repo.get_user(user_id)
        if user is None:
            raise AuthorizationError(f"Unknown user {user_id}")
        return AuthContext.for_user(user)

    def _load_paper(self, paper_id: str) -> Paper:
        paper = self.repo.get_paper(paper_id)
        if paper is None:
            raise NotFoundError("Paper", paper_id)
        return paper

    def submit_paper(
        self,
        conference_id: str,
        author_id: str,
        title: str,
        document_ref: str,
    ) -> Paper:
        """Create a paper and auto-assign reviewers from the conference pool."""
        ctx = self._context(author_id)
        ctx.require("submit_paper", "Only authors can submit papers")
        if not title or not title.strip() or not document_ref:
            raise ValidationError("Title, conference, and file are required")

        with self._conference_locks.hold(conference_id), self.repo.transaction():
            conference = self.repo.get_conference(conference_id)
            if conference is None:
                raise NotFoundError("Conference", conference_id)

            paper = self.repo.add_paper(
                Paper(
                    title=title.strip(),
                    file_url=document_ref,
                    conference_id=conference_id,
                    author_id=author_id,
                    status=PaperStatus.SUBMITTED,
                )
            )
            assigned = self.pool.select(conference_id, self.reviewers_per_paper)
            for reviewer_id in assigned:
                self.repo.add_review(Review(paper_id=paper.id, reviewer_id=reviewer_id))

            if assigned:
                paper.status = PaperStatus.UNDER_REVIEW
                paper.updated_at = datetime.utcnow()
                paper = self.repo.update_paper(paper)

        if assigned:
            logger.info(
                f"Paper submitted and assigned to {len(assigned)} reviewers",
                extra={"paper_id": paper.id, "conference_id": conference_id, "status": paper.status.value},
            )
        else:
            logger.warning(
                "Paper submitted to a conference with an empty reviewer pool",
                extra={"paper_id": paper.id, "conference_id": conference_id, "status": paper.status.value},
            )
        return paper

    def upload_revision(self, paper_id: str, acting_user_id: str, document_ref: str) -> Paper:
        """Replace the paper's document and restart its review round."""
        ctx = self._context(acting_user_id)
        with self._paper_locks.hold(paper_id), self.repo.transaction():
            paper = self._load_paper(paper_id)
            ctx.require("upload_revision", "Only authors can upload revisions")
            ctx.require_owner(paper.author_id, "You can only edit your own papers")
            if not document_ref:
                raise ValidationError("File is required")

            now = datetime.utcnow()
            paper.file_url = document_ref
            paper.version += 1
            paper.status = PaperStatus.UNDER_REVIEW
            paper.updated_at = now
            paper = self.repo.update_paper(paper)

            for review in self.repo.list_reviews(paper_id=paper_id):
                review.status = ReviewStatus.PENDING
                review.feedback = None
                review.updated_at = now
                self.repo.update_review(review)

        logger.info(
            "Revision uploaded",
            extra={"paper_id": paper.id, "user_id": acting_user_id, "version": paper.version},
        )
        return paper

    def record_review_decision(
        self,
        review_id: str,
        acting_user_id: str,
        decision: Union[str, ReviewStatus],
        feedback: Optional[str] = None,
    ) -> Review:
        """Record a reviewer's decision and recompute the paper status."""
        ctx = self._context(acting_user_id)
        ctx.require("record_review", "Only reviewers can submit reviews")
        review = self.repo.get_review(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        ctx.require_owner(review.reviewer_id, "You can only submit your own reviews")
        status = parse_decision(decision)

        with self._paper_locks.hold(review.paper_id), self.repo.transaction():
            review = self.repo.get_review(review_id)
            if review is None:
                raise NotFoundError("Review", review_id)
            review.status = status
            review.feedback = feedback
            review.updated_at = datetime.utcnow()
            review = self.repo.update_review(review)

            paper = self._load_paper(review.paper_id)
            new_status = aggregate(self.repo.list_reviews(paper_id=paper.id), current=paper.status)
            if new_status != paper.status:
                paper.status = new_status
                paper.updated_at = review.updated_at
                self.repo.update_paper(paper)

        logger.info(
            f"Review decision {status.value} recorded",
            extra={"review_id": review.id, "paper_id": paper.id, "status": paper.status.value},
        )
        return review
