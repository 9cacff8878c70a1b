"""In-process repository backed by dictionaries.

Used by the test-suite and for ephemeral runs.  A transaction takes a
snapshot of every table and restores it if the block raises.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from ..core.errors import ValidationError
from ..core.models import Conference, Paper, Review, Role, User
from .base import Repository


class InMemoryRepository(Repository):
    """Dictionary-backed implementation of ``Repository``.

    Every read and write holds ``_lock``, so readers never iterate a table
    while a writer or a rollback is changing it.
    """

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.conferences: Dict[str, Conference] = {}
        self.pools: Dict[str, List[str]] = {}
        self.papers: Dict[str, Paper] = {}
        self.reviews: Dict[str, Review] = {}
        self._lock = threading.RLock()
        self._depth = 0

    # Users

    def add_user(self, user: User) -> User:
        with self._lock:
            if self.get_user_by_email(user.email) is not None:
                raise ValidationError(f"Email {user.email} is already registered")
            self.users[user.id] = user.model_copy(deep=True)
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            return user.model_copy(deep=True) if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            for user in self.users.values():
                if user.email.lower() == email.lower():
                    return user.model_copy(deep=True)
            return None

    def list_users(self, role: Optional[Role] = None) -> List[User]:
        with self._lock:
            return [
                u.model_copy(deep=True)
                for u in self.users.values()
                if role is None or u.role == role
            ]

    # Conferences

    def add_conference(self, conference: Conference) -> Conference:
        with self._lock:
            self.conferences[conference.id] = conference.model_copy(deep=True)
            self.pools[conference.id] = list(dict.fromkeys(conference.reviewer_ids))
            return self.get_conference(conference.id)  # type: ignore[return-value]

    def get_conference(self, conference_id: str) -> Optional[Conference]:
        with self._lock:
            conference = self.conferences.get(conference_id)
            if conference is None:
                return None
            return conference.model_copy(
                update={"reviewer_ids": list(self.pools.get(conference_id, []))}, deep=True
            )

    def update_conference(self, conference: Conference) -> Conference:
        with self._lock:
            self.conferences[conference.id] = conference.model_copy(deep=True)
            return self.get_conference(conference.id)  # type: ignore[return-value]

    def delete_conference(self, conference_id: str) -> None:
        with self.transaction():
            paper_ids = {p.id for p in self.papers.values() if p.conference_id == conference_id}
            for review_id in [r.id for r in self.reviews.values() if r.paper_id in paper_ids]:
                del self.reviews[review_id]
            for paper_id in paper_ids:
                del self.papers[paper_id]
            self.pools.pop(conference_id, None)
            self.conferences.pop(conference_id, None)

    def list_conferences(self, organizer_id: Optional[str] = None) -> List[Conference]:
        with self._lock:
            selected = [
                self.get_conference(cid)
                for cid, c in self.conferences.items()
                if organizer_id is None or c.organizer_id == organizer_id
            ]
        return sorted(selected, key=lambda c: c.start_date)  # type: ignore[union-attr]

    def get_reviewer_pool(self, conference_id: str) -> List[str]:
        with self._lock:
            return list(self.pools.get(conference_id, []))

    def set_reviewer_pool(self, conference_id: str, reviewer_ids: Iterable[str]) -> List[str]:
        with self._lock:
            self.pools[conference_id] = list(dict.fromkeys(reviewer_ids))
            return list(self.pools[conference_id])

    # Papers

    def add_paper(self, paper: Paper) -> Paper:
        with self._lock:
            self.papers[paper.id] = paper.model_copy(deep=True)
            return paper.model_copy(deep=True)

    def get_paper(self, paper_id: str) -> Optional[Paper]:
        with self._lock:
            paper = self.papers.get(paper_id)
            return paper.model_copy(deep=True) if paper else None

    def update_paper(self, paper: Paper) -> Paper:
        with self._lock:
            self.papers[paper.id] = paper.model_copy(deep=True)
            return paper.model_copy(deep=True)

    def list_papers(
        self,
        author_id: Optional[str] = None,
        conference_ids: Optional[Iterable[str]] = None,
        paper_ids: Optional[Iterable[str]] = None,
    ) -> List[Paper]:
        conf_filter = set(conference_ids) if conference_ids is not None else None
        id_filter = set(paper_ids) if paper_ids is not None else None
        out = []
        with self._lock:
            for paper in self.papers.values():
                if author_id is not None and paper.author_id != author_id:
                    continue
                if conf_filter is not None and paper.conference_id not in conf_filter:
                    continue
                if id_filter is not None and paper.id not in id_filter:
                    continue
                out.append(paper.model_copy(deep=True))
        return out

    # Reviews

    def add_review(self, review: Review) -> Review:
        with self._lock:
            for existing in self.reviews.values():
                if existing.paper_id == review.paper_id and existing.reviewer_id == review.reviewer_id:
                    raise ValidationError(
                        f"Reviewer {review.reviewer_id} already reviews paper {review.paper_id}"
                    )
            self.reviews[review.id] = review.model_copy(deep=True)
            return review.model_copy(deep=True)

    def get_review(self, review_id: str) -> Optional[Review]:
        with self._lock:
            review = self.reviews.get(review_id)
            return review.model_copy(deep=True) if review else None

    def update_review(self, review: Review) -> Review:
        with self._lock:
            self.reviews[review.id] = review.model_copy(deep=True)
            return review.model_copy(deep=True)

    def list_reviews(
        self,
        paper_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
    ) -> List[Review]:
        with self._lock:
            return [
                r.model_copy(deep=True)
                for r in self.reviews.values()
                if (paper_id is None or r.paper_id == paper_id)
                and (reviewer_id is None or r.reviewer_id == reviewer_id)
            ]

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return
            snapshot = self._snapshot()
            self._depth = 1
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise
            finally:
                self._depth = 0

    def _snapshot(self) -> dict:
        return {
            "users": dict(self.users),
            "conferences": dict(self.conferences),
            "pools": {k: list(v) for k, v in self.pools.items()},
            "papers": dict(self.papers),
            "reviews": dict(self.reviews),
        }

    def _restore(self, snapshot: dict) -> None:
        self.users = snapshot["users"]
        self.conferences = snapshot["conferences"]
        self.pools = snapshot["pools"]
        self.papers = snapshot["papers"]
        self.reviews = snapshot["reviews"]
