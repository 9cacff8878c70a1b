"""Persistence interface consumed by the lifecycle engine and services."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Iterable, List, Optional

from ..core.models import Conference, Paper, Review, Role, User


class Repository(ABC):
    """Abstract storage for users, conferences, papers and reviews.

    Getters return ``None`` for unknown ids; raising ``NotFoundError`` is
    the caller's job.  Returned models are copies: mutating them has no
    effect until they are passed back through an ``update_*`` method.

    ``transaction()`` groups several writes into one all-or-nothing unit.
    Transactions may nest; only the outermost one commits or rolls back.
    """

    # Users

    @abstractmethod
    def add_user(self, user: User) -> User:
        raise NotImplementedError

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def list_users(self, role: Optional[Role] = None) -> List[User]:
        raise NotImplementedError

    # Conferences

    @abstractmethod
    def add_conference(self, conference: Conference) -> Conference:
        raise NotImplementedError

    @abstractmethod
    def get_conference(self, conference_id: str) -> Optional[Conference]:
        raise NotImplementedError

    @abstractmethod
    def update_conference(self, conference: Conference) -> Conference:
        """Persist conference attributes.  The reviewer pool is not touched."""
        raise NotImplementedError

    @abstractmethod
    def delete_conference(self, conference_id: str) -> None:
        """Delete a conference together with its papers and their reviews."""
        raise NotImplementedError

    @abstractmethod
    def list_conferences(self, organizer_id: Optional[str] = None) -> List[Conference]:
        """Return conferences ordered by start date."""
        raise NotImplementedError

    @abstractmethod
    def get_reviewer_pool(self, conference_id: str) -> List[str]:
        """Return reviewer ids in pool order."""
        raise NotImplementedError

    @abstractmethod
    def set_reviewer_pool(self, conference_id: str, reviewer_ids: Iterable[str]) -> List[str]:
        """Replace the pool; ``reviewer_ids`` is already filtered and de-duplicated."""
        raise NotImplementedError

    # Papers

    @abstractmethod
    def add_paper(self, paper: Paper) -> Paper:
        raise NotImplementedError

    @abstractmethod
    def get_paper(self, paper_id: str) -> Optional[Paper]:
        raise NotImplementedError

    @abstractmethod
    def update_paper(self, paper: Paper) -> Paper:
        raise NotImplementedError

    @abstractmethod
    def list_papers(
        self,
        author_id: Optional[str] = None,
        conference_ids: Optional[Iterable[str]] = None,
        paper_ids: Optional[Iterable[str]] = None,
    ) -> List[Paper]:
        """Return papers matching every given filter, oldest first."""
        raise NotImplementedError

    # Reviews

    @abstractmethod
    def add_review(self, review: Review) -> Review:
        """Store a review; a second review for the same (paper, reviewer) is rejected."""
        raise NotImplementedError

    @abstractmethod
    def get_review(self, review_id: str) -> Optional[Review]:
        raise NotImplementedError

    @abstractmethod
    def update_review(self, review: Review) -> Review:
        raise NotImplementedError

    @abstractmethod
    def list_reviews(
        self,
        paper_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
    ) -> List[Review]:
        """Return reviews in creation order."""
        raise NotImplementedError

    # Transactions

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        raise NotImplementedError

    def close(self) -> None:
        """Release underlying resources."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
