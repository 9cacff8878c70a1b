"""Shared fixtures: repositories, users and conferences."""

from datetime import date
from typing import Callable, List

import pytest

from confrev.core.models import Conference, Role, User
from confrev.lifecycle.engine import PaperLifecycleEngine
from confrev.storage.memory import InMemoryRepository
from confrev.storage.sqlite import SQLiteRepository


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def sqlite_repo(tmp_path):
    repository = SQLiteRepository(tmp_path / "confrev.db")
    yield repository
    repository.close()


def _add_user(repository, name: str, role: Role) -> User:
    return repository.add_user(User(name=name, email=f"{name.lower()}@example.org", role=role))


@pytest.fixture
def make_user(repo) -> Callable[[str, Role], User]:
    return lambda name, role: _add_user(repo, name, role)


@pytest.fixture
def organizer(repo) -> User:
    return _add_user(repo, "Olga", Role.ORGANIZER)


@pytest.fixture
def author(repo) -> User:
    return _add_user(repo, "Ada", Role.AUTHOR)


@pytest.fixture
def other_author(repo) -> User:
    return _add_user(repo, "Alan", Role.AUTHOR)


@pytest.fixture
def reviewers(repo) -> List[User]:
    return [_add_user(repo, name, Role.REVIEWER) for name in ("Rita", "Raj", "Rosa")]


@pytest.fixture
def make_conference(repo, organizer) -> Callable[..., Conference]:
    def _make(reviewer_ids=None, name: str = "PyCon Research Track") -> Conference:
        return repo.add_conference(
            Conference(
                name=name,
                location="Lisbon",
                start_date=date(2026, 6, 1),
                end_date=date(2026, 6, 3),
                organizer_id=organizer.id,
                reviewer_ids=list(reviewer_ids or []),
            )
        )

    return _make


@pytest.fixture
def conference(make_conference, reviewers) -> Conference:
    """Conference whose pool holds all three reviewers."""
    return make_conference([r.id for r in reviewers])


@pytest.fixture
def engine(repo) -> PaperLifecycleEngine:
    return PaperLifecycleEngine(repo, reviewers_per_paper=2)
