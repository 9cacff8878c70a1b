"""SQLite-backed repository.

Every lifecycle transition runs inside ``BEGIN IMMEDIATE`` so that the
read-modify-write of a paper and its reviews is serialised against
other writers, including other processes sharing the database file.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.errors import ValidationError
from ..core.models import Conference, Paper, PaperStatus, Review, ReviewStatus, Role, User
from ..utils.logging import get_logger
from .base import Repository

logger = get_logger(__name__)


class SQLiteRepository(Repository):
    """
    SQLite implementation of ``Repository``.

    The connection runs in autocommit mode; single statements commit on
    their own and ``transaction()`` opens an explicit write transaction.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(
            str(self.db_path), isolation_level=None, check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        if str(self.db_path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.execute("PRAGMA synchronous = NORMAL")
        self._lock = threading.RLock()
        self._depth = 0
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                role TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS conferences (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                location TEXT NOT NULL,
                description TEXT,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                organizer_id TEXT NOT NULL REFERENCES users(id)
            );

            CREATE INDEX IF NOT EXISTS idx_conferences_organizer ON conferences(organizer_id);

            CREATE TABLE IF NOT EXISTS conference_reviewers (
                conference_id TEXT NOT NULL REFERENCES conferences(id) ON DELETE CASCADE,
                reviewer_id TEXT NOT NULL REFERENCES users(id),
                position INTEGER NOT NULL,
                PRIMARY KEY (conference_id, reviewer_id)
            );

            CREATE TABLE IF NOT EXISTS papers (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                file_url TEXT NOT NULL,
                status TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                conference_id TEXT NOT NULL REFERENCES conferences(id) ON DELETE CASCADE,
                author_id TEXT NOT NULL REFERENCES users(id),
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_papers_author ON papers(author_id);
            CREATE INDEX IF NOT EXISTS idx_papers_conference ON papers(conference_id);

            CREATE TABLE IF NOT EXISTS reviews (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                paper_id TEXT NOT NULL REFERENCES papers(id) ON DELETE CASCADE,
                reviewer_id TEXT NOT NULL REFERENCES users(id),
                status TEXT NOT NULL,
                feedback TEXT,
                updated_at TEXT NOT NULL,
                UNIQUE(paper_id, reviewer_id)
            );

            CREATE INDEX IF NOT EXISTS idx_reviews_reviewer ON reviews(reviewer_id);
            """
        )

    # Row mapping

    @staticmethod
    def _to_user(row: sqlite3.Row) -> User:
        return User(id=row["id"], name=row["name"], email=row["email"], role=Role(row["role"]))

    def _to_conference(self, row: sqlite3.Row) -> Conference:
        return Conference(
            id=row["id"],
            name=row["name"],
            location=row["location"],
            description=row["description"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            organizer_id=row["organizer_id"],
            reviewer_ids=self.get_reviewer_pool(row["id"]),
        )

    @staticmethod
    def _to_paper(row: sqlite3.Row) -> Paper:
        return Paper(
            id=row["id"],
            title=row["title"],
            file_url=row["file_url"],
            status=PaperStatus(row["status"]),
            version=row["version"],
            conference_id=row["conference_id"],
            author_id=row["author_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _to_review(row: sqlite3.Row) -> Review:
        return Review(
            id=row["id"],
            paper_id=row["paper_id"],
            reviewer_id=row["reviewer_id"],
            status=ReviewStatus(row["status"]),
            feedback=row["feedback"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _query(self, sql: str, params: Iterable = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, tuple(params)).fetchall()

    def _execute(self, sql: str, params: Iterable = ()) -> None:
        with self._lock:
            self.conn.execute(sql, tuple(params))

    # Users

    def add_user(self, user: User) -> User:
        try:
            self._execute(
                "INSERT INTO users (id, name, email, role) VALUES (?, ?, ?, ?)",
                (user.id, user.name, user.email, user.role.value),
            )
        except sqlite3.IntegrityError as exc:
            raise ValidationError(f"Email {user.email} is already registered") from exc
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        rows = self._query("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._to_user(rows[0]) if rows else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        rows = self._query("SELECT * FROM users WHERE email = ?", (email,))
        return self._to_user(rows[0]) if rows else None

    def list_users(self, role: Optional[Role] = None) -> List[User]:
        if role is None:
            rows = self._query("SELECT * FROM users ORDER BY rowid")
        else:
            rows = self._query("SELECT * FROM users WHERE role = ? ORDER BY rowid", (role.value,))
        return [self._to_user(r) for r in rows]

    # Conferences

    def add_conference(self, conference: Conference) -> Conference:
        with self.transaction():
            self._execute(
                """INSERT INTO conferences
                (id, name, location, description, start_date, end_date, organizer_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    conference.id,
                    conference.name,
                    conference.location,
                    conference.description,
                    conference.start_date.isoformat(),
                    conference.end_date.isoformat(),
                    conference.organizer_id,
                ),
            )
            self.set_reviewer_pool(conference.id, conference.reviewer_ids)
        return self.get_conference(conference.id)  # type: ignore[return-value]

    def get_conference(self, conference_id: str) -> Optional[Conference]:
        rows = self._query("SELECT * FROM conferences WHERE id = ?", (conference_id,))
        return self._to_conference(rows[0]) if rows else None

    def update_conference(self, conference: Conference) -> Conference:
        self._execute(
            """UPDATE conferences
            SET name = ?, location = ?, description = ?, start_date = ?, end_date = ?
            WHERE id = ?""",
            (
                conference.name,
                conference.location,
                conference.description,
                conference.start_date.isoformat(),
                conference.end_date.isoformat(),
                conference.id,
            ),
        )
        return self.get_conference(conference.id)  # type: ignore[return-value]

    def delete_conference(self, conference_id: str) -> None:
        # Papers, reviews and pool rows go with it through ON DELETE CASCADE.
        self._execute("DELETE FROM conferences WHERE id = ?", (conference_id,))

    def list_conferences(self, organizer_id: Optional[str] = None) -> List[Conference]:
        if organizer_id is None:
            rows = self._query("SELECT * FROM conferences ORDER BY start_date, rowid")
        else:
            rows = self._query(
                "SELECT * FROM conferences WHERE organizer_id = ? ORDER BY start_date, rowid",
                (organizer_id,),
            )
        return [self._to_conference(r) for r in rows]

    def get_reviewer_pool(self, conference_id: str) -> List[str]:
        rows = self._query(
            "SELECT reviewer_id FROM conference_reviewers WHERE conference_id = ? ORDER BY position",
            (conference_id,),
        )
        return [r["reviewer_id"] for r in rows]

    def set_reviewer_pool(self, conference_id: str, reviewer_ids: Iterable[str]) -> List[str]:
        ordered = list(dict.fromkeys(reviewer_ids))
        with self.transaction():
            self._execute("DELETE FROM conference_reviewers WHERE conference_id = ?", (conference_id,))
            for position, reviewer_id in enumerate(ordered):
                self._execute(
                    """INSERT INTO conference_reviewers (conference_id, reviewer_id, position)
                    VALUES (?, ?, ?)""",
                    (conference_id, reviewer_id, position),
                )
        return self.get_reviewer_pool(conference_id)

    # Papers

    def add_paper(self, paper: Paper) -> Paper:
        self._execute(
            """INSERT INTO papers
            (id, title, file_url, status, version, conference_id, author_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                paper.id,
                paper.title,
                paper.file_url,
                paper.status.value,
                paper.version,
                paper.conference_id,
                paper.author_id,
                paper.created_at.isoformat(),
                paper.updated_at.isoformat(),
            ),
        )
        return paper

    def get_paper(self, paper_id: str) -> Optional[Paper]:
        rows = self._query("SELECT * FROM papers WHERE id = ?", (paper_id,))
        return self._to_paper(rows[0]) if rows else None

    def update_paper(self, paper: Paper) -> Paper:
        self._execute(
            """UPDATE papers
            SET title = ?, file_url = ?, status = ?, version = ?, updated_at = ?
            WHERE id = ?""",
            (
                paper.title,
                paper.file_url,
                paper.status.value,
                paper.version,
                paper.updated_at.isoformat(),
                paper.id,
            ),
        )
        return paper

    def list_papers(
        self,
        author_id: Optional[str] = None,
        conference_ids: Optional[Iterable[str]] = None,
        paper_ids: Optional[Iterable[str]] = None,
    ) -> List[Paper]:
        clauses: List[str] = []
        params: List[str] = []
        if author_id is not None:
            clauses.append("author_id = ?")
            params.append(author_id)
        for column, values in (("conference_id", conference_ids), ("id", paper_ids)):
            if values is None:
                continue
            values = list(values)
            if not values:
                return []
            clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._query(f"SELECT * FROM papers {where} ORDER BY rowid", params)
        return [self._to_paper(r) for r in rows]

    # Reviews

    def add_review(self, review: Review) -> Review:
        try:
            self._execute(
                """INSERT INTO reviews (id, paper_id, reviewer_id, status, feedback, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    review.id,
                    review.paper_id,
                    review.reviewer_id,
                    review.status.value,
                    review.feedback,
                    review.updated_at.isoformat(),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise ValidationError(
                f"Reviewer {review.reviewer_id} already reviews paper {review.paper_id}"
            ) from exc
        return review

    def get_review(self, review_id: str) -> Optional[Review]:
        rows = self._query("SELECT * FROM reviews WHERE id = ?", (review_id,))
        return self._to_review(rows[0]) if rows else None

    def update_review(self, review: Review) -> Review:
        self._execute(
            "UPDATE reviews SET status = ?, feedback = ?, updated_at = ? WHERE id = ?",
            (review.status.value, review.feedback, review.updated_at.isoformat(), review.id),
        )
        return review

    def list_reviews(
        self,
        paper_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
    ) -> List[Review]:
        clauses: List[str] = []
        params: List[str] = []
        if paper_id is not None:
            clauses.append("paper_id = ?")
            params.append(paper_id)
        if reviewer_id is not None:
            clauses.append("reviewer_id = ?")
            params.append(reviewer_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._query(f"SELECT * FROM reviews {where} ORDER BY seq", params)
        return [self._to_review(r) for r in rows]

    # Transactions

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(sqlite3.OperationalError),
        reraise=True,
    )
    def _begin(self) -> None:
        self.conn.execute("BEGIN IMMEDIATE")

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
            self._begin()
            self._depth = 1
            try:
                yield
            except BaseException:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                logger.warning("Transaction rolled back")
                raise
            else:
                self.conn.execute("COMMIT")
            finally:
                self._depth = 0

    def close(self) -> None:
        with self._lock:
            self.conn.close()
