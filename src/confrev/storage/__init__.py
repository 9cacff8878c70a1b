"""Persistence layer: the repository interface and its backends."""

from pathlib import Path
from typing import Optional

from .base import Repository
from .memory import InMemoryRepository
from .sqlite import SQLiteRepository
from ..config.settings import settings

__all__ = ["Repository", "InMemoryRepository", "SQLiteRepository", "open_repository"]


def open_repository(db_path: Optional[Path] = None) -> Repository:
    """Open the SQLite repository at ``db_path`` (defaults to settings)."""
    return SQLiteRepository(db_path or settings.database_path)
