"""Paper queries and document storage."""

from .documents import DocumentStore  # noqa: F401
from .queries import PaperQueries  # noqa: F401
