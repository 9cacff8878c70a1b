"""Conference management and reviewer pools."""

from .pool import ReviewerPool  # noqa: F401
from .service import ConferenceDraft, ConferenceService  # noqa: F401
