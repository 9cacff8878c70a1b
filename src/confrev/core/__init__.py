"""Domain models, identifiers and errors shared by every layer."""

from .errors import (  # noqa: F401
    AuthenticationError,
    AuthorizationError,
    ConfrevError,
    NotFoundError,
    ValidationError,
)
from .models import (  # noqa: F401
    Conference,
    ConferenceDetail,
    Paper,
    PaperDetail,
    PaperStatus,
    Review,
    ReviewAssignment,
    ReviewStatus,
    Role,
    User,
)
