"""Domain exceptions raised by the lifecycle engine and services.

Every error is raised before any state is written, or inside a
repository transaction that is rolled back, so callers can treat all
of them as recoverable.
"""


class ConfrevError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ConfrevError):
    """Input is missing, malformed or not an allowed value."""


class AuthorizationError(ConfrevError):
    """Acting user lacks the role or ownership the operation requires."""


class NotFoundError(ConfrevError):
    """A referenced user, conference, paper or review does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class AuthenticationError(ConfrevError):
    """The caller did not identify itself as a known user."""
