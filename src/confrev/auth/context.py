"""Authorization context for the acting user.

The context is built from a stored ``User`` and answers capability
questions for the lifecycle engine and services.  Roles form a closed
set; every check enumerates the members it permits so that adding a
role forces the checks to be revisited.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet

from ..core.errors import AuthorizationError
from ..core.models import Role, User


# What each role may do.  Every Role member must appear here.
CAPABILITIES: dict = {
    Role.AUTHOR: frozenset({"submit_paper", "upload_revision"}),
    Role.REVIEWER: frozenset({"record_review"}),
    Role.ORGANIZER: frozenset({"manage_conference", "assign_reviewers"}),
}


@dataclass(frozen=True)
class AuthContext:
    """Identity and role of the user performing an operation."""

    user_id: str
    role: Role

    @classmethod
    def for_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, role=user.role)

    @property
    def capabilities(self) -> FrozenSet[str]:
        if self.role not in CAPABILITIES:
            raise AuthorizationError(f"Unknown role {self.role!r}")
        return CAPABILITIES[self.role]

    @property
    def is_author(self) -> bool:
        return self.role is Role.AUTHOR

    @property
    def is_reviewer(self) -> bool:
        return self.role is Role.REVIEWER

    @property
    def is_organizer(self) -> bool:
        return self.role is Role.ORGANIZER

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    def require(self, capability: str, message: str) -> None:
        """Raise ``AuthorizationError`` unless the role grants ``capability``."""
        if not self.can(capability):
            raise AuthorizationError(message)

    def require_owner(self, owner_id: str, message: str) -> None:
        """Raise ``AuthorizationError`` unless the acting user is ``owner_id``."""
        if self.user_id != owner_id:
            raise AuthorizationError(message)
