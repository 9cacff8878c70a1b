"""User registration and lookup."""

from __future__ import annotations

from typing import Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import NotFoundError, ValidationError
from ..core.models import Role, User
from ..storage.base import Repository
from ..utils.logging import get_logger
from .context import AuthContext

logger = get_logger(__name__)


def register_user(repo: Repository, name: str, email: str, role: Union[str, Role]) -> User:
    """Create a user; the e-mail address must be unused."""
    try:
        user = User(name=name, email=email, role=Role(role))
    except ValueError as exc:
        # Covers both unknown roles and pydantic field errors.
        if isinstance(exc, PydanticValidationError):
            raise ValidationError(f"Invalid user: {exc.errors()[0]['msg']}") from exc
        raise ValidationError(f"Role must be one of {', '.join(r.value for r in Role)}") from exc
    user = repo.add_user(user)
    logger.info(f"Registered {user.role.value.lower()} {user.email}", extra={"user_id": user.id})
    return user


def context_for(repo: Repository, user_id: str) -> AuthContext:
    """Build the authorization context of a stored user."""
    user = repo.get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return AuthContext.for_user(user)
