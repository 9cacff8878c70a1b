"""Acting-user identity, capability checks and registration."""

from .context import AuthContext, CAPABILITIES  # noqa: F401
from .users import context_for, register_user  # noqa: F401
