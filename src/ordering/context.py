"""Request-scoped actor context.

Every service call receives a ``RequestContext`` describing who is acting.
Nothing about the actor is kept in module or session state.
"""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    CUSTOMER = "customer"
    PICKER = "picker"
    VENDOR = "vendor"
    ADMIN = "admin"


@dataclass(frozen=True)
class RequestContext:
    """Who is performing an operation, and on whose behalf."""

    user_id: str
    role: Role
    user_name: str | None = None
    household_id: str | None = None

    @classmethod
    def build(cls, user_id: str, role: str, user_name: str | None = None, household_id: str | None = None):
        """Build a context from raw strings (e.g. HTTP headers)."""
        return cls(
            user_id=user_id,
            role=Role(role.lower()),
            user_name=user_name or None,
            household_id=household_id or None,
        )

    @classmethod
    def system(cls):
        """Context used by background workers."""
        return cls(user_id="system", role=Role.ADMIN, user_name="system")
