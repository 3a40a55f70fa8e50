"""Caller identity as seen by the order lifecycle engine.

User and role administration live elsewhere. The engine only consumes
who is calling and whether they are privileged, passed explicitly as an
``Actor`` into every operation.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.errors import Unauthorized


class ActorKind(Enum):
    ANONYMOUS = "Anonymous"
    USER = "User"
    ADMIN = "Admin"


@dataclass(frozen=True)
class Actor:
    kind: ActorKind
    id: str | None = None
    session_token: str | None = None

    # -------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------
    @classmethod
    def anonymous(cls, session_token: str | None = None) -> "Actor":
        return cls(kind=ActorKind.ANONYMOUS, session_token=session_token or None)

    @classmethod
    def user(cls, user_id: str, session_token: str | None = None) -> "Actor":
        return cls(kind=ActorKind.USER, id=str(user_id), session_token=session_token or None)

    @classmethod
    def admin(cls, admin_id: str) -> "Actor":
        return cls(kind=ActorKind.ADMIN, id=str(admin_id))

    @classmethod
    def from_command(cls, command) -> "Actor":
        """Rebuild the caller from the identity fields carried on a command."""
        admin_id = getattr(command, "admin_id", None)
        if admin_id:
            return cls.admin(admin_id)
        user_id = getattr(command, "user_id", None)
        session_token = getattr(command, "session_token", None)
        if user_id:
            return cls.user(user_id, session_token=session_token)
        return cls.anonymous(session_token)

    def as_command_fields(self) -> dict:
        """Identity fields to splat into a command constructor."""
        if self.is_admin:
            return {"admin_id": self.id}
        if self.kind == ActorKind.USER:
            return {"user_id": self.id, "session_token": self.session_token}
        return {"session_token": self.session_token}

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_anonymous(self) -> bool:
        return self.kind == ActorKind.ANONYMOUS

    @property
    def is_admin(self) -> bool:
        return self.kind == ActorKind.ADMIN

    @property
    def user_id(self) -> str | None:
        return self.id if self.kind == ActorKind.USER else None

    def has_permission(self, name: str) -> bool:  # noqa: ARG002
        return self.is_admin


def require_permission(command, permission: str) -> Actor:
    """Return the caller behind ``command``, or fail if they lack ``permission``."""
    actor = Actor.from_command(command)
    if not actor.has_permission(permission):
        raise Unauthorized("Admin only", permission=permission)
    return actor
