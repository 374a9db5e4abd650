"""Caller roles and write-class authorization."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import PermissionDeniedError


class Role(str, Enum):
    """Role of the caller within a project, resolved by the auth layer."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS: dict[Role, int] = {Role.VIEWER: 0, Role.EDITOR: 1, Role.ADMIN: 2}


@dataclass(frozen=True, slots=True)
class AccessContext:
    """Resolved caller identity for one call.

    Attributes:
        project_id: The tenant every read and write is scoped to.
        role: Caller role; trusted as given.
        user_id: Caller identity, recorded as the actor of writes.
    """

    project_id: str
    role: Role = Role.VIEWER
    user_id: str | None = None

    def __post_init__(self) -> None:
        if not self.project_id:
            msg = "project_id is required"
            raise ValueError(msg)
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))


def require_role(ctx: AccessContext, minimum: Role, operation: str) -> None:
    """Raise :class:`PermissionDeniedError` if *ctx* ranks below *minimum*."""
    if ctx.role.rank < minimum.rank:
        msg = f"{operation} requires role {minimum.value} or above (caller is {ctx.role.value})"
        raise PermissionDeniedError(msg)


def require_editor(ctx: AccessContext, operation: str) -> None:
    """Shorthand for the write-class check."""
    require_role(ctx, Role.EDITOR, operation)
