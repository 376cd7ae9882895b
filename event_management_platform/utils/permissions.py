"""
Role checks shared by the services.

All checks are pure functions over an ``Actor`` so they can be evaluated
without touching the database.
"""

from dataclasses import dataclass
from uuid import UUID

from ..models.user import User, UserRole
from .exceptions import AuthorizationError

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
ORGANIZER_ROLES = frozenset({UserRole.ORGANIZER, UserRole.ADMIN, UserRole.SUPER_ADMIN})


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""
    user_id: UUID
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)


def is_admin(role: UserRole) -> bool:
    return role in ADMIN_ROLES


def can_organize(role: UserRole) -> bool:
    """Organisers and admins may create events and request payouts."""
    return role in ORGANIZER_ROLES


def can_manage_event(actor: Actor, organizer_id: UUID) -> bool:
    """The event's organiser or any admin."""
    return actor.user_id == organizer_id or actor.is_admin


def can_moderate(actor: Actor, target_role: UserRole) -> bool:
    """
    Admins moderate everyone except super admins; super admins moderate everyone.
    """
    if actor.role == UserRole.SUPER_ADMIN:
        return True
    return actor.role == UserRole.ADMIN and target_role != UserRole.SUPER_ADMIN


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin privileges required", required_permission="admin")


def require_organizer(actor: Actor) -> None:
    if not can_organize(actor.role):
        raise AuthorizationError("Organizer privileges required", required_permission="organizer")


def require_event_manager(actor: Actor, organizer_id: UUID) -> None:
    if not can_manage_event(actor, organizer_id):
        raise AuthorizationError(
            "Only the event organizer or an admin can do this",
            required_permission="event_manager"
        )
