"""
User moderation by admins.
"""

import logging
from typing import Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User, UserRole
from ..utils.exceptions import (
    AuthorizationError,
    InvalidStateError,
    UserNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_security_event
from ..utils.permissions import Actor, can_moderate, require_admin

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (UserRole.ATTENDEE, UserRole.ORGANIZER, UserRole.ADMIN)


def parse_role(value: Union[str, UserRole]) -> UserRole:
    if isinstance(value, UserRole):
        return value
    normalized = str(value).strip().lower().replace(" ", "_")
    if normalized == "superadmin":
        normalized = UserRole.SUPER_ADMIN.value
    for role in UserRole:
        if normalized == role.value:
            return role
    raise ValidationError(
        f"Unknown role '{value}'.",
        field_errors={"role": [f"must be one of {', '.join(r.value for r in ASSIGNABLE_ROLES)}"]}
    )


class AdminService:
    """Suspension and role management with the admin/super admin asymmetry."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def suspend_user(self, actor: Actor, user_id: UUID) -> User:
        return await self._set_suspended(actor, user_id, True)

    async def unsuspend_user(self, actor: Actor, user_id: UUID) -> User:
        return await self._set_suspended(actor, user_id, False)

    async def change_role(self, actor: Actor, user_id: UUID, new_role: Union[str, UserRole]) -> User:
        """
        Assign a new role to a user.

        Super admin cannot be assigned through the API, and only a super
        admin may grant admin.

        Raises:
            AuthorizationError: When the caller may not make this change
            ValidationError: When the role cannot be assigned
            UserNotFoundError: When the user does not exist
            InvalidStateError: When the caller targets themselves
        """
        require_admin(actor)

        role = parse_role(new_role)
        if role not in ASSIGNABLE_ROLES:
            raise ValidationError(
                "This role cannot be assigned.",
                field_errors={"role": [f"must be one of {', '.join(r.value for r in ASSIGNABLE_ROLES)}"]}
            )

        target = await self._get_moderated_user(actor, user_id, "change the role of")
        if role == UserRole.ADMIN and actor.role != UserRole.SUPER_ADMIN:
            raise AuthorizationError("Only a super admin can grant admin.", required_permission="super_admin")

        previous = target.role
        target.role = role
        await self.session.commit()

        log_security_event(
            "user_role_changed",
            {
                "actor_id": str(actor.user_id),
                "target_user_id": str(user_id),
                "from_role": previous.value,
                "to_role": role.value,
            },
        )
        return target

    async def _set_suspended(self, actor: Actor, user_id: UUID, suspended: bool) -> User:
        require_admin(actor)
        target = await self._get_moderated_user(actor, user_id, "suspend" if suspended else "unsuspend")

        target.is_suspended = suspended
        await self.session.commit()

        log_security_event(
            "user_suspended" if suspended else "user_unsuspended",
            {"actor_id": str(actor.user_id), "target_user_id": str(user_id)},
        )
        return target

    async def _get_moderated_user(self, actor: Actor, user_id: UUID, action: str) -> User:
        target = await self.session.scalar(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        if target is None:
            raise UserNotFoundError(str(user_id))
        if target.id == actor.user_id:
            raise InvalidStateError(f"You cannot {action} yourself.")
        if not can_moderate(actor, target.role):
            raise AuthorizationError(
                "Admins cannot moderate a super admin.",
                required_permission="super_admin"
            )
        return target
