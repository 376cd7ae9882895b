"""
Tests for user moderation and role management.
"""

import uuid

import pytest
from sqlalchemy import select

from event_management_platform.models import User, UserRole
from event_management_platform.services.admin_service import AdminService, parse_role
from event_management_platform.utils.exceptions import (
    AuthorizationError,
    InvalidStateError,
    UserNotFoundError,
    ValidationError,
)
from event_management_platform.utils.permissions import Actor


@pytest.fixture
def service(db_session) -> AdminService:
    return AdminService(db_session)


def test_parse_role():
    assert parse_role("Organizer") == UserRole.ORGANIZER
    assert parse_role("SuperAdmin") == UserRole.SUPER_ADMIN
    assert parse_role("super admin") == UserRole.SUPER_ADMIN
    with pytest.raises(ValidationError):
        parse_role("owner")


@pytest.mark.asyncio
async def test_suspend_and_unsuspend(service, db_session, admin, attendee):
    await service.suspend_user(Actor.from_user(admin), attendee.id)
    suspended = await db_session.scalar(select(User.is_suspended).where(User.id == attendee.id))
    assert suspended is True

    await service.unsuspend_user(Actor.from_user(admin), attendee.id)
    suspended = await db_session.scalar(select(User.is_suspended).where(User.id == attendee.id))
    assert suspended is False


@pytest.mark.asyncio
async def test_moderation_requires_admin(service, organizer, attendee):
    with pytest.raises(AuthorizationError):
        await service.suspend_user(Actor.from_user(organizer), attendee.id)


@pytest.mark.asyncio
async def test_admin_cannot_moderate_super_admin(service, admin, super_admin):
    with pytest.raises(AuthorizationError, match="super admin"):
        await service.suspend_user(Actor.from_user(admin), super_admin.id)
    with pytest.raises(AuthorizationError):
        await service.change_role(Actor.from_user(admin), super_admin.id, "attendee")


@pytest.mark.asyncio
async def test_super_admin_moderates_admin(service, admin, super_admin):
    target = await service.suspend_user(Actor.from_user(super_admin), admin.id)
    assert target.is_suspended is True

    demoted = await service.change_role(Actor.from_user(super_admin), admin.id, "organizer")
    assert demoted.role == UserRole.ORGANIZER


@pytest.mark.asyncio
async def test_self_moderation_rejected(service, admin):
    with pytest.raises(InvalidStateError, match="yourself"):
        await service.suspend_user(Actor.from_user(admin), admin.id)
    with pytest.raises(InvalidStateError):
        await service.change_role(Actor.from_user(admin), admin.id, "attendee")


@pytest.mark.asyncio
async def test_change_role(service, admin, super_admin, attendee, make_user):
    promoted = await service.change_role(Actor.from_user(admin), attendee.id, "organizer")
    assert promoted.role == UserRole.ORGANIZER

    with pytest.raises(AuthorizationError, match="Only a super admin"):
        await service.change_role(Actor.from_user(admin), attendee.id, "admin")

    granted = await service.change_role(Actor.from_user(super_admin), attendee.id, "admin")
    assert granted.role == UserRole.ADMIN

    other = await make_user()
    with pytest.raises(ValidationError):
        await service.change_role(Actor.from_user(super_admin), other.id, "super_admin")
    with pytest.raises(ValidationError):
        await service.change_role(Actor.from_user(super_admin), other.id, "owner")
    with pytest.raises(UserNotFoundError):
        await service.change_role(Actor.from_user(super_admin), uuid.uuid4(), "organizer")
