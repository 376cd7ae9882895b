"""
Admin moderation endpoints for users, events and loyalty balances.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.admin import RoleChangeRequest
from ..schemas.loyalty import LoyaltySummaryResponse, PointsAdjustmentRequest
from ..services.admin_service import AdminService
from ..services.event_service import EventService
from ..services.loyalty_service import LoyaltyService
from ..utils.dependencies import get_current_actor
from ..utils.permissions import Actor
from .events import get_event_service
from .users import loyalty_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/adjust-points", response_model=LoyaltySummaryResponse)
async def adjust_points(
    user_id: UUID,
    data: PointsAdjustmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Add or remove loyalty points. The balance never drops below zero."""
    summary = await LoyaltyService(db).adjust_admin(actor, user_id, data.points)
    return loyalty_response(summary)


@router.post("/users/{user_id}/suspend", status_code=status.HTTP_204_NO_CONTENT)
async def suspend_user(
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await AdminService(db).suspend_user(actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/users/{user_id}/unsuspend", status_code=status.HTTP_204_NO_CONTENT)
async def unsuspend_user(
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await AdminService(db).unsuspend_user(actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/users/{user_id}/role", status_code=status.HTTP_204_NO_CONTENT)
async def change_role(
    user_id: UUID,
    data: RoleChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Assign attendee, organizer or admin. Only a super admin can grant admin."""
    await AdminService(db).change_role(actor, user_id, data.role)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/events/{event_id}/suspend", status_code=status.HTTP_204_NO_CONTENT)
async def suspend_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    await service.set_suspended(actor, event_id, True)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/events/{event_id}/unsuspend", status_code=status.HTTP_204_NO_CONTENT)
async def unsuspend_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    await service.set_suspended(actor, event_id, False)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
