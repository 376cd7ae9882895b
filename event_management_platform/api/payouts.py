"""
Payout request endpoints for organisers and admins.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.payout import PayoutCreateRequest, PayoutProcessRequest, PayoutResponse
from ..services.payout_service import PayoutService
from ..utils.clock import Clock, get_clock
from ..utils.dependencies import get_current_actor
from ..utils.permissions import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payouts", tags=["payouts"])


def get_payout_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PayoutService:
    return PayoutService(db, clock)


@router.post("", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_payout_request(
    data: PayoutCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: PayoutService = Depends(get_payout_service),
):
    """Request a payout. Only one request may be pending at a time."""
    payout = await service.create_request(actor, data.amount, data.bank_details)
    return PayoutResponse.model_validate(payout)


@router.get("/mine", response_model=List[PayoutResponse])
async def list_my_payout_requests(
    actor: Actor = Depends(get_current_actor),
    service: PayoutService = Depends(get_payout_service),
):
    return [PayoutResponse.model_validate(p) for p in await service.list_for_organizer(actor.user_id)]


@router.get("", response_model=List[PayoutResponse])
async def list_payout_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, approved or rejected"),
    actor: Actor = Depends(get_current_actor),
    service: PayoutService = Depends(get_payout_service),
):
    """All payout requests, newest first. Admin only."""
    payouts = await service.list_requests(actor, status_filter)
    return [PayoutResponse.model_validate(p) for p in payouts]


@router.patch("/{payout_id}", status_code=status.HTTP_204_NO_CONTENT)
async def process_payout_request(
    payout_id: UUID,
    data: PayoutProcessRequest,
    actor: Actor = Depends(get_current_actor),
    service: PayoutService = Depends(get_payout_service),
):
    """Approve or reject a pending request. Admin only."""
    await service.process_request(actor, payout_id, data.status, data.admin_notes)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
