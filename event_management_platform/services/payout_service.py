"""
Organiser payout requests and their admin review.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.payout import PayoutRequest, PayoutStatus
from ..utils.clock import Clock, get_clock
from ..utils.exceptions import (
    ConflictError,
    PayoutRequestNotFoundError,
    PendingPayoutExistsError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from ..utils.permissions import Actor, require_admin, require_organizer

logger = logging.getLogger(__name__)

DECISION_STATUSES = (PayoutStatus.APPROVED, PayoutStatus.REJECTED)


def parse_payout_status(value: Union[str, PayoutStatus]) -> PayoutStatus:
    """Accept an enum member, its name or its value, case-insensitively."""
    if isinstance(value, PayoutStatus):
        return value
    normalized = str(value).strip().lower()
    for status in PayoutStatus:
        if normalized in (status.value, status.name.lower()):
            return status
    raise ValidationError(
        f"Unknown payout status '{value}'.",
        field_errors={"status": [f"must be one of {', '.join(s.value for s in PayoutStatus)}"]}
    )


class PayoutService:
    """Service for the payout request lifecycle."""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or get_clock()

    async def create_request(self, actor: Actor, amount: Decimal, bank_details: str) -> PayoutRequest:
        """
        File a payout request for the calling organiser.

        Raises:
            AuthorizationError: When the caller is not an organiser or admin
            ValidationError: When the amount or bank details are invalid
            PendingPayoutExistsError: When a pending request already exists
        """
        require_organizer(actor)

        try:
            amount = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Amount must be a number.", field_errors={"amount": ["invalid number"]})
        if amount <= 0:
            raise ValidationError(
                "Amount must be greater than zero.",
                field_errors={"amount": ["must be greater than zero"]}
            )
        if not bank_details or not bank_details.strip():
            raise ValidationError(
                "Bank details are required.",
                field_errors={"bank_details": ["must not be blank"]}
            )

        organizer_id = actor.user_id
        pending = await self.session.scalar(
            select(PayoutRequest.id).where(
                PayoutRequest.organizer_id == organizer_id,
                PayoutRequest.status == PayoutStatus.PENDING,
            )
        )
        if pending is not None:
            raise PendingPayoutExistsError(str(organizer_id))

        payout = PayoutRequest(
            organizer_id=organizer_id,
            amount=amount,
            bank_details=bank_details.strip(),
            status=PayoutStatus.PENDING,
            requested_at=self.clock.now(),
        )
        self.session.add(payout)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent payout request for organizer {organizer_id}: {e}")
            raise PendingPayoutExistsError(str(organizer_id))

        log_business_event(
            "payout_requested",
            {"payout_id": str(payout.id), "amount": str(amount)},
            user_id=str(organizer_id),
        )
        return payout

    async def process_request(
        self,
        actor: Actor,
        payout_id: UUID,
        new_status: Union[str, PayoutStatus],
        admin_notes: Optional[str] = None,
    ) -> PayoutRequest:
        """
        Approve or reject a pending payout request.

        Raises:
            AuthorizationError: When the caller is not an admin
            ValidationError: When the target status is not Approved or Rejected
            PayoutRequestNotFoundError: When the request does not exist
            ConflictError: When the request was already processed
        """
        require_admin(actor)

        status = parse_payout_status(new_status)
        if status not in DECISION_STATUSES:
            raise ValidationError(
                "Payout can only be approved or rejected.",
                field_errors={"status": ["must be approved or rejected"]}
            )

        # Only one reviewer can move a request out of Pending
        result = await self.session.execute(
            update(PayoutRequest)
            .where(PayoutRequest.id == payout_id, PayoutRequest.status == PayoutStatus.PENDING)
            .values(status=status, admin_notes=admin_notes, processed_at=self.clock.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.session.scalar(
                select(PayoutRequest.status).where(PayoutRequest.id == payout_id)
            )
            if current is None:
                raise PayoutRequestNotFoundError(str(payout_id))
            raise ConflictError(f"Payout request is already {current.value}.")
        await self.session.commit()

        payout = await self.session.scalar(
            select(PayoutRequest)
            .where(PayoutRequest.id == payout_id)
            .execution_options(populate_existing=True)
        )

        log_business_event(
            "payout_processed",
            {"payout_id": str(payout_id), "status": status.value},
            user_id=str(actor.user_id),
        )
        return payout

    async def list_requests(self, actor: Actor, status: Optional[Union[str, PayoutStatus]] = None) -> List[PayoutRequest]:
        """All payout requests, newest first, optionally filtered by status. Admin only."""
        require_admin(actor)

        query = select(PayoutRequest).order_by(desc(PayoutRequest.requested_at))
        if status is not None:
            query = query.where(PayoutRequest.status == parse_payout_status(status))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_organizer(self, organizer_id: UUID) -> List[PayoutRequest]:
        result = await self.session.execute(
            select(PayoutRequest)
            .where(PayoutRequest.organizer_id == organizer_id)
            .order_by(desc(PayoutRequest.requested_at))
        )
        return list(result.scalars().all())
