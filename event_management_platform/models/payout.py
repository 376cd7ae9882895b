"""
Payout request model for organiser withdrawals.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PayoutStatus(enum.Enum):
    """Enumeration for payout request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayoutRequest(Base):
    """Payout request raised by an organiser and processed by an admin."""

    __tablename__ = "payout_requests"

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    bank_details: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[PayoutStatus] = mapped_column(
        Enum(PayoutStatus),
        default=PayoutStatus.PENDING,
        nullable=False,
        index=True
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payout_requests_amount_positive"),
        # At most one pending request per organiser
        Index(
            "uq_payout_requests_organizer_pending",
            "organizer_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == PayoutStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<PayoutRequest(id={self.id}, organizer_id={self.organizer_id}, "
            f"amount={self.amount}, status={self.status.value})>"
        )
