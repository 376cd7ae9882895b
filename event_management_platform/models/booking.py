"""
Booking model for managing event reservations.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .event import Event


class BookingStatus(enum.Enum):
    """Enumeration for booking status."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PointsStatus(enum.Enum):
    """Whether the points earned by a booking are currently held by the user."""
    AWARDED = "awarded"
    REVERSED = "reversed"


class Booking(Base):
    """Booking model; a cancelled row is reactivated rather than duplicated."""

    __tablename__ = "bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus),
        default=BookingStatus.CONFIRMED,
        nullable=False,
        index=True
    )
    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Loyalty settlement
    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    points_status: Mapped[PointsStatus] = mapped_column(
        Enum(PointsStatus),
        default=PointsStatus.AWARDED,
        server_default=PointsStatus.AWARDED.name,
        nullable=False
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )

    # Check-in
    check_in_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    user: Mapped["User"] = relationship("User")
    event: Mapped["Event"] = relationship("Event")

    __table_args__ = (
        CheckConstraint("points_earned >= 0", name="ck_bookings_points_non_negative"),
        CheckConstraint("amount_paid >= 0", name="ck_bookings_amount_paid_non_negative"),
        # At most one confirmed booking per user and event
        Index(
            "uq_bookings_user_event_confirmed",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status = 'CONFIRMED'"),
            sqlite_where=text("status = 'CONFIRMED'"),
        ),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

    @property
    def is_checked_in(self) -> bool:
        return self.checked_in_at is not None

    def __repr__(self) -> str:
        """String representation of the booking."""
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, "
            f"event_id={self.event_id}, status={self.status.value})>"
        )
