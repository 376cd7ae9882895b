"""
Event model for managing events and their capacity.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class EventStatus(enum.Enum):
    """Enumeration for event lifecycle status."""
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class Event(Base):
    """Event model for managing events and their capacity."""

    __tablename__ = "events"

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Event basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)

    # Event timing
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    postponed_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Capacity is fixed; availability is derived from confirmed bookings
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )

    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus),
        default=EventStatus.DRAFT,
        nullable=False,
        index=True
    )
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Optimistic locking for concurrency control, bumped on every seat claim
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_events_capacity_positive"),
        CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
        CheckConstraint("version > 0", name="ck_events_version_positive"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED

    def __repr__(self) -> str:
        """String representation of the event."""
        return (
            f"<Event(id={self.id}, title='{self.title}', "
            f"start={self.start_date}, capacity={self.capacity}, status={self.status.value})>"
        )
