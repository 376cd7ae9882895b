"""
Waitlist model for managing event waitlists.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class WaitlistEntry(Base):
    """A user's place in an event's FIFO queue. Position is derived, not stored."""

    __tablename__ = "waitlist_entries"

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

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Arrival order within the event; breaks ties between equal joined_at values
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "event_id",
            name="uq_waitlist_user_event"
        ),
        UniqueConstraint("event_id", "sequence", name="uq_waitlist_event_sequence"),
        Index("ix_waitlist_event_order", "event_id", "joined_at", "sequence"),
    )

    def __repr__(self) -> str:
        """String representation of the waitlist entry."""
        return (
            f"<WaitlistEntry(id={self.id}, user_id={self.user_id}, "
            f"event_id={self.event_id}, joined_at={self.joined_at})>"
        )
