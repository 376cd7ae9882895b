"""
User model with role and loyalty balance.
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserRole(enum.Enum):
    """Enumeration for platform roles."""
    ATTENDEE = "attendee"
    ORGANIZER = "organizer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    """User model holding the role, suspension flag and loyalty balance."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.ATTENDEE,
        nullable=False
    )
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Tier and discount are derived from the balance, never stored
    loyalty_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint("loyalty_points >= 0", name="ck_users_loyalty_points_non_negative"),
    )

    @property
    def is_admin(self) -> bool:
        """Admins and super admins share platform-wide permissions."""
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
