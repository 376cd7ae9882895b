"""
Loyalty store catalogue and the purchases made with points.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class StoreProduct(Base):
    """An item that can be bought with loyalty points."""

    __tablename__ = "store_products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    point_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    # Badge, Cosmetic, Feature, Perk or Collectible; free text in storage
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # Deactivated products stay on record for past purchases
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    purchases: Mapped[List["UserPurchase"]] = relationship(back_populates="product")

    __table_args__ = (
        CheckConstraint("point_cost > 0", name="ck_store_products_point_cost_positive"),
    )

    def __repr__(self) -> str:
        return f"<StoreProduct(id={self.id}, name={self.name!r}, point_cost={self.point_cost})>"


class UserPurchase(Base):
    """A product owned by a user and the points paid for it."""

    __tablename__ = "user_purchases"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("store_products.id", ondelete="RESTRICT"),
        nullable=False
    )
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    product: Mapped[StoreProduct] = relationship(back_populates="purchases")

    __table_args__ = (
        # Each product can be owned once
        UniqueConstraint("user_id", "product_id", name="uq_user_purchases_user_product"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserPurchase(id={self.id}, user_id={self.user_id}, "
            f"product_id={self.product_id}, points_spent={self.points_spent})>"
        )
