"""
Loyalty store: a catalogue of items bought with points.

Buying is the only way points leave a balance apart from booking
cancellations and admin corrections.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.store import StoreProduct, UserPurchase
from ..utils.clock import Clock, get_clock
from ..utils.exceptions import (
    InsufficientPointsError,
    ProductAlreadyOwnedError,
    StoreProductNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from ..utils.permissions import Actor, require_admin
from .loyalty_service import LoyaltyService
from .user_service import UserService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "point_cost", "category", "image_url", "is_active")


@dataclass
class ProductListing:
    product: StoreProduct
    already_owned: bool


@dataclass
class PurchaseResult:
    purchase: UserPurchase
    product: StoreProduct
    remaining_points: int


def validate_product_fields(fields: Dict[str, Any]) -> None:
    """Check whichever catalogue fields are present in ``fields``."""
    field_errors = {}
    for key in ("name", "category"):
        if key in fields and not (fields[key] or "").strip():
            field_errors[key] = ["must not be blank"]
    if "point_cost" in fields and (fields["point_cost"] is None or fields["point_cost"] <= 0):
        field_errors["point_cost"] = ["must be greater than zero"]
    if field_errors:
        raise ValidationError("Invalid product data.", field_errors=field_errors)


class StoreService:
    """Catalogue management, purchases and purchase history."""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or get_clock()
        self.loyalty = LoyaltyService(session)

    async def list_products(
        self, category: Optional[str] = None, user_id: Optional[UUID] = None
    ) -> List[ProductListing]:
        """Active products by category then price; ``already_owned`` is set when a user is given."""
        query = select(StoreProduct).where(StoreProduct.is_active.is_(True))
        if category:
            query = query.where(StoreProduct.category == category)
        query = query.order_by(StoreProduct.category, StoreProduct.point_cost)
        products = list((await self.session.execute(query)).scalars().all())

        owned = await self._owned_product_ids(user_id) if user_id is not None else set()
        return [ProductListing(product=p, already_owned=p.id in owned) for p in products]

    async def purchase(self, user_id: UUID, product_id: UUID) -> PurchaseResult:
        """
        Buy a product with loyalty points.

        Raises:
            StoreProductNotFoundError: When the product does not exist or is inactive
            InsufficientPointsError: When the balance cannot cover the point cost
            ProductAlreadyOwnedError: When the user already owns the product
        """
        product = await self.session.get(StoreProduct, product_id, populate_existing=True)
        if product is None or not product.is_active:
            raise StoreProductNotFoundError(str(product_id))

        user = await UserService(self.session).get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        if user.loyalty_points < product.point_cost:
            raise InsufficientPointsError(balance=user.loyalty_points, required=product.point_cost)
        if product.id in await self._owned_product_ids(user_id):
            raise ProductAlreadyOwnedError(str(product_id))

        purchase = UserPurchase(
            user_id=user_id,
            product_id=product.id,
            points_spent=product.point_cost,
            purchased_at=self.clock.now(),
        )
        try:
            remaining = await self.loyalty.redeem(user_id, product.point_cost)
            self.session.add(purchase)
            await self.session.commit()
        except InsufficientPointsError:
            await self.session.rollback()
            raise
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent purchase of product {product_id} by user {user_id}: {e}")
            raise ProductAlreadyOwnedError(str(product_id))

        log_business_event(
            "store_purchase",
            {"product_id": str(product.id), "cost": product.point_cost, "balance": remaining},
            user_id=str(user_id),
        )
        return PurchaseResult(purchase=purchase, product=product, remaining_points=remaining)

    async def list_purchases(self, user_id: UUID) -> List[UserPurchase]:
        """A user's purchases, newest first."""
        result = await self.session.execute(
            select(UserPurchase)
            .options(selectinload(UserPurchase.product))
            .where(UserPurchase.user_id == user_id)
            .order_by(UserPurchase.purchased_at.desc())
        )
        return list(result.scalars().all())

    async def create_product(
        self,
        actor: Actor,
        name: str,
        point_cost: int,
        category: str,
        description: str = "",
        image_url: Optional[str] = None,
    ) -> StoreProduct:
        require_admin(actor)
        validate_product_fields({"name": name, "point_cost": point_cost, "category": category})

        product = StoreProduct(
            name=name.strip(),
            description=description or "",
            point_cost=point_cost,
            category=category.strip(),
            image_url=image_url,
            is_active=True,
        )
        self.session.add(product)
        await self.session.commit()

        log_business_event(
            "store_product_created",
            {"product_id": str(product.id), "cost": point_cost},
            user_id=str(actor.user_id),
        )
        return product

    async def update_product(self, actor: Actor, product_id: UUID, changes: Dict[str, Any]) -> StoreProduct:
        """Apply the editable fields present in ``changes``; None leaves a field unchanged."""
        require_admin(actor)
        changes = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS and value is not None}
        validate_product_fields(changes)

        product = await self._get_product(product_id)
        for key, value in changes.items():
            setattr(product, key, value.strip() if key in ("name", "category") else value)
        await self.session.commit()
        return product

    async def deactivate_product(self, actor: Actor, product_id: UUID) -> None:
        """Hide a product from the catalogue; existing purchases are kept."""
        require_admin(actor)
        product = await self._get_product(product_id)
        product.is_active = False
        await self.session.commit()

    async def _get_product(self, product_id: UUID) -> StoreProduct:
        product = await self.session.get(StoreProduct, product_id, populate_existing=True)
        if product is None:
            raise StoreProductNotFoundError(str(product_id))
        return product

    async def _owned_product_ids(self, user_id: UUID) -> Set[UUID]:
        result = await self.session.execute(
            select(UserPurchase.product_id).where(UserPurchase.user_id == user_id)
        )
        return set(result.scalars().all())
