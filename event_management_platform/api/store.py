"""
Loyalty store endpoints: the catalogue, purchases and admin product management.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.store import (
    ProductCreateRequest,
    ProductUpdateRequest,
    PurchaseRequest,
    PurchaseResponse,
    StoreProductResponse,
    UserPurchaseResponse,
)
from ..services.store_service import StoreService
from ..utils.clock import Clock, get_clock
from ..utils.dependencies import get_current_actor, get_current_user, get_optional_user
from ..utils.permissions import Actor

router = APIRouter(prefix="/store", tags=["store"])


def get_store_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StoreService:
    return StoreService(db, clock)


@router.get("/products", response_model=List[StoreProductResponse])
async def list_products(
    category: Optional[str] = Query(None, description="Only products in this category"),
    current_user: Optional[User] = Depends(get_optional_user),
    service: StoreService = Depends(get_store_service),
):
    """Active products; signed-in users also see which ones they own."""
    listings = await service.list_products(category, current_user.id if current_user else None)
    return [
        StoreProductResponse.model_validate(listing.product).model_copy(update={"already_owned": listing.already_owned})
        for listing in listings
    ]


@router.post("/purchase", response_model=PurchaseResponse)
async def purchase_product(
    data: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    service: StoreService = Depends(get_store_service),
):
    """Buy a product with loyalty points. Each product can be owned once."""
    result = await service.purchase(current_user.id, data.product_id)
    return PurchaseResponse(
        purchase_id=result.purchase.id,
        product_name=result.product.name,
        points_spent=result.purchase.points_spent,
        remaining_points=result.remaining_points,
    )


@router.get("/my-purchases", response_model=List[UserPurchaseResponse])
async def list_my_purchases(
    current_user: User = Depends(get_current_user),
    service: StoreService = Depends(get_store_service),
):
    purchases = await service.list_purchases(current_user.id)
    return [
        UserPurchaseResponse(
            id=p.id,
            product=StoreProductResponse.model_validate(p.product).model_copy(update={"already_owned": True}),
            points_spent=p.points_spent,
            purchased_at=p.purchased_at,
        )
        for p in purchases
    ]


@router.post("/products", response_model=StoreProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """Add a product to the catalogue. Admin only."""
    product = await service.create_product(
        actor,
        name=data.name,
        point_cost=data.point_cost,
        category=data.category,
        description=data.description,
        image_url=data.image_url,
    )
    return StoreProductResponse.model_validate(product)


@router.put("/products/{product_id}", response_model=StoreProductResponse)
async def update_product(
    product_id: UUID,
    data: ProductUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    product = await service.update_product(actor, product_id, data.model_dump(exclude_unset=True))
    return StoreProductResponse.model_validate(product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_product(
    product_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """Hide a product from the catalogue. Admin only."""
    await service.deactivate_product(actor, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
