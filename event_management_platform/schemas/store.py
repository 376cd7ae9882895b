"""
Pydantic schemas for the loyalty store.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StoreProductResponse(BaseModel):
    id: UUID
    name: str
    description: str
    point_cost: int
    category: str
    image_url: Optional[str]
    already_owned: bool = False

    model_config = {"from_attributes": True}


class ProductCreateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    description: str = Field("", description="Shown on the product card")
    point_cost: int = Field(..., description="Price in loyalty points")
    category: str = Field(..., max_length=50, description="Badge, Cosmetic, Feature, Perk or Collectible")
    image_url: Optional[str] = Field(None, max_length=500)


class ProductUpdateRequest(BaseModel):
    """Fields left out or sent as null keep their current value."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    point_cost: Optional[int] = None
    category: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class PurchaseRequest(BaseModel):
    product_id: UUID


class PurchaseResponse(BaseModel):
    purchase_id: UUID
    product_name: str
    points_spent: int
    remaining_points: int


class UserPurchaseResponse(BaseModel):
    id: UUID
    product: StoreProductResponse
    points_spent: int
    purchased_at: datetime

    model_config = {"from_attributes": True}
