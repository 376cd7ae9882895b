"""
Tests for the loyalty store: catalogue, purchases and product management.
"""

import asyncio
import uuid

import pytest
from sqlalchemy import func, select

from event_management_platform.models import User, UserPurchase
from event_management_platform.services.store_service import StoreService
from event_management_platform.utils.exceptions import (
    AuthorizationError,
    InsufficientPointsError,
    ProductAlreadyOwnedError,
    StoreProductNotFoundError,
    ValidationError,
)
from event_management_platform.utils.permissions import Actor


@pytest.fixture
def service(db_session, clock) -> StoreService:
    return StoreService(db_session, clock)


@pytest.fixture
def make_product(service, admin):
    async def _make_product(name="Founder Badge", point_cost=500, category="Badge"):
        return await service.create_product(Actor.from_user(admin), name, point_cost, category)

    return _make_product


async def balance_of(db_session, user_id) -> int:
    return await db_session.scalar(select(User.loyalty_points).where(User.id == user_id))


@pytest.mark.asyncio
async def test_purchase_spends_points(service, db_session, make_user, make_product):
    user = await make_user(loyalty_points=1_200)
    badge = await make_product(point_cost=500)

    result = await service.purchase(user.id, badge.id)

    assert result.remaining_points == 700
    assert result.purchase.points_spent == 500
    assert result.product.name == "Founder Badge"
    assert await balance_of(db_session, user.id) == 700


@pytest.mark.asyncio
async def test_product_can_be_owned_once(service, db_session, make_user, make_product):
    user = await make_user(loyalty_points=2_000)
    badge = await make_product()
    await service.purchase(user.id, badge.id)

    with pytest.raises(ProductAlreadyOwnedError):
        await service.purchase(user.id, badge.id)

    assert await balance_of(db_session, user.id) == 1_500


@pytest.mark.asyncio
async def test_purchase_needs_enough_points(service, db_session, make_user, make_product):
    user = await make_user(loyalty_points=499)
    badge = await make_product(point_cost=500)

    with pytest.raises(InsufficientPointsError) as exc_info:
        await service.purchase(user.id, badge.id)

    assert exc_info.value.details == {"balance": 499, "required": 500}
    assert await balance_of(db_session, user.id) == 499


@pytest.mark.asyncio
async def test_purchase_of_missing_or_inactive_product(service, admin, make_user, make_product):
    user = await make_user(loyalty_points=1_000)

    with pytest.raises(StoreProductNotFoundError):
        await service.purchase(user.id, uuid.uuid4())

    badge = await make_product()
    await service.deactivate_product(Actor.from_user(admin), badge.id)
    with pytest.raises(StoreProductNotFoundError):
        await service.purchase(user.id, badge.id)


async def purchase_in_own_session(session_factory, clock, user_id, product_id):
    async with session_factory() as session:
        return await StoreService(session, clock).purchase(user_id, product_id)


@pytest.mark.asyncio
async def test_concurrent_purchases_charge_once(session_factory, clock, db_session, make_user, make_product):
    user = await make_user(loyalty_points=1_000)
    badge = await make_product(point_cost=400)

    results = await asyncio.gather(
        *(purchase_in_own_session(session_factory, clock, user.id, badge.id) for _ in range(2)),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, ProductAlreadyOwnedError)) == 1
    assert await balance_of(db_session, user.id) == 600
    owned = await db_session.scalar(
        select(func.count()).select_from(UserPurchase).where(UserPurchase.user_id == user.id)
    )
    assert owned == 1


@pytest.mark.asyncio
async def test_list_products(service, make_user, make_product):
    user = await make_user(loyalty_points=1_000)
    frame = await make_product("Gold Frame", 300, "Cosmetic")
    await make_product("Founder Badge", 500, "Badge")
    await make_product("Early Bird Badge", 200, "Badge")
    await service.purchase(user.id, frame.id)

    listings = await service.list_products()
    assert [listing.product.name for listing in listings] == ["Early Bird Badge", "Founder Badge", "Gold Frame"]
    assert not any(listing.already_owned for listing in listings)

    listings = await service.list_products(user_id=user.id)
    assert [listing.product.name for listing in listings if listing.already_owned] == ["Gold Frame"]

    listings = await service.list_products(category="Badge")
    assert {listing.product.category for listing in listings} == {"Badge"}


@pytest.mark.asyncio
async def test_purchases_newest_first(service, clock, make_user, make_product):
    user = await make_user(loyalty_points=1_000)
    badge = await make_product("Founder Badge", 100, "Badge")
    frame = await make_product("Gold Frame", 100, "Cosmetic")

    await service.purchase(user.id, badge.id)
    clock.advance(hours=1)
    await service.purchase(user.id, frame.id)

    purchases = await service.list_purchases(user.id)
    assert [p.product.name for p in purchases] == ["Gold Frame", "Founder Badge"]


@pytest.mark.asyncio
async def test_product_management_is_admin_only(service, organizer, make_product):
    with pytest.raises(AuthorizationError):
        await service.create_product(Actor.from_user(organizer), "Badge", 100, "Badge")

    badge = await make_product()
    with pytest.raises(AuthorizationError):
        await service.update_product(Actor.from_user(organizer), badge.id, {"point_cost": 1})
    with pytest.raises(AuthorizationError):
        await service.deactivate_product(Actor.from_user(organizer), badge.id)


@pytest.mark.asyncio
async def test_product_validation(service, admin):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_product(Actor.from_user(admin), " ", 0, "")

    assert set(exc_info.value.field_errors) == {"name", "point_cost", "category"}


@pytest.mark.asyncio
async def test_update_product(service, admin, make_product):
    badge = await make_product()

    updated = await service.update_product(
        Actor.from_user(admin), badge.id, {"name": " Charter Badge ", "point_cost": 750, "description": None}
    )
    assert updated.name == "Charter Badge"
    assert updated.point_cost == 750
    assert updated.description == ""

    with pytest.raises(ValidationError):
        await service.update_product(Actor.from_user(admin), badge.id, {"point_cost": -5})

    with pytest.raises(StoreProductNotFoundError):
        await service.update_product(Actor.from_user(admin), uuid.uuid4(), {"point_cost": 5})
