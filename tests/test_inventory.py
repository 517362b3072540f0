from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from models import InventoryKind, UserRole
from utils.errors import (
    Forbidden, InsufficientStock, InvalidMinimumOrder, InvalidQuantity, NotFound, ValidationError
)
from utils.transactions import transaction


class TestStockAdjustment:

    @pytest.mark.asyncio
    async def test_get_stock_missing_row_is_none(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=5)

        assert await inventory.get_stock(db, retailer, product, InventoryKind.RETAILER) == 5
        assert await inventory.get_stock(db, retailer, product, InventoryKind.WHOLESALER) is None

    @pytest.mark.asyncio
    async def test_adjust_stock_applies_signed_delta(self, db, seed, inventory):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER, stock=100)

        async with transaction(db):
            await inventory.adjust_stock(db, wholesaler, product, InventoryKind.WHOLESALER, -40)
            await inventory.adjust_stock(db, wholesaler, product, InventoryKind.WHOLESALER, 15)

        assert await inventory.get_stock(db, wholesaler, product, InventoryKind.WHOLESALER) == 75

    @pytest.mark.asyncio
    async def test_adjust_stock_to_exactly_zero(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=3)

        async with transaction(db):
            await inventory.adjust_stock(db, retailer, product, InventoryKind.RETAILER, -3)

        assert await inventory.get_stock(db, retailer, product, InventoryKind.RETAILER) == 0

    @pytest.mark.asyncio
    async def test_adjust_stock_refuses_to_go_negative(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=3)

        with pytest.raises(InsufficientStock) as exc_info:
            async with transaction(db):
                await inventory.adjust_stock(db, retailer, product, InventoryKind.RETAILER, -4)

        assert exc_info.value.message == "Insufficient stock. Available: 3, Requested: 4"
        assert await inventory.get_stock(db, retailer, product, InventoryKind.RETAILER) == 3

    @pytest.mark.asyncio
    async def test_adjust_stock_without_row(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER)

        with pytest.raises(NotFound):
            await inventory.adjust_stock(db, retailer, product, InventoryKind.WHOLESALER, -1)


class TestRetailerUpsert:

    @pytest.mark.asyncio
    async def test_first_receipt_creates_row_with_default_reorder_level(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER)

        async with transaction(db):
            await inventory.upsert_retailer_stock(db, retailer, product, 25)

        row = await seed.retailer_stock(retailer, product)
        assert row.quantity_in_stock == 25
        assert row.reorder_level == 10
        assert row.last_restocked is not None

    @pytest.mark.asyncio
    async def test_second_receipt_increments_same_row(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER)

        async with transaction(db):
            await inventory.upsert_retailer_stock(db, retailer, product, 25)
        async with transaction(db):
            await inventory.upsert_retailer_stock(db, retailer, product, 10)

        row = await seed.retailer_stock(retailer, product)
        assert row.quantity_in_stock == 35

    @pytest.mark.asyncio
    async def test_receipt_racing_another_first_receipt_increments(
        self, db, seed, inventory, session_factory, monkeypatch
    ):
        retailer = await seed.user(UserRole.RETAILER)
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER)

        # This session looks first and sees no row yet
        assert await inventory.get_stock(db, retailer, product, InventoryKind.RETAILER) is None

        async with session_factory() as other:
            async with transaction(other):
                await inventory.upsert_retailer_stock(other, retailer, product, 25)

        # Whatever this session would read back, the write must still land as an increment
        monkeypatch.setattr(inventory, "_get_row", AsyncMock(return_value=None))
        async with transaction(db, "wholesale order"):
            row = await inventory.upsert_retailer_stock(db, retailer, product, 25)

        assert row.quantity_in_stock == 50
        stored = await seed.retailer_stock(retailer, product)
        assert stored.quantity_in_stock == 50
        assert stored.last_restocked is not None

    @pytest.mark.asyncio
    async def test_upsert_rejects_non_positive_delta(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER)

        with pytest.raises(InvalidQuantity):
            await inventory.upsert_retailer_stock(db, retailer, product, 0)


class TestRestock:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, None])
    async def test_rejects_non_positive_amounts(self, db, seed, inventory, amount):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=4)

        with pytest.raises(InvalidQuantity):
            await inventory.restock(db, retailer, UserRole.RETAILER, product, amount)

        assert await inventory.get_stock(db, retailer, product, InventoryKind.RETAILER) == 4

    @pytest.mark.asyncio
    async def test_restock_increments_and_stamps(self, db, seed, inventory):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER, stock=50)

        async with transaction(db):
            await inventory.restock(db, wholesaler, UserRole.WHOLESALER, product, 200)

        row = await seed.wholesaler_stock(wholesaler, product)
        assert row.quantity_in_stock == 250
        assert isinstance(row.last_restocked, datetime)

    @pytest.mark.asyncio
    async def test_cannot_restock_someone_elses_product(self, db, seed, inventory):
        owner = await seed.user(UserRole.RETAILER)
        other = await seed.user(UserRole.RETAILER)
        product = await seed.product(owner, UserRole.RETAILER)

        with pytest.raises(NotFound):
            await inventory.restock(db, other, UserRole.RETAILER, product, 5)

    @pytest.mark.asyncio
    async def test_customers_hold_no_inventory(self, db, seed, inventory):
        customer = await seed.user(UserRole.CUSTOMER)
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER)

        with pytest.raises(Forbidden):
            await inventory.restock(db, customer, UserRole.CUSTOMER, product, 5)


class TestInventorySettings:

    @pytest.mark.asyncio
    async def test_retailer_updates_stock_and_reorder_level(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=40)

        async with transaction(db):
            await inventory.update_settings(
                db, retailer, UserRole.RETAILER, product, quantity_in_stock=12, reorder_level=15
            )

        row = await seed.retailer_stock(retailer, product)
        assert (row.quantity_in_stock, row.reorder_level) == (12, 15)
        assert row.needs_restock is True

    @pytest.mark.asyncio
    async def test_wholesaler_moq_below_floor_rejected(self, db, seed, inventory):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER)

        with pytest.raises(InvalidMinimumOrder):
            await inventory.update_settings(
                db, wholesaler, UserRole.WHOLESALER, product, minimum_order_quantity=9
            )

    @pytest.mark.asyncio
    async def test_wholesaler_moq_at_floor_accepted(self, db, seed, inventory):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER)

        async with transaction(db):
            await inventory.update_settings(
                db, wholesaler, UserRole.WHOLESALER, product, minimum_order_quantity=10
            )

        row = await seed.wholesaler_stock(wholesaler, product)
        assert row.minimum_order_quantity == 10

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role, settings", [
        (UserRole.RETAILER, {"quantity_in_stock": -1}),
        (UserRole.RETAILER, {"reorder_level": -1}),
        (UserRole.RETAILER, {"minimum_order_quantity": 30}),
        (UserRole.WHOLESALER, {"reorder_level": 5}),
    ])
    async def test_invalid_settings(self, db, seed, inventory, role, settings):
        seller = await seed.user(role)
        product = await seed.product(seller, role)

        with pytest.raises(ValidationError):
            await inventory.update_settings(db, seller, role, product, **settings)


class TestLowStock:

    @pytest.mark.asyncio
    async def test_rows_at_or_below_reorder_level(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        low = await seed.product(retailer, UserRole.RETAILER, stock=5, reorder_level=10, name="Low")
        edge = await seed.product(retailer, UserRole.RETAILER, stock=10, reorder_level=10, name="Edge")
        empty = await seed.product(retailer, UserRole.RETAILER, stock=0, reorder_level=10, name="Empty")
        healthy = await seed.product(retailer, UserRole.RETAILER, stock=15, reorder_level=10, name="Healthy")

        items = await inventory.get_low_stock(db, retailer)

        assert [item["product_id"] for item in items] == [empty, low, edge]
        assert healthy not in {item["product_id"] for item in items}
        assert all(item["needs_restock"] for item in items)

    @pytest.mark.asyncio
    async def test_scoped_to_calling_retailer(self, db, seed, inventory):
        retailer = await seed.user(UserRole.RETAILER)
        other = await seed.user(UserRole.RETAILER)
        await seed.product(other, UserRole.RETAILER, stock=1)

        assert await inventory.get_low_stock(db, retailer) == []

    @pytest.mark.asyncio
    async def test_list_inventory_joins_product_details(self, db, seed, inventory):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        product = await seed.product(wholesaler, UserRole.WHOLESALER, stock=300, name="Flour 25kg", price="899.50")

        items = await inventory.list_inventory(db, wholesaler, UserRole.WHOLESALER)

        assert len(items) == 1
        assert items[0]["product_id"] == product
        assert items[0]["name"] == "Flour 25kg"
        assert items[0]["minimum_order_quantity"] == 25
        assert "needs_restock" not in items[0]
