from decimal import Decimal

import pytest

from models import OrderStatus, OrderType, UserRole
from utils.errors import InvalidStatus, NotFoundOrUnauthorized
from utils.transactions import transaction


@pytest.fixture
async def retail_sale(db, seed, order_engine):
    """A retailer selling 3 units to a customer."""
    retailer = await seed.user(UserRole.RETAILER, name="Corner Shop")
    customer = await seed.user(UserRole.CUSTOMER, name="Asha")
    product = await seed.product(retailer, UserRole.RETAILER, stock=20, price="2.40", name="Milk")
    placed = await order_engine.place_order(db, customer, UserRole.CUSTOMER, product, 3)
    return {"retailer": retailer, "customer": customer, "product": product, "order": placed["id"]}


class TestRecordOrder:

    @pytest.mark.asyncio
    async def test_total_is_fixed_point(self, db, seed, ledger):
        retailer = await seed.user(UserRole.RETAILER)
        customer = await seed.user(UserRole.CUSTOMER)
        product = await seed.product(retailer, UserRole.RETAILER)

        async with transaction(db):
            order = await ledger.record_order(
                db, customer, retailer, product, 3, Decimal("0.10"), OrderType.RETAIL
            )

        assert order.total_amount == Decimal("0.30")
        assert order.status == OrderStatus.PENDING
        assert order.expected_delivery_date is None
        assert order.offline_order is False


class TestTransitionStatus:

    @pytest.mark.asyncio
    async def test_seller_moves_status(self, db, ledger, retail_sale):
        async with transaction(db):
            order = await ledger.transition_status(db, retail_sale["order"], retail_sale["retailer"], "shipped")

        assert order.status == OrderStatus.SHIPPED

    @pytest.mark.asyncio
    async def test_buyer_cannot_move_status(self, db, seed, ledger, retail_sale):
        with pytest.raises(NotFoundOrUnauthorized):
            async with transaction(db):
                await ledger.transition_status(db, retail_sale["order"], retail_sale["customer"], "delivered")

        orders = await seed.orders(id=retail_sale["order"])
        assert orders[0].status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unrelated_user_cannot_move_status(self, db, seed, ledger, retail_sale):
        stranger = await seed.user(UserRole.RETAILER)

        with pytest.raises(NotFoundOrUnauthorized):
            await ledger.transition_status(db, retail_sale["order"], stranger, "cancelled")

    @pytest.mark.asyncio
    async def test_unknown_status_rejected_before_lookup(self, db, ledger, retail_sale):
        with pytest.raises(InvalidStatus):
            await ledger.transition_status(db, retail_sale["order"], retail_sale["retailer"], "returned")


class TestQueries:

    @pytest.mark.asyncio
    async def test_get_orders_joins_names(self, db, ledger, retail_sale):
        listing = await ledger.get_orders(db, buyer_id=retail_sale["customer"])

        assert listing["total"] == 1
        order = listing["orders"][0]
        assert order["product_name"] == "Milk"
        assert order["seller_name"] == "Corner Shop"
        assert order["buyer_name"] == "Asha"
        assert order["total_amount"] == Decimal("7.20")

    @pytest.mark.asyncio
    async def test_get_orders_filters(self, db, ledger, retail_sale):
        as_seller = await ledger.get_orders(db, seller_id=retail_sale["retailer"], order_type=OrderType.RETAIL)
        wholesale = await ledger.get_orders(db, seller_id=retail_sale["retailer"], order_type=OrderType.WHOLESALE)
        shipped = await ledger.get_orders(db, buyer_id=retail_sale["customer"], status=OrderStatus.SHIPPED)

        assert as_seller["total"] == 1
        assert wholesale["total"] == 0
        assert shipped["total"] == 0

    @pytest.mark.asyncio
    async def test_get_orders_paginates(self, db, seed, ledger, order_engine):
        retailer = await seed.user(UserRole.RETAILER)
        customer = await seed.user(UserRole.CUSTOMER)
        product = await seed.product(retailer, UserRole.RETAILER, stock=50)
        for _ in range(5):
            await order_engine.place_order(db, customer, UserRole.CUSTOMER, product, 1)

        second_page = await ledger.get_orders(db, buyer_id=customer, page=2, limit=2)

        assert second_page["total"] == 5
        assert len(second_page["orders"]) == 2

    @pytest.mark.asyncio
    async def test_sales_summary(self, db, seed, ledger, order_engine):
        wholesaler = await seed.user(UserRole.WHOLESALER)
        shop_a = await seed.user(UserRole.RETAILER)
        shop_b = await seed.user(UserRole.RETAILER)
        rice = await seed.product(wholesaler, UserRole.WHOLESALER, stock=500, price="3.00", name="Rice")
        oil = await seed.product(wholesaler, UserRole.WHOLESALER, stock=500, price="10.00", name="Oil")

        await order_engine.place_wholesale_order(db, shop_a, UserRole.RETAILER, [
            {"product_id": rice, "seller_id": wholesaler, "quantity": 30},
            {"product_id": oil, "seller_id": wholesaler, "quantity": 25},
        ])
        await order_engine.place_wholesale_order(db, shop_b, UserRole.RETAILER, [
            {"product_id": rice, "seller_id": wholesaler, "quantity": 50},
        ])

        summary = await ledger.sales_summary(db, wholesaler, OrderType.WHOLESALE)

        assert summary["total_orders"] == 3
        assert summary["total_revenue"] == Decimal("490.00")
        assert summary["units_sold"] == 105
        assert summary["unique_buyers"] == 2
        assert summary["average_order_value"] == Decimal("163.33")
        assert [(p["name"], p["revenue"]) for p in summary["top_products"]] == [
            ("Oil", Decimal("250.00")),
            ("Rice", Decimal("240.00")),
        ]
