"""
Order placement: every purchase validates, moves stock and writes its order
rows as one database transaction.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from config import BusinessRules, get_business_rules
from models import (
    Product, User, RetailerInventory, WholesalerInventory, InventoryKind, OrderType, UserRole, to_money
)
from dependencies.rbac import resolve_purchase_tier, SELLER_ROLE_FOR_TIER
from routers.inventory.helpers import InventoryHelpers, inventory_helpers
from routers.orders.helpers import OrderHelpers, order_helpers, order_to_dict
from utils.errors import (
    BelowMinimumOrder, DataIntegrity, InsufficientStock, InvalidDate, InvalidQuantity, InvalidSeller,
    NotFound, ProductSellerMismatch, RoleMismatch, SelfDealing, ValidationError
)
from utils.transactions import transaction
from datetime import datetime, date, time, timezone
from decimal import Decimal
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)

INVENTORY_KIND_FOR_TIER = {
    OrderType.RETAIL: InventoryKind.RETAILER,
    OrderType.WHOLESALE: InventoryKind.WHOLESALER,
}


def parse_delivery_date(value) -> Optional[datetime]:
    """Accept a datetime, a date or an ISO-8601 string; None stays None"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise InvalidDate(f"Invalid expected delivery date: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TransactionEngine:
    """
    Places single-item orders (customer from retailer, retailer from wholesaler)
    and multi-item wholesale orders for retailers.
    """

    def __init__(self, rules: BusinessRules, inventory: InventoryHelpers, ledger: OrderHelpers):
        self.rules = rules
        self.inventory = inventory
        self.ledger = ledger

    async def _product_tier(self, db: AsyncSession, product: Product) -> Optional[OrderType]:
        """Which tier a product is sold in, from the inventory table its seller stocks it in"""
        retail_row = await db.scalar(
            select(RetailerInventory.id).where(and_(
                RetailerInventory.retailer_id == product.seller_id,
                RetailerInventory.product_id == product.id
            ))
        )
        if retail_row is not None:
            return OrderType.RETAIL

        wholesale_row = await db.scalar(
            select(WholesalerInventory.id).where(and_(
                WholesalerInventory.wholesaler_id == product.seller_id,
                WholesalerInventory.product_id == product.id
            ))
        )
        if wholesale_row is not None:
            return OrderType.WHOLESALE
        return None

    async def place_order(
        self,
        db: AsyncSession,
        buyer_id,
        buyer_role: UserRole,
        product_id,
        quantity: int,
        offline_order: bool = False,
        delivery_details: Optional[str] = None,
        expected_delivery_date=None,
    ) -> dict:
        """
        Buy one product from the tier directly above the buyer.
        Returns the order as a dict with product_name added.
        """
        buyer_role = UserRole(buyer_role)
        if quantity is None or quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than 0")

        async with transaction(db, "order placement"):
            product = await db.scalar(
                select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
            )
            if product is None:
                raise NotFound("Product not found")

            tier = await self._product_tier(db, product)
            if tier is None:
                logger.error(f"Product {product_id} has no inventory row for its seller {product.seller_id}")
                raise NotFound("Product is not stocked by its seller")

            if product.seller_id == buyer_id:
                logger.warning(f"Self-dealing rejected - user {buyer_id}, product {product_id}")
                raise SelfDealing("You cannot buy your own product")

            tier_seller_role = SELLER_ROLE_FOR_TIER[tier]
            if resolve_purchase_tier(buyer_role, tier_seller_role) is None:
                logger.warning(
                    f"Role mismatch - {buyer_role.value} {buyer_id} cannot buy "
                    f"{tier.value} product {product_id}"
                )
                raise RoleMismatch(
                    f"{buyer_role.value.title()}s cannot purchase {tier_seller_role.value} products"
                )

            seller_role = await db.scalar(select(User.role).where(User.id == product.seller_id))
            if seller_role != tier_seller_role:
                logger.error(
                    f"Seller {product.seller_id} of {tier.value} product {product_id} has role {seller_role}"
                )
                raise DataIntegrity("Product seller does not match the product's tier")

            kind = INVENTORY_KIND_FOR_TIER[tier]
            available = await self.inventory.get_stock(db, product.seller_id, product_id, kind)
            if quantity > available:
                logger.warning(
                    f"Insufficient stock - product {product_id}, available {available}, requested {quantity}"
                )
                raise InsufficientStock(f"Insufficient stock. Available: {available}, Requested: {quantity}")

            delivery_date = parse_delivery_date(expected_delivery_date)

            await self.inventory.adjust_stock(db, product.seller_id, product_id, kind, -quantity)
            order = await self.ledger.record_order(
                db,
                buyer_id=buyer_id,
                seller_id=product.seller_id,
                product_id=product_id,
                quantity=quantity,
                unit_price=product.price,
                order_type=tier,
                offline_order=offline_order,
                delivery_details=delivery_details,
                expected_delivery_date=delivery_date
            )

        logger.info(
            f"Order {order.id} placed - buyer {buyer_id}, seller {order.seller_id}, "
            f"product {product_id}, quantity {quantity}, total {order.total_amount}"
        )
        placed = order_to_dict(order)
        placed["product_name"] = product.name
        return placed

    async def place_wholesale_order(
        self,
        db: AsyncSession,
        retailer_id,
        buyer_role: UserRole,
        items: List[dict],
        delivery_details: Optional[str] = None,
        expected_delivery_date=None,
    ) -> dict:
        """
        Buy several products from one or more wholesalers, all or nothing.
        Each item is {"product_id", "seller_id", "quantity"}. Returns the orders and their grand total.
        """
        buyer_role = UserRole(buyer_role)
        if resolve_purchase_tier(buyer_role, UserRole.WHOLESALER) is None:
            logger.warning(f"Role mismatch - {buyer_role.value} {retailer_id} attempted a wholesale order")
            raise RoleMismatch("Only retailers can place wholesale orders")
        if not items:
            raise ValidationError("Order must contain at least one item")

        async with transaction(db, "wholesale order"):
            delivery_date = parse_delivery_date(expected_delivery_date)
            validated = []

            for index, item in enumerate(items, start=1):
                validated.append(await self._validate_wholesale_item(db, index, item))

            orders = []
            grand_total = Decimal("0.00")
            for product, seller_id, quantity in validated:
                await self.inventory.adjust_stock(db, seller_id, product.id, InventoryKind.WHOLESALER, -quantity)
                await self.inventory.upsert_retailer_stock(db, retailer_id, product.id, quantity)
                order = await self.ledger.record_order(
                    db,
                    buyer_id=retailer_id,
                    seller_id=seller_id,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                    order_type=OrderType.WHOLESALE,
                    delivery_details=delivery_details,
                    expected_delivery_date=delivery_date
                )
                grand_total += order.total_amount
                placed = order_to_dict(order)
                placed["product_name"] = product.name
                orders.append(placed)

        grand_total = to_money(grand_total)
        logger.info(
            f"Wholesale order placed - retailer {retailer_id}, {len(orders)} items, total {grand_total}"
        )
        return {"orders": orders, "total_amount": grand_total}

    async def _validate_wholesale_item(self, db: AsyncSession, index: int, item: dict):
        product_id = item.get("product_id")
        seller_id = item.get("seller_id")
        quantity = item.get("quantity")

        if quantity is None or quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than 0", item_index=index)

        seller_role = await db.scalar(select(User.role).where(User.id == seller_id))
        if seller_role != UserRole.WHOLESALER:
            logger.warning(f"Item {index}: seller {seller_id} is not a wholesaler")
            raise InvalidSeller("Seller is not a valid wholesaler", item_index=index)

        result = await db.execute(
            select(Product, WholesalerInventory)
            .join(WholesalerInventory, WholesalerInventory.product_id == Product.id)
            .where(and_(
                Product.id == product_id,
                Product.seller_id == seller_id,
                WholesalerInventory.wholesaler_id == seller_id
            ))
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            logger.warning(f"Item {index}: product {product_id} is not sold by wholesaler {seller_id}")
            raise ProductSellerMismatch("Product not found for this wholesaler", item_index=index)
        product, stock = row

        # Rows written before the floor was raised still honour it
        minimum = max(stock.minimum_order_quantity, self.rules.absolute_wholesale_minimum)
        if quantity < minimum:
            logger.warning(
                f"Item {index}: product {product_id} below MOQ - "
                f"requested {quantity}, minimum {minimum}"
            )
            raise BelowMinimumOrder(
                f"{product.name} requires minimum order of {minimum} units. "
                f"You requested {quantity}.",
                item_index=index
            )

        if quantity > stock.quantity_in_stock:
            logger.warning(
                f"Item {index}: insufficient stock for product {product_id} - "
                f"available {stock.quantity_in_stock}, requested {quantity}"
            )
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. "
                f"Available: {stock.quantity_in_stock}, Requested: {quantity}",
                item_index=index
            )

        return product, seller_id, quantity


order_engine = TransactionEngine(get_business_rules(), inventory_helpers, order_helpers)
