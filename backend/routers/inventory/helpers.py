from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from config import BusinessRules, get_business_rules
from models import (
    Product, RetailerInventory, WholesalerInventory, InventoryKind, UserRole, utcnow
)
from utils.errors import (
    Forbidden, InsufficientStock, InvalidMinimumOrder, InvalidQuantity, NotFound, ValidationError
)
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)

# ON CONFLICT upserts per database; postgresql in production, sqlite in tests
UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

INVENTORY_MODELS = {
    InventoryKind.RETAILER: (RetailerInventory, RetailerInventory.retailer_id),
    InventoryKind.WHOLESALER: (WholesalerInventory, WholesalerInventory.wholesaler_id),
}


def inventory_kind_for_role(role: UserRole) -> InventoryKind:
    """Sellers own exactly one kind of inventory; customers own none"""
    role = UserRole(role)
    if role == UserRole.RETAILER:
        return InventoryKind.RETAILER
    if role == UserRole.WHOLESALER:
        return InventoryKind.WHOLESALER
    raise Forbidden("Customers do not hold inventory")


class InventoryHelpers:
    """Stock records for retailer and wholesaler inventory"""

    def __init__(self, rules: BusinessRules = None):
        self.rules = rules or get_business_rules()

    async def _get_row(self, db: AsyncSession, seller_id, product_id, kind: InventoryKind, lock: bool = False):
        model, owner_column = INVENTORY_MODELS[InventoryKind(kind)]
        query = select(model).where(and_(owner_column == seller_id, model.product_id == product_id))
        if lock:
            # Row lock held until the enclosing transaction ends
            query = query.with_for_update()
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_stock(self, db: AsyncSession, seller_id, product_id, kind: InventoryKind) -> Optional[int]:
        """Current quantity, or None when the seller has no row for this product"""
        row = await self._get_row(db, seller_id, product_id, kind)
        return row.quantity_in_stock if row else None

    async def adjust_stock(self, db: AsyncSession, seller_id, product_id, kind: InventoryKind, delta: int):
        """
        Apply a signed delta inside the caller's transaction.
        Raises NotFound if there is no row, InsufficientStock if stock would go negative.
        """
        row = await self._get_row(db, seller_id, product_id, kind, lock=True)
        if row is None:
            raise NotFound(f"No {InventoryKind(kind).value} inventory for product {product_id}")

        new_quantity = row.quantity_in_stock + delta
        if new_quantity < 0:
            logger.warning(
                f"Stock adjustment rejected - seller {seller_id}, product {product_id}, "
                f"available {row.quantity_in_stock}, delta {delta}"
            )
            raise InsufficientStock(
                f"Insufficient stock. Available: {row.quantity_in_stock}, Requested: {-delta}"
            )

        row.quantity_in_stock = new_quantity
        await db.flush()
        return row

    async def upsert_retailer_stock(self, db: AsyncSession, retailer_id, product_id, delta: int) -> RetailerInventory:
        """
        Increment a retailer's stock, creating the row on first receipt.
        Single INSERT ... ON CONFLICT statement; a concurrent first receipt for
        the same product increments the same row. New rows keep the table
        default reorder level.
        """
        if delta <= 0:
            raise InvalidQuantity("Received quantity must be greater than 0")

        now = utcnow()
        upsert = UPSERT_DIALECTS[db.get_bind().dialect.name]
        stmt = upsert(RetailerInventory).values(
            retailer_id=retailer_id,
            product_id=product_id,
            quantity_in_stock=delta,
            last_restocked=now,
            updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RetailerInventory.retailer_id, RetailerInventory.product_id],
            set_={
                "quantity_in_stock": RetailerInventory.quantity_in_stock + stmt.excluded.quantity_in_stock,
                "last_restocked": stmt.excluded.last_restocked,
                "updated_at": stmt.excluded.updated_at,
            }
        )
        row = await db.scalar(
            stmt.returning(RetailerInventory),
            execution_options={"populate_existing": True}
        )
        return row

    async def restock(self, db: AsyncSession, seller_id, role: UserRole, product_id, amount: int):
        """Add stock to the caller's own inventory row and stamp last_restocked"""
        if amount is None or amount <= 0:
            raise InvalidQuantity("Valid quantity required, restock amount must be greater than 0")

        kind = inventory_kind_for_role(role)
        row = await self._get_row(db, seller_id, product_id, kind, lock=True)
        if row is None:
            raise NotFound("Inventory item not found")

        row.quantity_in_stock = row.quantity_in_stock + amount
        row.last_restocked = utcnow()
        await db.flush()

        logger.info(f"Restocked product {product_id} for {kind.value} {seller_id} by {amount} units")
        return row

    async def update_settings(
        self,
        db: AsyncSession,
        seller_id,
        role: UserRole,
        product_id,
        quantity_in_stock: Optional[int] = None,
        reorder_level: Optional[int] = None,
        minimum_order_quantity: Optional[int] = None,
    ):
        """Overwrite stock level and per-kind thresholds on the caller's own row"""
        kind = inventory_kind_for_role(role)

        if quantity_in_stock is not None and quantity_in_stock < 0:
            raise ValidationError("Stock quantity cannot be negative")

        if kind == InventoryKind.RETAILER:
            if minimum_order_quantity is not None:
                raise ValidationError("Minimum order quantity only applies to wholesaler inventory")
            if reorder_level is not None and reorder_level < 0:
                raise ValidationError("Reorder level cannot be negative")
        else:
            if reorder_level is not None:
                raise ValidationError("Reorder level only applies to retailer inventory")
            if (minimum_order_quantity is not None
                    and minimum_order_quantity < self.rules.absolute_wholesale_minimum):
                raise InvalidMinimumOrder(
                    f"Minimum order quantity cannot be less than "
                    f"{self.rules.absolute_wholesale_minimum} units"
                )

        row = await self._get_row(db, seller_id, product_id, kind, lock=True)
        if row is None:
            raise NotFound("Inventory item not found")

        if quantity_in_stock is not None:
            row.quantity_in_stock = quantity_in_stock
        if reorder_level is not None:
            row.reorder_level = reorder_level
        if minimum_order_quantity is not None:
            row.minimum_order_quantity = minimum_order_quantity

        await db.flush()
        return row

    async def list_inventory(self, db: AsyncSession, seller_id, role: UserRole) -> List[dict]:
        kind = inventory_kind_for_role(role)
        model, owner_column = INVENTORY_MODELS[kind]

        result = await db.execute(
            select(model, Product.name, Product.description, Product.price, Product.category)
            .join(Product, model.product_id == Product.id)
            .where(owner_column == seller_id)
            .order_by(model.updated_at.desc())
        )
        return [self._inventory_entry(row) for row in result.all()]

    async def get_low_stock(self, db: AsyncSession, retailer_id) -> List[dict]:
        """Retailer rows at or below their reorder level, most depleted first"""
        result = await db.execute(
            select(RetailerInventory, Product.name, Product.description, Product.price, Product.category)
            .join(Product, RetailerInventory.product_id == Product.id)
            .where(RetailerInventory.retailer_id == retailer_id)
            .where(RetailerInventory.quantity_in_stock <= RetailerInventory.reorder_level)
            .order_by(RetailerInventory.quantity_in_stock.asc())
        )
        return [self._inventory_entry(row) for row in result.all()]

    @staticmethod
    def _inventory_entry(row) -> dict:
        inventory, name, description, price, category = row
        entry = {
            "id": inventory.id,
            "product_id": inventory.product_id,
            "quantity_in_stock": inventory.quantity_in_stock,
            "last_restocked": inventory.last_restocked,
            "updated_at": inventory.updated_at,
            "name": name,
            "description": description,
            "price": price,
            "category": category,
        }
        if isinstance(inventory, RetailerInventory):
            entry["seller_id"] = inventory.retailer_id
            entry["reorder_level"] = inventory.reorder_level
            entry["needs_restock"] = inventory.needs_restock
        else:
            entry["seller_id"] = inventory.wholesaler_id
            entry["minimum_order_quantity"] = inventory.minimum_order_quantity
        return entry


inventory_helpers = InventoryHelpers()
