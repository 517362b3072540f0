from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.orm import selectinload
from config import BusinessRules, get_business_rules
from models import (
    Product, User, RetailerInventory, WholesalerInventory, Order, UserRole, to_money
)
from dependencies.rbac import buyable_seller_roles
from utils.errors import Conflict, Forbidden, InvalidMinimumOrder, NotFoundOrUnauthorized, ValidationError
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)

SELLER_ROLES = [UserRole.RETAILER, UserRole.WHOLESALER]

EDITABLE_FIELDS = ("name", "description", "price", "category")


def visible_seller_roles(viewer_role: UserRole) -> list:
    """Customers browse retailers, retailers browse wholesalers, wholesalers see the whole market"""
    if UserRole(viewer_role) == UserRole.WHOLESALER:
        return list(SELLER_ROLES)
    return buyable_seller_roles(viewer_role)


class ProductHelpers:
    """Seller-owned product definitions and their initial inventory rows"""

    def __init__(self, rules: BusinessRules = None):
        self.rules = rules or get_business_rules()

    async def create_product(
        self,
        db: AsyncSession,
        seller_id,
        role: UserRole,
        name: str,
        price,
        description: Optional[str] = None,
        category: Optional[str] = None,
        initial_stock: int = 0,
        reorder_level: Optional[int] = None,
        minimum_order_quantity: Optional[int] = None,
    ):
        """
        Create a product and the seller's inventory row for it in the caller's transaction.
        Returns (product, inventory_row).
        """
        role = UserRole(role)
        if role == UserRole.CUSTOMER:
            logger.warning(f"Customer {seller_id} attempted to list a product")
            raise Forbidden("Customers cannot add products")

        if initial_stock is None or initial_stock < 0:
            raise ValidationError("Initial stock cannot be negative")
        if price is None or to_money(price) < 0:
            raise ValidationError("Price cannot be negative")

        if role == UserRole.WHOLESALER:
            moq = minimum_order_quantity
            if moq is None:
                moq = self.rules.default_wholesale_minimum
            if moq < self.rules.absolute_wholesale_minimum:
                logger.warning(
                    f"Rejected MOQ {moq} for wholesaler {seller_id}, "
                    f"floor is {self.rules.absolute_wholesale_minimum}"
                )
                raise InvalidMinimumOrder(
                    f"Minimum order quantity cannot be less than "
                    f"{self.rules.absolute_wholesale_minimum} units for wholesale products"
                )
        elif reorder_level is not None and reorder_level < 0:
            raise ValidationError("Reorder level cannot be negative")

        product = Product(
            seller_id=seller_id,
            name=name,
            description=description,
            price=to_money(price),
            category=category
        )
        db.add(product)
        await db.flush()

        if role == UserRole.RETAILER:
            inventory = RetailerInventory(
                retailer_id=seller_id,
                product_id=product.id,
                quantity_in_stock=initial_stock,
                reorder_level=reorder_level if reorder_level is not None else self.rules.default_reorder_level
            )
        else:
            inventory = WholesalerInventory(
                wholesaler_id=seller_id,
                product_id=product.id,
                quantity_in_stock=initial_stock,
                minimum_order_quantity=moq
            )
        db.add(inventory)
        await db.flush()

        logger.info(f"Product {product.id} created by {role.value} {seller_id} with {initial_stock} units")
        return product, inventory

    async def get_owned_product(self, db: AsyncSession, product_id, seller_id, load_inventory: bool = False) -> Product:
        query = select(Product).where(and_(Product.id == product_id, Product.seller_id == seller_id))
        if load_inventory:
            query = query.options(
                selectinload(Product.retailer_inventory),
                selectinload(Product.wholesaler_inventory)
            )
        result = await db.execute(query)
        product = result.scalar_one_or_none()
        if not product:
            logger.warning(f"Product {product_id} not found or not owned by {seller_id}")
            raise NotFoundOrUnauthorized("Product not found or unauthorized")
        return product

    async def update_product(self, db: AsyncSession, product_id, seller_id, **changes) -> Product:
        """Change name, description, price or category of one of the seller's products"""
        product = await self.get_owned_product(db, product_id, seller_id)

        for field, value in changes.items():
            if field not in EDITABLE_FIELDS or value is None:
                continue
            if field == "price":
                value = to_money(value)
                if value < 0:
                    raise ValidationError("Price cannot be negative")
            setattr(product, field, value)

        await db.flush()
        return product

    async def delete_product(self, db: AsyncSession, product_id, seller_id) -> None:
        """Remove a product and its inventory rows; products with order history stay"""
        product = await self.get_owned_product(db, product_id, seller_id, load_inventory=True)

        order_count = await db.scalar(
            select(func.count(Order.id)).where(Order.product_id == product_id)
        )
        if order_count:
            logger.warning(f"Refusing to delete product {product_id} with {order_count} orders")
            raise Conflict("Product has existing orders and cannot be deleted")

        await db.delete(product)
        await db.flush()
        logger.info(f"Product {product_id} deleted by {seller_id}")

    def _catalogue_query(self):
        # Each product has exactly one inventory row, held by its own seller
        return (
            select(
                Product,
                User.name.label("seller_name"),
                User.role.label("seller_role"),
                RetailerInventory.quantity_in_stock.label("retail_stock"),
                RetailerInventory.reorder_level,
                WholesalerInventory.quantity_in_stock.label("wholesale_stock"),
                WholesalerInventory.minimum_order_quantity,
            )
            .join(User, Product.seller_id == User.id)
            .outerjoin(
                RetailerInventory,
                and_(
                    RetailerInventory.product_id == Product.id,
                    RetailerInventory.retailer_id == Product.seller_id
                )
            )
            .outerjoin(
                WholesalerInventory,
                and_(
                    WholesalerInventory.product_id == Product.id,
                    WholesalerInventory.wholesaler_id == Product.seller_id
                )
            )
        )

    @staticmethod
    def _stock_column():
        return func.coalesce(RetailerInventory.quantity_in_stock, WholesalerInventory.quantity_in_stock, 0)

    @staticmethod
    def _catalogue_entry(row) -> dict:
        product = row.Product
        stock = row.retail_stock if row.retail_stock is not None else row.wholesale_stock
        entry = {
            "id": product.id,
            "seller_id": product.seller_id,
            "seller_name": row.seller_name,
            "seller_role": row.seller_role,
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "category": product.category,
            "quantity_in_stock": stock or 0,
            "reorder_level": row.reorder_level,
            "minimum_order_quantity": row.minimum_order_quantity,
            "needs_restock": None,
            "created_at": product.created_at,
            "updated_at": product.updated_at,
        }
        if row.retail_stock is not None and row.reorder_level is not None:
            entry["needs_restock"] = row.retail_stock <= row.reorder_level
        return entry

    async def list_products(
        self,
        db: AsyncSession,
        viewer_role: UserRole,
        in_stock_only: bool = False,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """Catalogue filtered to the sellers the viewer trades with"""
        seller_roles = visible_seller_roles(viewer_role)
        filters = [User.role.in_(seller_roles)]
        if in_stock_only:
            filters.append(self._stock_column() > 0)
        if category:
            filters.append(Product.category == category)

        query = self._catalogue_query().where(*filters)
        total = await db.scalar(select(func.count()).select_from(query.subquery()))

        result = await db.execute(
            query.order_by(Product.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return {
            "products": [self._catalogue_entry(row) for row in result.all()],
            "page": page,
            "limit": limit,
            "total": total or 0,
        }

    async def list_seller_products(self, db: AsyncSession, seller_id) -> List[dict]:
        result = await db.execute(
            self._catalogue_query()
            .where(Product.seller_id == seller_id)
            .order_by(Product.created_at.desc())
        )
        return [self._catalogue_entry(row) for row in result.all()]

    async def list_my_products(self, db: AsyncSession, seller_id, role: UserRole) -> List[dict]:
        if UserRole(role) == UserRole.CUSTOMER:
            raise Forbidden("Customers do not have products")
        return await self.list_seller_products(db, seller_id)


product_helpers = ProductHelpers()
