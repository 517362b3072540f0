from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, distinct
from sqlalchemy.orm import aliased
from models import Order, Product, User, OrderType, OrderStatus, to_money
from utils.errors import InvalidStatus, NotFoundOrUnauthorized
from decimal import Decimal
from datetime import datetime
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def parse_order_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidStatus(f"Invalid status. Must be one of: {allowed}")


class OrderHelpers:
    """Append-only order records; only status changes after creation"""

    async def record_order(
        self,
        db: AsyncSession,
        buyer_id,
        seller_id,
        product_id,
        quantity: int,
        unit_price,
        order_type: OrderType,
        offline_order: bool = False,
        delivery_details: Optional[str] = None,
        expected_delivery_date: Optional[datetime] = None,
    ) -> Order:
        price = to_money(unit_price)
        order = Order(
            buyer_id=buyer_id,
            seller_id=seller_id,
            product_id=product_id,
            quantity=quantity,
            price=price,
            total_amount=to_money(price * quantity),
            order_type=OrderType(order_type),
            status=OrderStatus.PENDING,
            offline_order=bool(offline_order),
            delivery_details=delivery_details,
            expected_delivery_date=expected_delivery_date
        )
        db.add(order)
        await db.flush()
        return order

    async def transition_status(self, db: AsyncSession, order_id, seller_id, new_status) -> Order:
        """Move an order to a new status; only its seller may do this"""
        new_status = parse_order_status(new_status)

        result = await db.execute(
            select(Order)
            .where(and_(Order.id == order_id, Order.seller_id == seller_id))
            .with_for_update()
        )
        order = result.scalar_one_or_none()
        if not order:
            logger.warning(f"Status change to {new_status.value} refused - order {order_id}, caller {seller_id}")
            raise NotFoundOrUnauthorized("Order not found or unauthorized")

        order.status = new_status
        await db.flush()
        logger.info(f"Order {order_id} moved to {new_status.value} by seller {seller_id}")
        return order

    async def get_orders(
        self,
        db: AsyncSession,
        buyer_id=None,
        seller_id=None,
        order_type: Optional[OrderType] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """Orders matching the filters, newest first, with product and party names"""
        buyer = aliased(User)
        seller = aliased(User)

        filters = []
        if buyer_id is not None:
            filters.append(Order.buyer_id == buyer_id)
        if seller_id is not None:
            filters.append(Order.seller_id == seller_id)
        if order_type is not None:
            filters.append(Order.order_type == OrderType(order_type))
        if status is not None:
            filters.append(Order.status == parse_order_status(status))

        total = await db.scalar(select(func.count(Order.id)).where(*filters))

        result = await db.execute(
            select(
                Order,
                Product.name.label("product_name"),
                Product.category.label("product_category"),
                buyer.name.label("buyer_name"),
                seller.name.label("seller_name"),
            )
            .join(Product, Order.product_id == Product.id)
            .join(buyer, Order.buyer_id == buyer.id)
            .join(seller, Order.seller_id == seller.id)
            .where(*filters)
            .order_by(Order.order_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        orders = []
        for order, product_name, product_category, buyer_name, seller_name in result.all():
            entry = order_to_dict(order)
            entry.update(
                product_name=product_name,
                product_category=product_category,
                buyer_name=buyer_name,
                seller_name=seller_name
            )
            orders.append(entry)

        return {"orders": orders, "page": page, "limit": limit, "total": total or 0}

    async def sales_summary(self, db: AsyncSession, seller_id, order_type: OrderType) -> dict:
        """Totals over a seller's non-cancelled orders plus the ten best products by revenue"""
        filters = [
            Order.seller_id == seller_id,
            Order.order_type == OrderType(order_type),
            Order.status != OrderStatus.CANCELLED,
        ]

        totals = (await db.execute(
            select(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
                func.coalesce(func.sum(Order.quantity), 0),
                func.count(distinct(Order.buyer_id)),
            ).where(*filters)
        )).one()
        total_orders, revenue, units_sold, unique_buyers = totals
        revenue = to_money(revenue)

        revenue_column = func.sum(Order.total_amount).label("revenue")
        top_result = await db.execute(
            select(
                Product.id,
                Product.name,
                func.sum(Order.quantity).label("units_sold"),
                revenue_column,
            )
            .join(Product, Order.product_id == Product.id)
            .where(*filters)
            .group_by(Product.id, Product.name)
            .order_by(revenue_column.desc())
            .limit(10)
        )

        return {
            "order_type": OrderType(order_type).value,
            "total_orders": total_orders,
            "total_revenue": revenue,
            "average_order_value": to_money(revenue / total_orders) if total_orders else Decimal("0.00"),
            "units_sold": int(units_sold),
            "unique_buyers": unique_buyers,
            "top_products": [
                {
                    "product_id": product_id,
                    "name": name,
                    "units_sold": int(units),
                    "revenue": to_money(product_revenue),
                }
                for product_id, name, units, product_revenue in top_result.all()
            ],
        }


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "buyer_id": order.buyer_id,
        "seller_id": order.seller_id,
        "product_id": order.product_id,
        "quantity": order.quantity,
        "price": order.price,
        "total_amount": order.total_amount,
        "order_type": order.order_type,
        "status": order.status,
        "order_date": order.order_date,
        "offline_order": order.offline_order,
        "delivery_details": order.delivery_details,
        "expected_delivery_date": order.expected_delivery_date,
    }


order_helpers = OrderHelpers()
