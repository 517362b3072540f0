from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import OrderType, UserRole
from routers.auth.auth import get_current_user
from dependencies.rbac import (
    require_order_read, require_order_write, require_wholesale_order_write, require_analytics
)
from utils.errors import InternalError
from utils.transactions import transaction
from utils.response_helpers import safe_model_validate, safe_model_validate_list
from .schemas import (
    OrderCreate, WholesaleOrderCreate, OrderStatusUpdate, OrderResponse, PlacedOrderResponse,
    OrderWithDetailsResponse, OrderListResponse, WholesaleOrderResponse, SalesSummaryResponse
)
from .helpers import order_helpers
from .engine import order_engine
from typing import Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

# Orders a seller receives: retailers sell retail, wholesalers sell wholesale
SALES_ORDER_TYPE = {
    UserRole.RETAILER: OrderType.RETAIL,
    UserRole.WHOLESALER: OrderType.WHOLESALE,
}


@router.post("/", response_model=PlacedOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    order_data: OrderCreate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_write)
):
    """
    Buy a product from the tier above: customers from retailers, retailers from wholesalers
    """
    placed = await order_engine.place_order(
        db,
        buyer_id=current_user["user_id"],
        buyer_role=current_user["role"],
        product_id=order_data.product_id,
        quantity=order_data.quantity,
        offline_order=order_data.offline_order,
        delivery_details=order_data.delivery_details,
        expected_delivery_date=order_data.expected_delivery_date
    )
    return safe_model_validate(PlacedOrderResponse, placed)


@router.post("/wholesale", response_model=WholesaleOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_wholesale_order(
    order_data: WholesaleOrderCreate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_wholesale_order_write)
):
    """
    Retailer bulk purchase from one or more wholesalers. Either every item is
    placed and moved into the retailer's inventory, or none is.
    """
    result = await order_engine.place_wholesale_order(
        db,
        retailer_id=current_user["user_id"],
        buyer_role=current_user["role"],
        items=[item.model_dump() for item in order_data.items],
        delivery_details=order_data.delivery_details,
        expected_delivery_date=order_data.expected_delivery_date
    )
    return WholesaleOrderResponse(
        message=f"Wholesale order placed with {len(result['orders'])} items",
        orders=safe_model_validate_list(PlacedOrderResponse, result["orders"]),
        total_amount=result["total_amount"]
    )


@router.get("/purchases", response_model=OrderListResponse)
async def get_my_purchases(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_type: Optional[OrderType] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_read)
):
    """Orders the caller placed as a buyer"""
    try:
        listing = await order_helpers.get_orders(
            db,
            buyer_id=current_user["user_id"],
            order_type=order_type,
            status=status_filter,
            page=page,
            limit=limit
        )
        listing["orders"] = safe_model_validate_list(OrderWithDetailsResponse, listing["orders"])
        return OrderListResponse(**listing)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting purchases for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to retrieve orders")


@router.get("/sales", response_model=OrderListResponse)
async def get_my_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_read)
):
    """Orders placed with the caller as seller"""
    try:
        order_type = SALES_ORDER_TYPE.get(UserRole(current_user["role"]))
        if order_type is None:
            return OrderListResponse(orders=[], page=page, limit=limit, total=0)

        listing = await order_helpers.get_orders(
            db,
            seller_id=current_user["user_id"],
            order_type=order_type,
            status=status_filter,
            page=page,
            limit=limit
        )
        listing["orders"] = safe_model_validate_list(OrderWithDetailsResponse, listing["orders"])
        return OrderListResponse(**listing)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting sales for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to retrieve orders")


@router.get("/analytics/sales", response_model=SalesSummaryResponse)
async def get_sales_analytics(
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_analytics)
):
    """Order count, revenue and best sellers for the caller's sales"""
    try:
        order_type = SALES_ORDER_TYPE[UserRole(current_user["role"])]
        summary = await order_helpers.sales_summary(db, current_user["user_id"], order_type)
        return safe_model_validate(SalesSummaryResponse, summary)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting sales analytics for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to get sales analytics")


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_write)
):
    """Seller moves an order to pending, shipped, delivered or cancelled"""
    async with transaction(db, "order status update"):
        order = await order_helpers.transition_status(
            db, order_id, current_user["user_id"], status_update.status
        )

    return safe_model_validate(OrderResponse, order)
