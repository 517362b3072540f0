from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_user
from dependencies.rbac import require_inventory_read, require_inventory_write, require_low_stock_read
from utils.errors import InternalError
from utils.transactions import transaction
from utils.response_helpers import safe_model_validate, safe_model_validate_list
from .schemas import (
    RestockRequest, InventorySettingsUpdate, InventoryRowResponse,
    InventoryItemResponse, InventoryListResponse, RestockResponse
)
from .helpers import inventory_helpers
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/", response_model=InventoryListResponse)
async def get_my_inventory(
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_inventory_read)
):
    """Stock rows for the caller's own products"""
    try:
        items = await inventory_helpers.list_inventory(db, current_user["user_id"], current_user["role"])
        return InventoryListResponse(
            items=safe_model_validate_list(InventoryItemResponse, items),
            total=len(items)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting inventory for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to get inventory")


@router.get("/low-stock", response_model=InventoryListResponse)
async def get_low_stock(
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_low_stock_read)
):
    """Retailer products at or below their reorder level, most depleted first"""
    try:
        items = await inventory_helpers.get_low_stock(db, current_user["user_id"])
        return InventoryListResponse(
            items=safe_model_validate_list(InventoryItemResponse, items),
            total=len(items)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting low stock for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to get low stock items")


@router.post("/{product_id}/restock", response_model=RestockResponse)
async def restock_inventory(
    product_id: uuid.UUID,
    restock_data: RestockRequest,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_inventory_write)
):
    """Add units to the caller's stock of a product"""
    async with transaction(db, "restock"):
        row = await inventory_helpers.restock(
            db, current_user["user_id"], current_user["role"], product_id, restock_data.quantity
        )

    return RestockResponse(
        message=f"Restocked {restock_data.quantity} units",
        inventory=safe_model_validate(InventoryRowResponse, row)
    )


@router.patch("/{product_id}", response_model=InventoryRowResponse)
async def update_inventory_settings(
    product_id: uuid.UUID,
    settings: InventorySettingsUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_inventory_write)
):
    """Set stock level, reorder level (retailer) or minimum order quantity (wholesaler)"""
    async with transaction(db, "inventory settings update"):
        row = await inventory_helpers.update_settings(
            db,
            current_user["user_id"],
            current_user["role"],
            product_id,
            **settings.model_dump(exclude_unset=True)
        )

    logger.info(f"Inventory settings updated for product {product_id} by {current_user['user_id']}")
    return safe_model_validate(InventoryRowResponse, row)
