from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# Request schemas
class RestockRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class InventorySettingsUpdate(BaseModel):
    """Only the fields that apply to the caller's inventory kind may be sent"""
    quantity_in_stock: Optional[int] = None
    reorder_level: Optional[int] = None
    minimum_order_quantity: Optional[int] = None


# Response schemas
class InventoryRowResponse(BaseModel):
    id: str
    product_id: str
    quantity_in_stock: int
    reorder_level: Optional[int] = None
    minimum_order_quantity: Optional[int] = None
    last_restocked: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryItemResponse(BaseModel):
    id: str
    product_id: str
    seller_id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    quantity_in_stock: int
    reorder_level: Optional[int] = None
    minimum_order_quantity: Optional[int] = None
    needs_restock: Optional[bool] = None
    last_restocked: Optional[datetime] = None
    updated_at: datetime


class InventoryListResponse(BaseModel):
    items: List[InventoryItemResponse]
    total: int


class RestockResponse(BaseModel):
    message: str
    inventory: InventoryRowResponse
