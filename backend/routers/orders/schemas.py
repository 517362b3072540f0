from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid


class OrderCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(gt=0)
    offline_order: bool = False
    delivery_details: Optional[str] = None
    expected_delivery_date: Optional[str] = None  # ISO-8601, parsed by the engine


class WholesaleItem(BaseModel):
    product_id: uuid.UUID
    seller_id: uuid.UUID
    quantity: int


class WholesaleOrderCreate(BaseModel):
    items: List[WholesaleItem]
    delivery_details: Optional[str] = None
    expected_delivery_date: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str


class OrderResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    product_id: str
    quantity: int
    price: Decimal
    total_amount: Decimal
    order_type: str
    status: str
    order_date: datetime
    offline_order: bool = False
    delivery_details: Optional[str] = None
    expected_delivery_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlacedOrderResponse(OrderResponse):
    product_name: str


class OrderWithDetailsResponse(OrderResponse):
    product_name: Optional[str] = None
    product_category: Optional[str] = None
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None


class OrderListResponse(BaseModel):
    orders: List[OrderWithDetailsResponse]
    page: int
    limit: int
    total: int


class WholesaleOrderResponse(BaseModel):
    message: str
    orders: List[PlacedOrderResponse]
    total_amount: Decimal


class TopProduct(BaseModel):
    product_id: str
    name: str
    units_sold: int
    revenue: Decimal


class SalesSummaryResponse(BaseModel):
    order_type: str
    total_orders: int
    total_revenue: Decimal
    average_order_value: Decimal
    units_sold: int
    unique_buyers: int
    top_products: List[TopProduct]
