from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# Product Schemas
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    initial_stock: int = Field(0, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)  # Retailers
    minimum_order_quantity: Optional[int] = Field(None, gt=0)  # Wholesalers, floor checked by the catalog

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)

class ProductResponse(BaseModel):
    id: str
    seller_id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProductCreateResponse(BaseModel):
    message: str
    product: ProductResponse
    quantity_in_stock: int
    reorder_level: Optional[int] = None
    minimum_order_quantity: Optional[int] = None

class CatalogueProductResponse(BaseModel):
    """Product with its seller and the seller's stock for it"""
    id: str
    seller_id: str
    seller_name: str
    seller_role: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    quantity_in_stock: int
    reorder_level: Optional[int] = None
    minimum_order_quantity: Optional[int] = None
    needs_restock: Optional[bool] = None
    created_at: datetime
    updated_at: datetime

class ProductListResponse(BaseModel):
    """Response schema for product listing"""
    products: List[CatalogueProductResponse]
    page: int
    limit: int
    total: int

class SellerProductsResponse(BaseModel):
    products: List[CatalogueProductResponse]
    total: int
