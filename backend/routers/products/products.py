from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_user
from dependencies.rbac import require_product_read, require_product_write, require_product_delete
from utils.errors import InternalError
from utils.transactions import transaction
from utils.response_helpers import safe_model_validate, safe_model_validate_list
from routers.products.schemas import (
    ProductCreate, ProductUpdate, ProductResponse, ProductCreateResponse,
    CatalogueProductResponse, ProductListResponse, SellerProductsResponse
)
from .helpers import product_helpers
from typing import Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


# =================
# CATALOGUE ROUTES
# =================

@router.get("/all", response_model=ProductListResponse)
async def get_all_products(
    in_stock: bool = Query(False, description="Only products with stock available"),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_read)
):
    """
    Products the caller can trade with: customers see retailer products,
    retailers see wholesaler products, wholesalers see everything
    """
    try:
        listing = await product_helpers.list_products(
            db, current_user["role"], in_stock_only=in_stock, category=category, page=page, limit=limit
        )
        listing["products"] = safe_model_validate_list(CatalogueProductResponse, listing["products"])
        return ProductListResponse(**listing)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing products: {str(e)}")
        raise InternalError("Failed to get products")


@router.get("/seller/{seller_id}", response_model=SellerProductsResponse)
async def get_seller_products(
    seller_id: uuid.UUID,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_read)
):
    """All products of one seller"""
    try:
        products = await product_helpers.list_seller_products(db, seller_id)
        return SellerProductsResponse(
            products=safe_model_validate_list(CatalogueProductResponse, products),
            total=len(products)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting products of seller {seller_id}: {str(e)}")
        raise InternalError("Failed to get seller products")


@router.get("/my-products", response_model=SellerProductsResponse)
async def get_my_products(
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_write)
):
    """The caller's own products with stock and thresholds"""
    try:
        products = await product_helpers.list_my_products(db, current_user["user_id"], current_user["role"])
        return SellerProductsResponse(
            products=safe_model_validate_list(CatalogueProductResponse, products),
            total=len(products)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting products for {current_user['user_id']}: {str(e)}")
        raise InternalError("Failed to get your products")


# =================
# SELLER ROUTES
# =================

@router.post("/", response_model=ProductCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_write)
):
    """Create a product together with the seller's inventory row"""
    async with transaction(db, "product creation"):
        product, inventory = await product_helpers.create_product(
            db,
            current_user["user_id"],
            current_user["role"],
            **product_data.model_dump()
        )

    return ProductCreateResponse(
        message="Product added successfully",
        product=safe_model_validate(ProductResponse, product),
        quantity_in_stock=inventory.quantity_in_stock,
        reorder_level=getattr(inventory, "reorder_level", None),
        minimum_order_quantity=getattr(inventory, "minimum_order_quantity", None)
    )


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_update: ProductUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_write)
):
    """Update one of the caller's products"""
    async with transaction(db, "product update"):
        product = await product_helpers.update_product(
            db, product_id, current_user["user_id"], **product_update.model_dump(exclude_unset=True)
        )

    logger.info(f"Product {product_id} updated by {current_user['user_id']}")
    return safe_model_validate(ProductResponse, product)


@router.delete("/{product_id}")
async def delete_product(
    product_id: uuid.UUID,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_delete)
):
    """Delete one of the caller's products and its inventory"""
    async with transaction(db, "product deletion"):
        await product_helpers.delete_product(db, product_id, current_user["user_id"])

    return {"message": "Product deleted successfully", "product_id": str(product_id)}
