"""
Typed failures for marketplace operations.

Every error is an HTTPException, so routers can keep re-raising them untouched,
and main.py renders them as {"error": <code>, "detail": <message>}.
"""
from fastapi import HTTPException, status
from typing import Optional


class MarketplaceError(HTTPException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"

    def __init__(self, message: str, item_index: Optional[int] = None):
        if item_index is not None:
            message = f"Item {item_index}: {message}"
        super().__init__(status_code=self.http_status, detail=message)
        self.message = message
        self.item_index = item_index

    def to_dict(self) -> dict:
        payload = {"error": self.code, "detail": self.message}
        if self.item_index is not None:
            payload["item"] = self.item_index
        return payload


# 400
class ValidationError(MarketplaceError):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class InvalidQuantity(ValidationError):
    code = "invalid_quantity"


class InvalidDate(ValidationError):
    code = "invalid_date"


class InvalidStatus(ValidationError):
    code = "invalid_status"


class InvalidSeller(ValidationError):
    code = "invalid_seller"


class ProductSellerMismatch(ValidationError):
    code = "product_seller_mismatch"


# 403
class Forbidden(MarketplaceError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class RoleMismatch(Forbidden):
    code = "role_mismatch"


# 404, "not found" and "not yours" are deliberately the same answer
class NotFound(MarketplaceError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "not_found"


class NotFoundOrUnauthorized(NotFound):
    code = "not_found_or_unauthorized"


# 409
class Conflict(MarketplaceError):
    http_status = status.HTTP_409_CONFLICT
    code = "conflict"


class SelfDealing(Conflict):
    code = "self_dealing"


class BelowMinimumOrder(Conflict):
    code = "below_minimum_order"


class InsufficientStock(Conflict):
    code = "insufficient_stock"


class InvalidMinimumOrder(Conflict):
    code = "invalid_minimum_order"


# 5xx
class InternalError(MarketplaceError):
    code = "internal_error"


class DataIntegrity(InternalError):
    code = "data_integrity"


class StoreUnavailable(InternalError):
    """Connection pool exhausted or database unreachable, safe to retry"""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"
