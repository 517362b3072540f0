"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication,
plus the purchase tier table that decides who may buy from whom
"""
from fastapi import HTTPException, status, Request
from models import UserRole, OrderType
from utils.errors import Forbidden, InternalError, RoleMismatch
from typing import Optional
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'customer': {
        'products': ['read'],  # Retail catalogue only
        'orders': ['read', 'write'],  # Place and view own purchases
    },
    'retailer': {
        'products': ['read', 'write', 'delete'],  # Own retail listings
        'inventory': ['read', 'write'],
        'inventory/low-stock': ['read'],
        'orders': ['read', 'write'],  # Sales to customers, status updates
        'orders/wholesale': ['read', 'write'],  # Bulk purchases from wholesalers
        'analytics': ['read'],
    },
    'wholesaler': {
        'products': ['read', 'write', 'delete'],
        'inventory': ['read', 'write'],
        'orders': ['read', 'write'],  # Sales to retailers, status updates
        'analytics': ['read'],
    },
}

# (buyer role, seller role) -> order type. Anything missing is not a permitted tier.
PURCHASE_TIERS = {
    (UserRole.CUSTOMER, UserRole.RETAILER): OrderType.RETAIL,
    (UserRole.RETAILER, UserRole.WHOLESALER): OrderType.WHOLESALE,
}

# Which seller role lists products of each order type
SELLER_ROLE_FOR_TIER = {order_type: seller for (_, seller), order_type in PURCHASE_TIERS.items()}


def resolve_purchase_tier(buyer_role: UserRole, seller_role: UserRole) -> Optional[OrderType]:
    """Order type for a buyer/seller pairing, or None if the pairing may not trade"""
    return PURCHASE_TIERS.get((UserRole(buyer_role), UserRole(seller_role)))


def buyable_seller_roles(buyer_role: UserRole) -> list:
    """Seller roles whose listings this buyer may purchase"""
    return [seller for (buyer, seller) in PURCHASE_TIERS if buyer == UserRole(buyer_role)]


def normalize_path(path: str) -> str:
    """Normalize request path for RBAC checking"""
    if path.startswith('/'):
        path = path[1:]

    segments = path.split('/')

    if segments[0] == 'inventory':
        if len(segments) >= 2 and segments[1] == 'low-stock':
            return 'inventory/low-stock'
        return 'inventory'

    elif segments[0] == 'orders':
        if len(segments) >= 2:
            if segments[1] == 'wholesale':
                return 'orders/wholesale'
            if segments[1] == 'analytics':
                return 'analytics'
        return 'orders'

    return segments[0]

def translate_method_to_action(method: str) -> str:
    """Map HTTP methods to RBAC actions"""
    method_permission_mapping = {
        'GET': 'read',
        'POST': 'write',
        'PUT': 'write',
        'PATCH': 'write',
        'DELETE': 'delete',
    }
    return method_permission_mapping.get(method.upper(), 'read')

def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    return False

def require_permission(resource: str = None, permission: str = None, denial: type = Forbidden):
    """
    Create an RBAC dependency that checks permissions

    Args:
        resource: Specific resource name (auto-detected if not provided)
        permission: Specific permission (auto-detected if not provided)
        denial: Typed error raised when the role lacks the permission
    """
    def check_rbac(request: Request):
        """RBAC dependency function"""
        try:
            current_user = getattr(request.state, 'current_user', None)
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            user_role = current_user.get('role')
            if isinstance(user_role, UserRole):
                user_role = user_role.value

            resource_name = resource or normalize_path(str(request.url.path))
            required_permission = permission or translate_method_to_action(request.method)

            if not has_permission(user_role, resource_name, required_permission):
                logger.warning(f"Access denied - User: {current_user.get('user_id')} ({user_role}), Resource: {resource_name}, Permission: {required_permission}")
                raise denial(
                    f"Access denied. {str(user_role).title()} role does not have {required_permission} permission for {resource_name}"
                )

            return True

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RBAC dependency error: {str(e)}")
            raise InternalError("Authorization check failed")

    return check_rbac

# Product permissions
require_product_read = require_permission("products", "read")
require_product_write = require_permission("products", "write")  # Sellers only
require_product_delete = require_permission("products", "delete")  # Sellers only

# Inventory permissions (sellers only)
require_inventory_read = require_permission("inventory", "read")
require_inventory_write = require_permission("inventory", "write")
require_low_stock_read = require_permission("inventory/low-stock", "read")  # Retailers only

# Order permissions
require_order_read = require_permission("orders", "read")
require_order_write = require_permission("orders", "write")
require_wholesale_order_write = require_permission("orders/wholesale", "write", denial=RoleMismatch)  # Retailers only

require_analytics = require_permission("analytics", "read")
