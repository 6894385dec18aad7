"""
Permission codes and role mappings.

Permissions are granular (one action per permission) and grouped by category
for display. Order status changes are additionally gated per transition by
the authority table in services/order_state.py.
"""

from __future__ import annotations

from .models import Role


class PermissionCategory:
    """Permission categories for organization."""
    CATALOG = "CATALOG"
    ORDERS = "ORDERS"
    SHOPPING = "SHOPPING"
    FINANCE = "FINANCE"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and delete catalog products (including stock corrections)",
        PermissionCategory.CATALOG,
    ),
    (
        "VIEW_ORDERS",
        "View All Orders",
        "List every order in the shop",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_SHIPPING_QUEUE",
        "View Shipping Queue",
        "List fully paid orders that are ready to ship",
        PermissionCategory.ORDERS,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "Confirm arrivals and payments, edit deposits, cancel and complete orders",
        PermissionCategory.ORDERS,
    ),
    (
        "SHIP_ORDERS",
        "Ship Orders",
        "Record a shipping method on fully paid orders",
        PermissionCategory.ORDERS,
    ),
    (
        "SHOP",
        "Shop",
        "Use a cart, check out, pay for and view own orders",
        PermissionCategory.SHOPPING,
    ),
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "List and record shop expenses",
        PermissionCategory.FINANCE,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "View the sales/expense stats summary",
        PermissionCategory.FINANCE,
    ),
]

ALL_PERMISSION_CODES = frozenset(code for code, _, _, _ in PERMISSION_DEFINITIONS)


DEFAULT_ROLE_PERMISSIONS = {
    # Master admin: everything staff can do
    Role.MASTER: frozenset({
        "MANAGE_PRODUCTS",
        "VIEW_ORDERS",
        "VIEW_SHIPPING_QUEUE",
        "MANAGE_ORDERS",
        "SHIP_ORDERS",
        "MANAGE_EXPENSES",
        "VIEW_REPORTS",
    }),
    # Warehouse staff: fulfillment only
    Role.SECOND: frozenset({
        "VIEW_SHIPPING_QUEUE",
        "SHIP_ORDERS",
    }),
    Role.CUSTOMER: frozenset({
        "SHOP",
    }),
}


def get_permission_definition(code: str) -> dict | None:
    """Full catalogue entry for a permission code, or None if unknown."""
    for perm_code, name, description, category in PERMISSION_DEFINITIONS:
        if perm_code == code:
            return {
                "code": perm_code,
                "name": name,
                "description": description,
                "category": category,
            }
    return None


def validate_permission_code(code: str) -> bool:
    return code in ALL_PERMISSION_CODES
