"""
Permission System Constants and Definitions

Centralized capability policy: routes name the capability they need via
@require_permission, and this module alone decides which roles hold it.
There are no inline role checks anywhere else.
"""

from .errors import AuthorizationError


class PermissionCategory:
    """Permission categories for organization."""
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    USERS = "USERS"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "List inventory items and stock levels",
        PermissionCategory.INVENTORY
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Create, edit, delete items and adjust stock",
        PermissionCategory.INVENTORY
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Record sales and reserve invoice numbers (POS access)",
        PermissionCategory.SALES
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View recorded sales and daily summaries",
        PermissionCategory.SALES
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create staff accounts",
        PermissionCategory.USERS
    ),
]


DEFAULT_ROLE_PERMISSIONS = {
    "admin": [
        # Admin gets ALL permissions
        "VIEW_INVENTORY",
        "MANAGE_INVENTORY",
        "CREATE_SALE",
        "VIEW_SALES",
        "MANAGE_USERS",
    ],

    "cashier": [
        # Cashier: sell and look things up, no stock edits
        "VIEW_INVENTORY",
        "CREATE_SALE",
        "VIEW_SALES",
    ],
}


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role: str) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def role_has_permission(role: str, permission_code: str) -> bool:
    return permission_code in get_role_permissions(role)


def require_permission(role: str, permission_code: str) -> None:
    """Raise AuthorizationError unless role holds permission_code."""
    if permission_code not in get_all_permission_codes():
        raise ValueError(f"Unknown permission code: {permission_code}")

    if not role_has_permission(role, permission_code):
        raise AuthorizationError(
            "Access denied",
            details={"required_permission": permission_code, "role": role},
        )
