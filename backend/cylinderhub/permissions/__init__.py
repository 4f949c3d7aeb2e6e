# Overview: Permission system package.
# Re-exports all public APIs for imports from routes, services and the CLI.

from .categories import PermissionCategory
from .definitions import (
    PermissionCode,
    PERMISSION_DEFINITIONS,
    USER_PERMISSIONS,
    FACTORY_PERMISSIONS,
    CYLINDER_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    FILLING_PERMISSIONS,
    INSPECTION_PERMISSIONS,
    SALES_PERMISSIONS,
    FLEET_PERMISSIONS,
    MAINTENANCE_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import RoleName, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    get_role_permissions,
    role_has_permission,
    validate_permission_code,
    validate_role_mapping,
)

__all__ = [
    "PermissionCategory",
    "PermissionCode",
    "RoleName",
    "PERMISSION_DEFINITIONS",
    "USER_PERMISSIONS",
    "FACTORY_PERMISSIONS",
    "CYLINDER_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "FILLING_PERMISSIONS",
    "INSPECTION_PERMISSIONS",
    "SALES_PERMISSIONS",
    "FLEET_PERMISSIONS",
    "MAINTENANCE_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "get_role_permissions",
    "role_has_permission",
    "validate_permission_code",
    "validate_role_mapping",
]
