# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from enum import Enum

from .categories import PermissionCategory


class PermissionCode(str, Enum):
    """Closed set of permission codes. Route guards only accept members of this enum."""

    CREATE_USER = "CREATE_USER"
    READ_USER = "READ_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"

    CREATE_FACTORY = "CREATE_FACTORY"
    READ_FACTORY = "READ_FACTORY"
    UPDATE_FACTORY = "UPDATE_FACTORY"
    DELETE_FACTORY = "DELETE_FACTORY"

    CREATE_CYLINDER = "CREATE_CYLINDER"
    READ_CYLINDER = "READ_CYLINDER"
    UPDATE_CYLINDER = "UPDATE_CYLINDER"
    DELETE_CYLINDER = "DELETE_CYLINDER"

    CREATE_CUSTOMER = "CREATE_CUSTOMER"
    READ_CUSTOMER = "READ_CUSTOMER"
    UPDATE_CUSTOMER = "UPDATE_CUSTOMER"
    DELETE_CUSTOMER = "DELETE_CUSTOMER"

    CREATE_FILLING = "CREATE_FILLING"
    READ_FILLING = "READ_FILLING"
    UPDATE_FILLING = "UPDATE_FILLING"

    CREATE_INSPECTION = "CREATE_INSPECTION"
    READ_INSPECTION = "READ_INSPECTION"
    UPDATE_INSPECTION = "UPDATE_INSPECTION"

    CREATE_SALE = "CREATE_SALE"
    READ_SALE = "READ_SALE"
    UPDATE_SALE = "UPDATE_SALE"

    CREATE_TRUCK = "CREATE_TRUCK"
    READ_TRUCK = "READ_TRUCK"
    UPDATE_TRUCK = "UPDATE_TRUCK"
    DELETE_TRUCK = "DELETE_TRUCK"

    CREATE_MAINTENANCE = "CREATE_MAINTENANCE"
    READ_MAINTENANCE = "READ_MAINTENANCE"
    UPDATE_MAINTENANCE = "UPDATE_MAINTENANCE"

    VIEW_EVENTS = "VIEW_EVENTS"


# -- USERS --

USER_PERMISSIONS = [
    (
        PermissionCode.CREATE_USER,
        "Create User",
        "Create new user accounts",
        PermissionCategory.USERS,
    ),
    (
        PermissionCode.READ_USER,
        "View Users",
        "View user list and details",
        PermissionCategory.USERS,
    ),
    (
        PermissionCode.UPDATE_USER,
        "Update User",
        "Edit user details and change roles",
        PermissionCategory.USERS,
    ),
    (
        PermissionCode.DELETE_USER,
        "Delete User",
        "Deactivate user accounts",
        PermissionCategory.USERS,
    ),
]


# -- FACTORIES --

FACTORY_PERMISSIONS = [
    (
        PermissionCode.CREATE_FACTORY,
        "Create Factory",
        "Register factories and filling lines",
        PermissionCategory.FACTORIES,
    ),
    (
        PermissionCode.READ_FACTORY,
        "View Factories",
        "View factories and filling lines",
        PermissionCategory.FACTORIES,
    ),
    (
        PermissionCode.UPDATE_FACTORY,
        "Update Factory",
        "Edit factories and filling line settings",
        PermissionCategory.FACTORIES,
    ),
    (
        PermissionCode.DELETE_FACTORY,
        "Delete Factory",
        "Deactivate factories and filling lines",
        PermissionCategory.FACTORIES,
    ),
]


# -- CYLINDERS --

CYLINDER_PERMISSIONS = [
    (
        PermissionCode.CREATE_CYLINDER,
        "Intake Cylinder",
        "Register new cylinders (serial number + QR code)",
        PermissionCategory.CYLINDERS,
    ),
    (
        PermissionCode.READ_CYLINDER,
        "View Cylinders",
        "View cylinders, QR lookups and status history",
        PermissionCategory.CYLINDERS,
    ),
    (
        PermissionCode.UPDATE_CYLINDER,
        "Update Cylinder",
        "Edit cylinder attributes and run manual status changes",
        PermissionCategory.CYLINDERS,
    ),
    (
        PermissionCode.DELETE_CYLINDER,
        "Deactivate Cylinder",
        "Retire cylinders (soft delete once history exists)",
        PermissionCategory.CYLINDERS,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        PermissionCode.CREATE_CUSTOMER,
        "Create Customer",
        "Register new customers",
        PermissionCategory.CUSTOMERS,
    ),
    (
        PermissionCode.READ_CUSTOMER,
        "View Customers",
        "View customer list, balances and credit limits",
        PermissionCategory.CUSTOMERS,
    ),
    (
        PermissionCode.UPDATE_CUSTOMER,
        "Update Customer",
        "Edit customer details and credit limits",
        PermissionCategory.CUSTOMERS,
    ),
    (
        PermissionCode.DELETE_CUSTOMER,
        "Deactivate Customer",
        "Deactivate customers",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- FILLING --

FILLING_PERMISSIONS = [
    (
        PermissionCode.CREATE_FILLING,
        "Start Filling",
        "Start filling batches on a line",
        PermissionCategory.FILLING,
    ),
    (
        PermissionCode.READ_FILLING,
        "View Filling",
        "View filling batches and their details",
        PermissionCategory.FILLING,
    ),
    (
        PermissionCode.UPDATE_FILLING,
        "Update Filling",
        "Record fill outcomes and end batches",
        PermissionCategory.FILLING,
    ),
]


# -- INSPECTION --

INSPECTION_PERMISSIONS = [
    (
        PermissionCode.CREATE_INSPECTION,
        "Inspect Cylinder",
        "Record inspection results (approve/reject)",
        PermissionCategory.INSPECTION,
    ),
    (
        PermissionCode.READ_INSPECTION,
        "View Inspections",
        "View inspection history",
        PermissionCategory.INSPECTION,
    ),
    (
        PermissionCode.UPDATE_INSPECTION,
        "Request Inspection",
        "Send cylinders to the inspection queue",
        PermissionCategory.INSPECTION,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        PermissionCode.CREATE_SALE,
        "Create Sale",
        "Create sales and reserve cylinders",
        PermissionCategory.SALES,
    ),
    (
        PermissionCode.READ_SALE,
        "View Sales",
        "View sales, items and payments",
        PermissionCategory.SALES,
    ),
    (
        PermissionCode.UPDATE_SALE,
        "Update Sale",
        "Dispatch, deliver, cancel, take payments and record returns",
        PermissionCategory.SALES,
    ),
]


# -- FLEET --

FLEET_PERMISSIONS = [
    (
        PermissionCode.CREATE_TRUCK,
        "Create Truck",
        "Register delivery trucks",
        PermissionCategory.FLEET,
    ),
    (
        PermissionCode.READ_TRUCK,
        "View Trucks",
        "View trucks and availability",
        PermissionCategory.FLEET,
    ),
    (
        PermissionCode.UPDATE_TRUCK,
        "Update Truck",
        "Edit truck details and maintenance status",
        PermissionCategory.FLEET,
    ),
    (
        PermissionCode.DELETE_TRUCK,
        "Deactivate Truck",
        "Retire trucks",
        PermissionCategory.FLEET,
    ),
]


# -- MAINTENANCE --

MAINTENANCE_PERMISSIONS = [
    (
        PermissionCode.CREATE_MAINTENANCE,
        "Open Maintenance",
        "Send faulty cylinders to maintenance",
        PermissionCategory.MAINTENANCE,
    ),
    (
        PermissionCode.READ_MAINTENANCE,
        "View Maintenance",
        "View maintenance records",
        PermissionCategory.MAINTENANCE,
    ),
    (
        PermissionCode.UPDATE_MAINTENANCE,
        "Close Maintenance",
        "Complete repairs or mark cylinders unrepairable",
        PermissionCategory.MAINTENANCE,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        PermissionCode.VIEW_EVENTS,
        "View Events",
        "Poll recent lifecycle notifications",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + FACTORY_PERMISSIONS
    + CYLINDER_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + FILLING_PERMISSIONS
    + INSPECTION_PERMISSIONS
    + SALES_PERMISSIONS
    + FLEET_PERMISSIONS
    + MAINTENANCE_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
