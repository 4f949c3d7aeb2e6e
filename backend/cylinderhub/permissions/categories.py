# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    USERS = "USERS"
    FACTORIES = "FACTORIES"
    CYLINDERS = "CYLINDERS"
    CUSTOMERS = "CUSTOMERS"
    FILLING = "FILLING"
    INSPECTION = "INSPECTION"
    SALES = "SALES"
    FLEET = "FLEET"
    MAINTENANCE = "MAINTENANCE"
    SYSTEM = "SYSTEM"

    ALL = (USERS, FACTORIES, CYLINDERS, CUSTOMERS, FILLING, INSPECTION, SALES, FLEET, MAINTENANCE, SYSTEM)
