# Overview: Role names and the static role -> permission mapping.

from enum import Enum

from .definitions import PermissionCode as P


class RoleName(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    FILLER = "FILLER"
    INSPECTOR = "INSPECTOR"
    SELLER = "SELLER"
    VIEWER = "VIEWER"


_READ_ALL = [
    P.READ_USER,
    P.READ_FACTORY,
    P.READ_CYLINDER,
    P.READ_CUSTOMER,
    P.READ_FILLING,
    P.READ_INSPECTION,
    P.READ_SALE,
    P.READ_TRUCK,
    P.READ_MAINTENANCE,
]


# Default role permissions (used by `flask perms list` and the access gate)
DEFAULT_ROLE_PERMISSIONS = {
    RoleName.ADMIN: list(P),
    RoleName.MANAGER: [
        P.READ_USER, P.UPDATE_USER,
        P.READ_FACTORY, P.UPDATE_FACTORY,
        P.CREATE_CYLINDER, P.READ_CYLINDER, P.UPDATE_CYLINDER,
        P.CREATE_CUSTOMER, P.READ_CUSTOMER, P.UPDATE_CUSTOMER,
        P.CREATE_FILLING, P.READ_FILLING, P.UPDATE_FILLING,
        P.CREATE_INSPECTION, P.READ_INSPECTION, P.UPDATE_INSPECTION,
        P.CREATE_SALE, P.READ_SALE, P.UPDATE_SALE,
        P.CREATE_TRUCK, P.READ_TRUCK, P.UPDATE_TRUCK,
        P.CREATE_MAINTENANCE, P.READ_MAINTENANCE, P.UPDATE_MAINTENANCE,
        P.VIEW_EVENTS,
    ],
    RoleName.FILLER: [
        P.READ_FACTORY,
        P.READ_CYLINDER, P.UPDATE_CYLINDER,
        P.READ_CUSTOMER,
        P.CREATE_FILLING, P.READ_FILLING, P.UPDATE_FILLING,
        P.READ_MAINTENANCE,
        P.VIEW_EVENTS,
    ],
    RoleName.INSPECTOR: [
        P.READ_CYLINDER, P.UPDATE_CYLINDER,
        P.CREATE_INSPECTION, P.READ_INSPECTION, P.UPDATE_INSPECTION,
        P.CREATE_MAINTENANCE, P.READ_MAINTENANCE, P.UPDATE_MAINTENANCE,
        P.VIEW_EVENTS,
    ],
    RoleName.SELLER: [
        P.READ_CYLINDER,
        P.READ_CUSTOMER, P.UPDATE_CUSTOMER,
        P.READ_FILLING,
        P.READ_INSPECTION,
        P.CREATE_SALE, P.READ_SALE, P.UPDATE_SALE,
        P.READ_TRUCK,
        P.VIEW_EVENTS,
    ],
    RoleName.VIEWER: list(_READ_ALL),
}
