from .auth import User, SessionToken
from .security import SecurityEvent
from .documents import DocumentSequence
from .factories import Factory
from .customers import Customer
from .fleet import Truck
from .cylinders import Cylinder, CylinderEvent
from .filling import FillingLine, FillingBatch, FillingDetail
from .inspections import Inspection
from .sales import Sale, SaleItem, SalePayment
from .maintenance import MaintenanceRecord

__all__ = [
    'User', 'SessionToken', 'SecurityEvent', 'DocumentSequence',
    'Factory', 'Customer', 'Truck',
    'Cylinder', 'CylinderEvent',
    'FillingLine', 'FillingBatch', 'FillingDetail',
    'Inspection',
    'Sale', 'SaleItem', 'SalePayment',
    'MaintenanceRecord',
]
