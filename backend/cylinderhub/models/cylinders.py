# Overview: Cylinder master data and its append-only status history.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CylinderStatus:
    """Canonical lifecycle states. Only the lifecycle service writes these."""
    EMPTY = "EMPTY"
    FILLING = "FILLING"
    INSPECTION = "INSPECTION"
    FULL = "FULL"
    RESERVED = "RESERVED"
    IN_TRANSIT = "IN_TRANSIT"
    AT_CUSTOMER = "AT_CUSTOMER"
    ERROR = "ERROR"
    MAINTENANCE = "MAINTENANCE"

    ALL = (EMPTY, FILLING, INSPECTION, FULL, RESERVED, IN_TRANSIT, AT_CUSTOMER, ERROR, MAINTENANCE)


class CylinderType:
    MEDICAL = "MEDICAL"
    INDUSTRIAL = "INDUSTRIAL"

    ALL = (MEDICAL, INDUSTRIAL)


class CylinderLocation:
    """Who physically holds the cylinder."""
    FACTORY = "FACTORY"
    IN_TRANSIT = "IN_TRANSIT"
    CUSTOMER = "CUSTOMER"


class Cylinder(db.Model):
    """
    A physical gas cylinder.

    IDENTITY: serial_number and qr_code are unique and never change after
    intake. The QR code is derived from the serial number.

    HOLDER: (location, current_customer_id, current_truck_id) always agrees
    with status:
    - AT_CUSTOMER -> CUSTOMER with a customer id
    - IN_TRANSIT  -> IN_TRANSIT with a truck id
    - anything else -> FACTORY with neither

    RETENTION: once a cylinder has history it is only ever soft-deactivated
    (is_active = False) so sales, fills and inspections keep their reference.
    """
    __tablename__ = "cylinders"
    __table_args__ = (
        db.UniqueConstraint("serial_number", name="uq_cylinders_serial_number"),
        db.UniqueConstraint("qr_code", name="uq_cylinders_qr_code"),
        db.Index("ix_cylinders_status_active", "status", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    serial_number = db.Column(db.String(64), nullable=False, index=True)
    qr_code = db.Column(db.String(64), nullable=False)

    size_litres = db.Column(db.Float, nullable=False)
    cylinder_type = db.Column(db.String(16), nullable=False, default=CylinderType.INDUSTRIAL)
    gas_type = db.Column(db.String(32), nullable=True)
    working_pressure = db.Column(db.Float, nullable=False)  # MPa
    design_pressure = db.Column(db.Float, nullable=False)   # MPa
    original_number = db.Column(db.String(64), nullable=True)
    production_date = db.Column(db.DateTime(timezone=True), nullable=True)
    import_date = db.Column(db.DateTime(timezone=True), nullable=True)

    factory_id = db.Column(db.Integer, db.ForeignKey("factories.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=CylinderStatus.EMPTY, index=True)

    # Fill state (FULL/EMPTY) to restore when an inspection is approved
    pre_inspection_status = db.Column(db.String(16), nullable=True)

    location = db.Column(db.String(16), nullable=False, default=CylinderLocation.FACTORY)
    current_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    current_truck_id = db.Column(db.Integer, db.ForeignKey("trucks.id"), nullable=True, index=True)

    last_filled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_inspected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    factory = db.relationship("Factory", backref=db.backref("cylinders", lazy=True))
    current_customer = db.relationship("Customer", foreign_keys=[current_customer_id])
    current_truck = db.relationship("Truck", foreign_keys=[current_truck_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serial_number": self.serial_number,
            "qr_code": self.qr_code,
            "size_litres": self.size_litres,
            "cylinder_type": self.cylinder_type,
            "gas_type": self.gas_type,
            "working_pressure": self.working_pressure,
            "design_pressure": self.design_pressure,
            "original_number": self.original_number,
            "production_date": to_utc_z(self.production_date) if self.production_date else None,
            "import_date": to_utc_z(self.import_date) if self.import_date else None,
            "factory_id": self.factory_id,
            "status": self.status,
            "location": self.location,
            "current_customer_id": self.current_customer_id,
            "current_truck_id": self.current_truck_id,
            "last_filled_at": to_utc_z(self.last_filled_at) if self.last_filled_at else None,
            "last_inspected_at": to_utc_z(self.last_inspected_at) if self.last_inspected_at else None,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class CylinderEvent(db.Model):
    """
    One row per status transition.

    IMMUTABLE: written in the same transaction as the transition it records,
    never updated. reference_type/reference_id point at the document that
    caused it (FILLING_BATCH, INSPECTION, SALE, MAINTENANCE).
    """
    __tablename__ = "cylinder_events"
    __table_args__ = (
        db.Index("ix_cylinder_events_cylinder_occurred", "cylinder_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cylinder_id = db.Column(db.Integer, db.ForeignKey("cylinders.id"), nullable=False, index=True)

    from_status = db.Column(db.String(16), nullable=True)  # None for intake
    to_status = db.Column(db.String(16), nullable=False)
    trigger = db.Column(db.String(32), nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    cylinder = db.relationship(
        "Cylinder",
        backref=db.backref("events", lazy=True, order_by="CylinderEvent.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cylinder_id": self.cylinder_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "trigger": self.trigger,
            "actor_user_id": self.actor_user_id,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
