# Overview: Delivery trucks.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class TruckStatus:
    AVAILABLE = "AVAILABLE"
    IN_TRANSIT = "IN_TRANSIT"
    MAINTENANCE = "MAINTENANCE"

    ALL = (AVAILABLE, IN_TRANSIT, MAINTENANCE)


class Truck(db.Model):
    """
    A delivery truck.

    A truck is IN_TRANSIT only while exactly one dispatched sale holds it;
    completing or cancelling that sale sets it back to AVAILABLE.
    """
    __tablename__ = "trucks"
    __table_args__ = (
        db.UniqueConstraint("license_number", name="uq_trucks_license_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    license_number = db.Column(db.String(32), nullable=False, index=True)
    truck_type = db.Column(db.String(64), nullable=True)
    owner = db.Column(db.String(128), nullable=True)
    capacity = db.Column(db.Integer, nullable=False, default=1)
    driver_name = db.Column(db.String(128), nullable=True)
    driver_phone = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=TruckStatus.AVAILABLE, index=True)
    last_maintenance_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "license_number": self.license_number,
            "truck_type": self.truck_type,
            "owner": self.owner,
            "capacity": self.capacity,
            "driver_name": self.driver_name,
            "driver_phone": self.driver_phone,
            "status": self.status,
            "last_maintenance_date": to_utc_z(self.last_maintenance_date) if self.last_maintenance_date else None,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
