# Overview: Write-once inspection records.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class InspectionResult:
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    ALL = (APPROVED, REJECTED)


class Inspection(db.Model):
    """
    Inspection of a single cylinder.

    IMMUTABLE: rows are never updated. rejection_reason is present iff
    result is REJECTED.
    """
    __tablename__ = "inspections"
    __table_args__ = (
        db.Index("ix_inspections_cylinder_inspected", "cylinder_id", "inspected_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cylinder_id = db.Column(db.Integer, db.ForeignKey("cylinders.id"), nullable=False, index=True)
    inspector_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    inspected_at = db.Column(db.DateTime(timezone=True), nullable=False)

    pressure_reading = db.Column(db.Float, nullable=True)
    visual_check = db.Column(db.Boolean, nullable=False, default=False)
    valve_check = db.Column(db.Boolean, nullable=False, default=False)

    result = db.Column(db.String(16), nullable=False, index=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    cylinder = db.relationship("Cylinder", backref=db.backref("inspections", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cylinder_id": self.cylinder_id,
            "inspector_user_id": self.inspector_user_id,
            "inspected_at": to_utc_z(self.inspected_at),
            "pressure_reading": self.pressure_reading,
            "visual_check": self.visual_check,
            "valve_check": self.valve_check,
            "result": self.result,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
        }
