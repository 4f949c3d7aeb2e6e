# Overview: Repair records for cylinders that failed a fill or an inspection.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class MaintenanceStatus:
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"
    UNREPAIRABLE = "UNREPAIRABLE"


class MaintenanceRecord(db.Model):
    """A single repair attempt. At most one OPEN record per cylinder."""
    __tablename__ = "maintenance_records"
    __table_args__ = (
        db.Index("ix_maintenance_cylinder_status", "cylinder_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cylinder_id = db.Column(db.Integer, db.ForeignKey("cylinders.id"), nullable=False, index=True)
    technician_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=MaintenanceStatus.OPEN, index=True)
    issue_description = db.Column(db.Text, nullable=False)
    action_taken = db.Column(db.Text, nullable=True)
    cost_cents = db.Column(db.Integer, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    cylinder = db.relationship("Cylinder", backref=db.backref("maintenance_records", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cylinder_id": self.cylinder_id,
            "technician_user_id": self.technician_user_id,
            "status": self.status,
            "issue_description": self.issue_description,
            "action_taken": self.action_taken,
            "cost_cents": self.cost_cents,
            "opened_at": to_utc_z(self.opened_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "completed_by_user_id": self.completed_by_user_id,
            "notes": self.notes,
        }
