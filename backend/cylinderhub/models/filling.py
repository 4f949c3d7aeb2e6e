# Overview: Filling lines, filling batches (sessions) and per-cylinder fill details.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class LineStatus:
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    MAINTENANCE = "MAINTENANCE"

    ALL = (IDLE, ACTIVE, MAINTENANCE)


class BatchStatus:
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class FillOutcome:
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    TERMINAL = (SUCCESS, FAILED)


class FillingLine(db.Model):
    """
    A physical filling line.

    A line runs at most one batch at a time: IDLE -> ACTIVE when a batch
    starts, back to IDLE when the batch completes. MAINTENANCE lines accept
    no batches.
    """
    __tablename__ = "filling_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    factory_id = db.Column(db.Integer, db.ForeignKey("factories.id"), nullable=True, index=True)
    capacity = db.Column(db.Integer, nullable=False, default=10)
    cylinder_type = db.Column(db.String(16), nullable=False, default="INDUSTRIAL")
    status = db.Column(db.String(16), nullable=False, default=LineStatus.IDLE, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    factory = db.relationship("Factory", backref=db.backref("filling_lines", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "factory_id": self.factory_id,
            "capacity": self.capacity,
            "cylinder_type": self.cylinder_type,
            "status": self.status,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class FillingBatch(db.Model):
    """One filling session on a line."""
    __tablename__ = "filling_batches"
    __table_args__ = (
        db.Index("ix_filling_batches_line_status", "filling_line_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    filling_line_id = db.Column(db.Integer, db.ForeignKey("filling_lines.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=BatchStatus.IN_PROGRESS, index=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    started_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    ended_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    filling_line = db.relationship("FillingLine", backref=db.backref("batches", lazy=True))
    details = db.relationship(
        "FillingDetail",
        backref="batch",
        lazy=True,
        order_by="FillingDetail.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def outcome_counts(self) -> dict:
        counts = {"total": 0, "pending": 0, "success": 0, "failed": 0}
        for detail in self.details:
            counts["total"] += 1
            counts[detail.outcome.lower()] += 1
        return counts

    def to_dict(self, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "filling_line_id": self.filling_line_id,
            "status": self.status,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at) if self.ended_at else None,
            "started_by_user_id": self.started_by_user_id,
            "ended_by_user_id": self.ended_by_user_id,
            "notes": self.notes,
            "counts": self.outcome_counts(),
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
        return data


class FillingDetail(db.Model):
    """A cylinder's participation in a batch. outcome moves PENDING -> SUCCESS | FAILED once."""
    __tablename__ = "filling_details"
    __table_args__ = (
        db.UniqueConstraint("filling_batch_id", "cylinder_id", name="uq_filling_details_batch_cylinder"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    filling_batch_id = db.Column(db.Integer, db.ForeignKey("filling_batches.id"), nullable=False, index=True)
    cylinder_id = db.Column(db.Integer, db.ForeignKey("cylinders.id"), nullable=False, index=True)

    initial_pressure = db.Column(db.Float, nullable=True)
    final_pressure = db.Column(db.Float, nullable=True)
    outcome = db.Column(db.String(16), nullable=False, default=FillOutcome.PENDING)
    filled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    filled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    cylinder = db.relationship("Cylinder", backref=db.backref("filling_details", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filling_batch_id": self.filling_batch_id,
            "cylinder_id": self.cylinder_id,
            "initial_pressure": self.initial_pressure,
            "final_pressure": self.final_pressure,
            "outcome": self.outcome,
            "filled_at": to_utc_z(self.filled_at) if self.filled_at else None,
            "filled_by_user_id": self.filled_by_user_id,
            "notes": self.notes,
        }
