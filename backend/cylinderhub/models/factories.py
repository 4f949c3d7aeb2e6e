# Overview: Factories that own cylinders and filling lines.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Factory(db.Model):
    __tablename__ = "factories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    location = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(128), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "contact_person": self.contact_person,
            "contact_number": self.contact_number,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
