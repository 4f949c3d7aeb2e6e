# Overview: Customers and their running credit balance.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CustomerType:
    HOSPITAL = "HOSPITAL"
    INDIVIDUAL = "INDIVIDUAL"
    SHOP = "SHOP"
    FACTORY = "FACTORY"
    WORKSHOP = "WORKSHOP"

    ALL = (HOSPITAL, INDIVIDUAL, SHOP, FACTORY, WORKSHOP)


class PaymentType:
    CASH = "CASH"
    CREDIT = "CREDIT"

    ALL = (CASH, CREDIT)


class Customer(db.Model):
    """
    A buyer of filled cylinders.

    BALANCE: balance_cents is the amount the customer owes (positive = owes
    us). It only moves through sale creation, sale cancellation and payments
    on CREDIT customers; it is never client-writable.

    credit_limit_cents == 0 means "no limit enforced".
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    customer_type = db.Column(db.String(16), nullable=False)
    address = db.Column(db.Text, nullable=True)
    contact_person = db.Column(db.String(128), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    payment_type = db.Column(db.String(16), nullable=False, default=PaymentType.CASH)
    price_group = db.Column(db.String(32), nullable=True)
    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "customer_type": self.customer_type,
            "address": self.address,
            "contact_person": self.contact_person,
            "contact_number": self.contact_number,
            "email": self.email,
            "payment_type": self.payment_type,
            "price_group": self.price_group,
            "credit_limit_cents": self.credit_limit_cents,
            "balance_cents": self.balance_cents,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
