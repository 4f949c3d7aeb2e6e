# Overview: Sales documents, their cylinder items and payments.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DeliveryType:
    PICKUP = "PICKUP"
    TRUCK_DELIVERY = "TRUCK_DELIVERY"

    ALL = (PICKUP, TRUCK_DELIVERY)


class DeliveryStatus:
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, IN_TRANSIT, DELIVERED, CANCELLED)


class PaymentStatus:
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class SaleItemStatus:
    RESERVED = "RESERVED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"


class PaymentMethod:
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"

    ALL = (CASH, CARD, BANK_TRANSFER, CHEQUE)


class Sale(db.Model):
    """
    Sale document (invoice).

    WHY balance_adjustment_cents: for CREDIT customers creation moves the
    customer balance by (total - paid at creation). Storing that exact
    figure lets cancellation reverse it even after later payments changed
    paid_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        db.Index("ix_sales_customer_status", "customer_id", "delivery_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "INV-20240131-007")
    invoice_number = db.Column(db.String(64), nullable=False, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    seller_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    delivery_type = db.Column(db.String(16), nullable=False, default=DeliveryType.PICKUP)
    truck_id = db.Column(db.Integer, db.ForeignKey("trucks.id"), nullable=True, index=True)

    # All amounts in cents
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_adjustment_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.UNPAID, index=True)

    delivery_status = db.Column(db.String(16), nullable=False, default=DeliveryStatus.PENDING, index=True)
    customer_signature = db.Column(db.Boolean, nullable=False, default=False)

    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    truck = db.relationship("Truck", backref=db.backref("sales", lazy=True))
    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")
    payments = db.relationship("SalePayment", backref="sale", lazy=True, order_by="SalePayment.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "seller_user_id": self.seller_user_id,
            "sale_date": to_utc_z(self.sale_date),
            "delivery_type": self.delivery_type,
            "truck_id": self.truck_id,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "balance_adjustment_cents": self.balance_adjustment_cents,
            "payment_status": self.payment_status,
            "delivery_status": self.delivery_status,
            "customer_signature": self.customer_signature,
            "dispatched_at": to_utc_z(self.dispatched_at) if self.dispatched_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [i.to_dict() for i in self.items]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class SaleItem(db.Model):
    """
    One cylinder on a sale.

    Return rows (is_return=True) record an empty coming back; they carry a
    zero price and never count toward the total.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_sale_cylinder", "sale_id", "cylinder_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    cylinder_id = db.Column(db.Integer, db.ForeignKey("cylinders.id"), nullable=False, index=True)

    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    is_return = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default=SaleItemStatus.RESERVED)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cylinder = db.relationship("Cylinder", backref=db.backref("sale_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "cylinder_id": self.cylinder_id,
            "unit_price_cents": self.unit_price_cents,
            "is_return": self.is_return,
            "status": self.status,
        }


class SalePayment(db.Model):
    """Money received against a sale. Append-only."""
    __tablename__ = "sale_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False, default=PaymentMethod.CASH)
    reference = db.Column(db.String(128), nullable=True)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "reference": self.reference,
            "received_by_user_id": self.received_by_user_id,
            "received_at": to_utc_z(self.received_at),
        }
