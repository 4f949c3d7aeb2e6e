# Overview: Service-layer operations for sale payments; encapsulates business logic and database work.

"""
Payments against sales.

WHY: A sale's paid_cents and payment_status are derived from its payments,
and CREDIT customers carry a running balance that must move by exactly the
same amount in the same transaction.

PAYMENT STATUS:
- PAID     paid >= total
- PARTIAL  0 < paid < total
- UNPAID   otherwise
Overpayment is accepted and simply leaves the sale PAID.
"""

from __future__ import annotations

from ..errors import NotFoundError, PreconditionFailedError, ValidationError
from ..extensions import db
from ..models import Customer, Sale, SalePayment
from ..models.customers import PaymentType
from ..models.sales import DeliveryStatus, PaymentMethod, PaymentStatus
from ..time_utils import utcnow
from ..validation import MAX_PRICE_CENTS
from . import notification_service
from .concurrency import lock_for_update, run_in_transaction


def compute_payment_status(total_cents: int, paid_cents: int) -> str:
    if paid_cents >= total_cents:
        return PaymentStatus.PAID
    if paid_cents > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def normalize_method(method) -> str:
    key = str(method or PaymentMethod.CASH).strip().upper().replace(" ", "_")
    if key not in PaymentMethod.ALL:
        raise ValidationError(
            f"method must be one of: {', '.join(PaymentMethod.ALL)}",
            field="method",
        )
    return key


def validate_amount(amount_cents, *, allow_zero: bool = False, field: str = "amount_cents") -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError(f"{field} must be an integer (cents)", field=field)
    if allow_zero and amount_cents < 0:
        raise ValidationError(f"{field} must be >= 0", field=field)
    if not allow_zero and amount_cents <= 0:
        raise ValidationError(f"{field} must be > 0", field=field)
    if amount_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}", field=field)
    return amount_cents


def add_payment_locked(
    sale: Sale,
    amount_cents: int,
    method: str,
    user_id: int | None,
    reference: str | None = None,
) -> SalePayment:
    """
    Write a payment row and refresh the sale's paid/payment_status.

    Does NOT touch the customer balance; callers decide how the balance
    moves. Caller owns the transaction and must hold the sale lock.
    """
    payment = SalePayment(
        sale_id=sale.id,
        amount_cents=amount_cents,
        method=method,
        reference=reference,
        received_by_user_id=user_id,
        received_at=utcnow(),
    )
    db.session.add(payment)

    sale.paid_cents = (sale.paid_cents or 0) + amount_cents
    sale.payment_status = compute_payment_status(sale.total_cents, sale.paid_cents)
    return payment


def record_payment(
    sale_id: int,
    amount_cents: int,
    method: str | None = None,
    user_id: int | None = None,
    reference: str | None = None,
) -> Sale:
    """
    Take a payment against a sale.

    CREDIT customers' balance goes down by the amount. Payments on a
    cancelled sale are refused.
    """
    amount = validate_amount(amount_cents)
    method_key = normalize_method(method)

    def _op() -> Sale:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        if sale.delivery_status == DeliveryStatus.CANCELLED:
            raise PreconditionFailedError(
                "Cannot take payment on a cancelled sale",
                details={"sale_id": sale_id},
            )

        add_payment_locked(sale, amount, method_key, user_id, reference)

        customer = lock_for_update(db.session.query(Customer).filter_by(id=sale.customer_id)).first()
        if customer and customer.payment_type == PaymentType.CREDIT:
            customer.balance_cents = (customer.balance_cents or 0) - amount

        db.session.flush()
        notification_service.queue(notification_service.SALE_STATUS_UPDATED, {
            "id": sale.id,
            "invoice_number": sale.invoice_number,
            "payment_status": sale.payment_status,
            "delivery_status": sale.delivery_status,
            "paid_cents": sale.paid_cents,
        })
        return sale

    return run_in_transaction(_op)


def get_sale_payments(sale_id: int) -> list[SalePayment]:
    return (
        db.session.query(SalePayment)
        .filter_by(sale_id=sale_id)
        .order_by(SalePayment.received_at.asc(), SalePayment.id.asc())
        .all()
    )


def get_payment_summary(sale_id: int) -> dict:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})

    payments = get_sale_payments(sale_id)
    by_method: dict[str, int] = {}
    for p in payments:
        by_method[p.method] = by_method.get(p.method, 0) + p.amount_cents

    return {
        "sale_id": sale.id,
        "total_cents": sale.total_cents,
        "paid_cents": sale.paid_cents,
        "remaining_cents": max(sale.total_cents - sale.paid_cents, 0),
        "payment_status": sale.payment_status,
        "by_method": by_method,
        "payments": [p.to_dict() for p in payments],
    }
