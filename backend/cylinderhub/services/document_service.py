# Overview: Service-layer operations for document numbers (invoices).

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import period_key as make_period_key


INVOICE_DOCUMENT_TYPE = "INVOICE"


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    period_key: str,
    pad: int = 3,
) -> str:
    """
    Atomically allocate the next document number for a type and period.

    Must be called inside the caller's transaction: the increment commits or
    rolls back together with the document that consumes the number. The
    first allocation in a period races on the unique constraint; the loser
    retries the increment inside a savepoint.
    """
    if not document_type:
        raise ValidationError("document_type is required")
    if not period_key:
        raise ValidationError("period_key is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period_key == period_key,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    def _current() -> int:
        return (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, period_key=period_key)
            .scalar()
        )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current() - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(
                    document_type=document_type,
                    period_key=period_key,
                    next_number=2,
                ))
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current() - 1

    return f"{prefix}-{period_key}-{next_num:0{pad}d}"


def next_invoice_number(sale_date=None) -> str:
    """INV-YYYYMMDD-NNN, numbered per calendar day."""
    prefix = current_app.config.get("INVOICE_PREFIX", "INV")
    return next_document_number(
        document_type=INVOICE_DOCUMENT_TYPE,
        prefix=prefix,
        period_key=make_period_key(sale_date),
    )
