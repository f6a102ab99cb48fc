# Overview: Recording payments against invoices and deriving payment status.

"""
Payment Recording

Payments are separate rows (many-to-one with invoices). Recording one locks
the invoice row, adds the payment and re-derives payment_status in the same
transaction:

    paid total <= 0            -> pending
    paid total >= total_amount -> paid
    otherwise                  -> partially_paid

Only COMPLETED payments count toward the paid total. Once any payment exists
the invoice is read-only (see invoice_service.can_be_modified).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ..context import ActionContext
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Invoice, Payment
from ..models.invoicing import PAYMENT_STATUSES
from ..validation import quantize_money, to_money
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# PAYMENT METHODS
# =============================================================================

METHOD_CASH = "cash"
METHOD_CARD = "card"
METHOD_BANK_TRANSFER = "bank_transfer"
METHOD_CHEQUE = "cheque"
METHOD_ONLINE = "online"

VALID_METHODS = [
    METHOD_CASH,
    METHOD_CARD,
    METHOD_BANK_TRANSFER,
    METHOD_CHEQUE,
    METHOD_ONLINE,
]

PAYMENT_COMPLETED = "completed"

STATUS_PENDING, STATUS_PARTIALLY_PAID, STATUS_PAID = PAYMENT_STATUSES


def paid_total(invoice_id: int) -> Decimal:
    total = (
        db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0))
        .filter(Payment.invoice_id == invoice_id, Payment.status == PAYMENT_COMPLETED)
        .scalar()
    )
    return quantize_money(Decimal(str(total)))


def payment_status_for(paid: Decimal, total_amount: Decimal) -> str:
    if paid <= 0:
        return STATUS_PENDING
    if paid >= total_amount:
        return STATUS_PAID
    return STATUS_PARTIALLY_PAID


@dataclass(frozen=True)
class InvoiceBalance:
    total_paid: Decimal
    remaining_amount: Decimal
    is_overdue: bool
    days_overdue: int

    def to_dict(self) -> dict:
        return {
            "total_paid": str(self.total_paid),
            "remaining_amount": str(self.remaining_amount),
            "is_overdue": self.is_overdue,
            "days_overdue": self.days_overdue,
        }


def invoice_balance(invoice: Invoice, today: date) -> InvoiceBalance:
    """
    Paid and outstanding amounts as of `today`.

    An invoice is overdue once its due_date has passed and it is not fully
    paid; remaining_amount never goes below zero.
    """
    paid = paid_total(invoice.id)
    remaining = max(Decimal("0.00"), quantize_money(Decimal(invoice.total_amount or 0) - paid))
    overdue = invoice.due_date < today and invoice.payment_status != STATUS_PAID
    return InvoiceBalance(
        total_paid=paid,
        remaining_amount=remaining,
        is_overdue=overdue,
        days_overdue=(today - invoice.due_date).days if overdue else 0,
    )


def update_payment_status(invoice: Invoice) -> str:
    """Re-derive invoice.payment_status from its completed payments; does not commit."""
    db.session.flush()
    status = payment_status_for(paid_total(invoice.id), Decimal(invoice.total_amount or 0))
    if invoice.payment_status != status:
        invoice.payment_status = status
    return status


def record_payment(
    invoice_id: int,
    amount,
    method: str,
    ctx: ActionContext,
    reference: str | None = None,
) -> Payment:
    """
    Record a payment against an invoice.

    Raises:
        ValidationError: amount not positive, unknown method, cancelled invoice
        NotFoundError: invoice does not exist
    """
    value = to_money(amount, "amount")
    if value <= 0:
        raise ValidationError("Payment amount must be positive", details={"amount": str(value)})
    if method not in VALID_METHODS:
        raise ValidationError(
            f"Invalid payment method: {method}. Must be one of {VALID_METHODS}",
            details={"method": method},
        )

    def _op() -> Payment:
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
        if invoice.status == "cancelled":
            raise ValidationError(
                "Cannot add payment to a cancelled invoice",
                details={"invoice_id": invoice.id, "status": invoice.status},
            )

        payment = Payment(
            invoice_id=invoice.id,
            amount=quantize_money(value),
            method=method,
            status=PAYMENT_COMPLETED,
            reference=reference,
            created_by_user_id=ctx.actor_user_id,
        )
        db.session.add(payment)
        update_payment_status(invoice)
        db.session.commit()
        return payment

    return run_with_retry(_op)
