# Overview: Invoice creation, line mutations and totals recomputation.

"""
Invoice Totals

    subtotal      = sum(line_total)
    total_weight  = sum(line_weight)
    weight_charge = price_for_weight(company, total_weight).total_price
    taxable       = subtotal + weight_charge - discount_amount
    tax_amount    = taxable * company tax rate (DEFAULT_TAX_RATE when unset)
    total_amount  = subtotal + weight_charge + tax_amount - discount_amount

compute_invoice_totals is pure. Every mutation (create, add/update/remove
line, discount change) locks the invoice row, applies its change, writes the
recomputed totals once and commits, all inside one run_with_retry cycle so
readers never see lines and totals out of step.

EDIT LOCK:
    can_be_modified: status in (draft, pending) and no payments
    can_be_deleted:  status == draft and no payments
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..context import ActionContext
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Company, Invoice, InvoiceItem, Payment, Product
from ..models.invoicing import INVOICE_STATUSES
from ..validation import quantize_money, quantize_weight, to_decimal, to_money
from .concurrency import lock_for_update, run_with_retry
from .line_item_service import apply_line_update, build_line_item
from .numbering_service import next_invoice_number, reserve_invoice_number
from .weight_pricing_service import PriceResult, active_tiers, price_with_tiers


MODIFIABLE_STATUSES = {"draft", "pending"}
DELETABLE_STATUSES = {"draft"}

_ZERO = Decimal("0")


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    total_weight: Decimal
    weight_charge: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    weight_tier: str

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "total_weight": str(self.total_weight),
            "weight_charge": str(self.weight_charge),
            "tax_rate": str(self.tax_rate),
            "tax_amount": str(self.tax_amount),
            "discount_amount": str(self.discount_amount),
            "total_amount": str(self.total_amount),
            "weight_tier": self.weight_tier,
        }


def compute_invoice_totals(
    items: Iterable,
    *,
    discount_amount,
    tax_rate,
    price_weight: Callable[[Decimal], PriceResult],
) -> InvoiceTotals:
    """
    Pure totals computation over line items (anything with line_total and
    line_weight). Raises ValidationError for a negative discount or a
    discount that drives the total below zero.
    """
    discount = to_decimal(discount_amount or 0, "discount_amount")
    rate = to_decimal(tax_rate, "tax_rate")
    if discount < 0:
        raise ValidationError("discount_amount must be >= 0", details={"discount_amount": str(discount)})

    subtotal = _ZERO
    total_weight = _ZERO
    for item in items:
        subtotal += Decimal(item.line_total or 0)
        total_weight += Decimal(item.line_weight or 0)

    price = price_weight(total_weight)
    weight_charge = price.total_price

    taxable = subtotal + weight_charge - discount
    tax_amount = quantize_money(taxable * rate)
    total_amount = subtotal + weight_charge + tax_amount - discount

    if total_amount < 0:
        raise ValidationError(
            "discount_amount exceeds invoice total",
            details={"discount_amount": str(discount), "total_before_discount": str(total_amount + discount)},
        )

    return InvoiceTotals(
        subtotal=quantize_money(subtotal),
        total_weight=quantize_weight(total_weight),
        weight_charge=quantize_money(weight_charge),
        tax_rate=rate,
        tax_amount=tax_amount,
        discount_amount=quantize_money(discount),
        total_amount=quantize_money(total_amount),
        weight_tier=price.tier_name,
    )


def company_tax_rate(company: Company | None) -> Decimal:
    """Company's own rate, or the configured default when it has none."""
    if company is not None and company.tax_rate is not None:
        return Decimal(company.tax_rate)
    return Decimal(str(current_app.config.get("DEFAULT_TAX_RATE", "0.12")))


def _totals_for(invoice: Invoice, discount_amount=None) -> InvoiceTotals:
    tiers = active_tiers(invoice.company_id)
    return compute_invoice_totals(
        invoice.items,
        discount_amount=invoice.discount_amount if discount_amount is None else discount_amount,
        tax_rate=company_tax_rate(invoice.company),
        price_weight=lambda weight: price_with_tiers(tiers, weight),
    )


def _write_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    """Persist computed totals; unchanged columns are left alone so the version does not move."""
    fields = {
        "subtotal": totals.subtotal,
        "total_weight": totals.total_weight,
        "weight_charge": totals.weight_charge,
        "tax_amount": totals.tax_amount,
        "discount_amount": totals.discount_amount,
        "total_amount": totals.total_amount,
    }
    for name, value in fields.items():
        current = getattr(invoice, name)
        if current is None or Decimal(current) != value:
            setattr(invoice, name, value)


def _recalculate_locked(invoice: Invoice) -> InvoiceTotals:
    totals = _totals_for(invoice)
    _write_totals(invoice, totals)
    return totals


def _lock_invoice(invoice_id: int) -> Invoice:
    invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    return invoice


def payment_count(invoice: Invoice) -> int:
    return db.session.query(Payment).filter_by(invoice_id=invoice.id).count()


def can_be_modified(invoice: Invoice) -> bool:
    return invoice.status in MODIFIABLE_STATUSES and payment_count(invoice) == 0


def can_be_deleted(invoice: Invoice) -> bool:
    return invoice.status in DELETABLE_STATUSES and payment_count(invoice) == 0


def _require_modifiable(invoice: Invoice) -> None:
    if not can_be_modified(invoice):
        raise ValidationError(
            f"Invoice {invoice.invoice_number} cannot be modified",
            details={
                "invoice_id": invoice.id,
                "status": invoice.status,
                "payments": payment_count(invoice),
            },
        )


def _require_product(company_id: int, product_id) -> Product | None:
    if product_id is None:
        return None
    product = db.session.get(Product, product_id)
    if product is None or product.company_id != company_id:
        raise NotFoundError(f"Product {product_id} not found in company", details={"product_id": product_id})
    return product


def _new_line(invoice: Invoice, data: dict) -> InvoiceItem:
    product = _require_product(invoice.company_id, data.get("product_id"))
    if "quantity" not in data:
        raise ValidationError("quantity is required", details={"constraint": "quantity"})
    item = build_line_item(
        product=product,
        quantity=data["quantity"],
        unit_price=data.get("unit_price"),
        unit_weight=data.get("unit_weight"),
        item_description=data.get("item_description"),
        specifications=data.get("specifications"),
    )
    invoice.items.append(item)
    return item


# =============================================================================
# Public operations
# =============================================================================

def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    return invoice


def create_invoice(
    branch_id: int,
    ctx: ActionContext,
    *,
    customer_id: int | None = None,
    items: list[dict] | None = None,
    discount_amount=0,
    invoice_number: str | None = None,
    invoice_date: date | None = None,
    due_date: date | None = None,
    status: str = "draft",
    notes: str | None = None,
    terms_conditions: str | None = None,
) -> Invoice:
    """
    Create an invoice with its lines and computed totals in one transaction.

    The invoice number is allocated from the branch counter unless one is
    supplied; a supplied number moves the counter past its sequence.
    invoice_date defaults to today, due_date to invoice_date +
    INVOICE_DUE_DAYS.
    """
    if status not in INVOICE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(INVOICE_STATUSES)}",
            details={"field": "status"},
        )

    def _op() -> Invoice:
        branch = db.session.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found", details={"branch_id": branch_id})

        if invoice_number:
            number = reserve_invoice_number(branch.id, invoice_number)
        else:
            number = next_invoice_number(branch.id)
        issued_on = invoice_date or ctx.now.date()
        due_on = due_date or issued_on + timedelta(days=current_app.config.get("INVOICE_DUE_DAYS", 30))
        if due_on < issued_on:
            raise ValidationError("due_date must not be before invoice_date", details={"field": "due_date"})

        invoice = Invoice(
            company_id=branch.company_id,
            branch_id=branch.id,
            customer_id=customer_id,
            invoice_number=number,
            invoice_date=issued_on,
            due_date=due_on,
            discount_amount=to_money(discount_amount or 0, "discount_amount"),
            status=status,
            payment_status="pending",
            notes=notes,
            terms_conditions=terms_conditions,
            created_by_user_id=ctx.actor_user_id,
        )
        db.session.add(invoice)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ValidationError(
                f"Invoice number {number} already exists for this branch",
                details={"invoice_number": number, "branch_id": branch.id},
            )

        for data in items or []:
            _new_line(invoice, data)

        _recalculate_locked(invoice)
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def recalculate_invoice(invoice_id: int) -> InvoiceTotals:
    """Recompute and persist totals from the current lines; idempotent."""
    def _op() -> InvoiceTotals:
        invoice = _lock_invoice(invoice_id)
        totals = _recalculate_locked(invoice)
        db.session.commit()
        return totals

    return run_with_retry(_op)


def add_line_item(invoice_id: int, data: dict) -> InvoiceItem:
    """Add a line (product defaults and unit conversion applied) and recompute totals."""
    def _op() -> InvoiceItem:
        invoice = _lock_invoice(invoice_id)
        _require_modifiable(invoice)
        item = _new_line(invoice, data)
        _recalculate_locked(invoice)
        db.session.commit()
        return item

    return run_with_retry(_op)


def _invoice_line(invoice: Invoice, item_id: int) -> InvoiceItem:
    item = db.session.get(InvoiceItem, item_id)
    if item is None or item.invoice_id != invoice.id:
        raise NotFoundError(
            f"Line {item_id} not found on invoice {invoice.id}",
            details={"invoice_id": invoice.id, "item_id": item_id},
        )
    return item


def update_line_item(invoice_id: int, item_id: int, changes: dict) -> InvoiceItem:
    """Edit quantity/unit_price/unit_weight/description/specifications of a line."""
    def _op() -> InvoiceItem:
        invoice = _lock_invoice(invoice_id)
        _require_modifiable(invoice)
        item = _invoice_line(invoice, item_id)
        apply_line_update(item, changes)
        _recalculate_locked(invoice)
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_line_item(invoice_id: int, item_id: int) -> InvoiceTotals:
    def _op() -> InvoiceTotals:
        invoice = _lock_invoice(invoice_id)
        _require_modifiable(invoice)
        item = _invoice_line(invoice, item_id)
        invoice.items.remove(item)
        totals = _recalculate_locked(invoice)
        db.session.commit()
        return totals

    return run_with_retry(_op)


def set_discount(invoice_id: int, discount_amount) -> Invoice:
    """Change the invoice discount; rejected when it would make the total negative."""
    discount = to_money(discount_amount, "discount_amount")

    def _op() -> Invoice:
        invoice = _lock_invoice(invoice_id)
        _require_modifiable(invoice)
        totals = _totals_for(invoice, discount_amount=discount)
        _write_totals(invoice, totals)
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def delete_invoice(invoice_id: int) -> None:
    """Delete a draft invoice without payments (lines cascade)."""
    def _op() -> None:
        invoice = _lock_invoice(invoice_id)
        if not can_be_deleted(invoice):
            raise ValidationError(
                "Invoice cannot be deleted. It has payments or is not in draft status.",
                details={"invoice_id": invoice.id, "status": invoice.status},
            )
        db.session.delete(invoice)
        db.session.commit()

    run_with_retry(_op)
