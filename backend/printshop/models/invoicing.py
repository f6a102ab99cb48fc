from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ..validation import decimal_str


INVOICE_STATUSES = ("draft", "pending", "processing", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "partially_paid", "paid")


class Invoice(db.Model):
    """
    Customer invoice for a branch.

    Totals (subtotal, total_weight, weight_charge, tax_amount, total_amount)
    are derived from the lines by invoice_service and written in the same
    transaction as the mutation that changed them. They are never edited
    directly.

    LIFECYCLE:
    - draft / pending: editable while no payment has been recorded
    - processing / completed / cancelled: read-only
    - once any payment exists the invoice is read-only regardless of status
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "invoice_number", name="uq_invoices_branch_number"),
        db.Index("ix_invoices_branch_status_created", "branch_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, nullable=True, index=True)

    # Human-readable number, e.g. "COL-000042"
    invoice_number = db.Column(db.String(64), nullable=False)

    invoice_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    weight_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_weight = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    notes = db.Column(db.Text, nullable=True)
    terms_conditions = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    company = db.relationship("Company")
    branch = db.relationship("Branch", backref=db.backref("invoices", lazy=True))
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
        lazy=True,
    )
    payments = db.relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "invoice_number": self.invoice_number,
            "invoice_date": to_iso_date(self.invoice_date),
            "due_date": to_iso_date(self.due_date),
            "subtotal": decimal_str(self.subtotal),
            "weight_charge": decimal_str(self.weight_charge),
            "tax_amount": decimal_str(self.tax_amount),
            "discount_amount": decimal_str(self.discount_amount),
            "total_amount": decimal_str(self.total_amount),
            "total_weight": decimal_str(self.total_weight),
            "status": self.status,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class InvoiceItem(db.Model):
    """
    One product line on an invoice.

    unit_weight is always kilograms. line_total, line_weight and tax_amount
    are derived by line_item_service.compute_line.
    """
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    item_description = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    unit_weight = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    line_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    line_weight = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    specifications = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "item_description": self.item_description,
            "quantity": decimal_str(self.quantity),
            "unit_price": decimal_str(self.unit_price),
            "unit_weight": decimal_str(self.unit_weight),
            "line_total": decimal_str(self.line_total),
            "line_weight": decimal_str(self.line_weight),
            "tax_amount": decimal_str(self.tax_amount),
            "specifications": self.specifications or {},
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Money received against an invoice.

    Any payment row (completed or voided) locks the invoice against edits;
    only COMPLETED payments count toward payment_status.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    reference = db.Column(db.String(120), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": decimal_str(self.amount),
            "method": self.method,
            "status": self.status,
            "reference": self.reference,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
