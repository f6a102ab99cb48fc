# Overview: Flask API routes for invoices, their lines, discounts and payments.

"""
Invoice API Routes

DESIGN:
- Invoice numbers are allocated per branch at creation
- Every line/discount change recomputes totals in the same transaction
- Invoices with payments, or outside draft/pending, are read-only
- The acting user is passed as actor_user_id in the request body
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import PrintShopError, ValidationError
from ..services import invoice_service, numbering_service, payment_service
from ..time_utils import parse_iso_date, utcnow
from ..validation import to_int
from . import action_context, json_body, required


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _date_field(data: dict, field: str):
    try:
        return parse_iso_date(data.get(field))
    except ValueError:
        raise ValidationError(f"{field} must be YYYY-MM-DD", details={"field": field})


def _invoice_payload(invoice) -> dict:
    payload = invoice.to_dict(include_items=True)
    payload["can_be_modified"] = invoice_service.can_be_modified(invoice)
    payload["can_be_deleted"] = invoice_service.can_be_deleted(invoice)
    payload.update(payment_service.invoice_balance(invoice, utcnow().date()).to_dict())
    return payload


# =============================================================================
# INVOICE CRUD
# =============================================================================

@invoices_bp.post("/")
def create_invoice_route():
    """
    Create an invoice with lines.

    Request body:
    {
        "branch_id": 1,
        "customer_id": 7,                 (optional)
        "items": [
            {"product_id": 3, "quantity": 3, "unit_price": "100", "unit_weight": "0.2"}
        ],
        "discount_amount": "50",          (optional)
        "invoice_number": "COL-000123",   (optional, allocated when missing; must end in 6 digits)
        "invoice_date": "2025-01-31",     (optional)
        "due_date": "2025-03-02",         (optional)
        "actor_user_id": 12               (optional)
    }

    Returns:
        201: Invoice with items and totals
        400: Invalid line / discount / duplicate number
        404: Branch or product not found
    """
    try:
        data = json_body()
        required(data, "branch_id")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValidationError("items must be a list", details={"field": "items"})

        invoice = invoice_service.create_invoice(
            to_int(data["branch_id"], "branch_id"),
            action_context(data),
            customer_id=data.get("customer_id"),
            items=items,
            discount_amount=data.get("discount_amount", 0),
            invoice_number=data.get("invoice_number"),
            invoice_date=_date_field(data, "invoice_date"),
            due_date=_date_field(data, "due_date"),
            status=data.get("status", "draft"),
            notes=data.get("notes"),
            terms_conditions=data.get("terms_conditions"),
        )
        return jsonify({"invoice": _invoice_payload(invoice)}), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/next-number")
def next_number_route():
    """Preview the next invoice number for ?branch_id= without consuming it."""
    try:
        branch_id = request.args.get("branch_id")
        if not branch_id:
            return jsonify({"error": "branch_id required"}), 400
        number = numbering_service.preview_invoice_number(to_int(branch_id, "branch_id"))
        return jsonify({"invoice_number": number}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to preview invoice number")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"invoice": _invoice_payload(invoice)}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
def delete_invoice_route(invoice_id: int):
    """Only draft invoices without payments can be deleted."""
    try:
        invoice_service.delete_invoice(invoice_id)
        return jsonify({"deleted": True, "invoice_id": invoice_id}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LINES AND TOTALS
# =============================================================================

@invoices_bp.post("/<int:invoice_id>/lines")
def add_line_route(invoice_id: int):
    """
    Request body:
    {
        "product_id": 3,
        "quantity": 3,
        "unit_price": "100",         (optional, product base price when 0/missing)
        "unit_weight": "0.2",        (optional, product weight when 0/missing)
        "item_description": "...",   (optional, product name when empty)
        "specifications": {"paper": "A4"}
    }
    """
    try:
        data = json_body()
        item = invoice_service.add_line_item(invoice_id, data)
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"item": item.to_dict(), "invoice": _invoice_payload(invoice)}), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add invoice line")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.patch("/<int:invoice_id>/lines/<int:line_id>")
def update_line_route(invoice_id: int, line_id: int):
    try:
        data = json_body()
        item = invoice_service.update_line_item(invoice_id, line_id, data)
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"item": item.to_dict(), "invoice": _invoice_payload(invoice)}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice line")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>/lines/<int:line_id>")
def remove_line_route(invoice_id: int, line_id: int):
    try:
        totals = invoice_service.remove_line_item(invoice_id, line_id)
        return jsonify({"totals": totals.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove invoice line")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/discount")
def set_discount_route(invoice_id: int):
    """Request body: {"discount_amount": "50"}"""
    try:
        data = json_body()
        required(data, "discount_amount")
        invoice = invoice_service.set_discount(invoice_id, data["discount_amount"])
        return jsonify({"invoice": _invoice_payload(invoice)}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set invoice discount")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/recalculate")
def recalculate_route(invoice_id: int):
    try:
        totals = invoice_service.recalculate_invoice(invoice_id)
        return jsonify({"totals": totals.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to recalculate invoice")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@invoices_bp.post("/<int:invoice_id>/payments")
def record_payment_route(invoice_id: int):
    """
    Request body:
    {
        "amount": "700",
        "method": "cash",            (cash, card, bank_transfer, cheque, online)
        "reference": "TXN-991",      (optional)
        "actor_user_id": 12
    }
    """
    try:
        data = json_body()
        required(data, "amount")
        payment = payment_service.record_payment(
            invoice_id,
            data["amount"],
            data.get("method", "cash"),
            action_context(data),
            reference=data.get("reference"),
        )
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({
            "payment": payment.to_dict(),
            "payment_status": invoice.payment_status,
            **payment_service.invoice_balance(invoice, utcnow().date()).to_dict(),
        }), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
