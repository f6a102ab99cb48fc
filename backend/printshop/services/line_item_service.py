# Overview: Invoice line pricing, unit normalization, product defaults and validation.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import ValidationError
from ..models import InvoiceItem, Product
from ..validation import quantize_money, quantize_weight, to_decimal, to_money, validate_json_map


# Kilograms per unit; anything not listed (including "kg") is already kg.
WEIGHT_UNIT_FACTORS = {
    "grams": Decimal("0.001"),
    "g": Decimal("0.001"),
    "lb": Decimal("0.453592"),
    "oz": Decimal("0.0283495"),
}

_ZERO = Decimal("0")


@dataclass(frozen=True)
class LineResult:
    line_total: Decimal
    line_weight: Decimal
    tax_amount: Decimal


def normalize_weight(value, unit: str | None) -> Decimal:
    """Convert a product weight to kilograms (g/grams, lb, oz; kg or unknown unchanged)."""
    value = to_decimal(value, "unit_weight")
    factor = WEIGHT_UNIT_FACTORS.get((unit or "kg").strip().lower())
    if factor is None:
        return value
    return value * factor


def compute_line(quantity, unit_price, unit_weight, product_tax_rate_percent=0) -> LineResult:
    """
    line_total = quantity * unit_price
    line_weight = quantity * unit_weight
    tax_amount = line_total * rate / 100 when rate > 0, else 0
    """
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    unit_weight = to_decimal(unit_weight, "unit_weight")
    rate = to_decimal(product_tax_rate_percent or 0, "tax_rate")

    line_total = quantity * unit_price
    line_weight = quantity * unit_weight
    tax_amount = line_total * rate / Decimal("100") if rate > 0 else _ZERO

    return LineResult(
        line_total=quantize_money(line_total),
        line_weight=quantize_weight(line_weight),
        tax_amount=quantize_money(tax_amount),
    )


def validate_line(quantity, unit_price, unit_weight, product: Product | None = None) -> None:
    """
    Raise ValidationError naming the first failed constraint.

    quantity > 0 and within the product's [minimum_quantity, maximum_quantity]
    when configured; unit_price >= 0; unit_weight >= 0.
    """
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    unit_weight = to_decimal(unit_weight, "unit_weight")

    if quantity <= 0:
        raise ValidationError(
            "quantity must be greater than 0",
            details={"constraint": "quantity", "quantity": str(quantity)},
        )
    if product is not None:
        if product.minimum_quantity and quantity < product.minimum_quantity:
            raise ValidationError(
                f"quantity must be at least {product.minimum_quantity} for {product.name}",
                details={
                    "constraint": "minimum_quantity",
                    "quantity": str(quantity),
                    "minimum_quantity": product.minimum_quantity,
                },
            )
        if product.maximum_quantity and quantity > product.maximum_quantity:
            raise ValidationError(
                f"quantity must be at most {product.maximum_quantity} for {product.name}",
                details={
                    "constraint": "maximum_quantity",
                    "quantity": str(quantity),
                    "maximum_quantity": product.maximum_quantity,
                },
            )
    if unit_price < 0:
        raise ValidationError(
            "unit_price must be >= 0",
            details={"constraint": "unit_price", "unit_price": str(unit_price)},
        )
    if unit_weight < 0:
        raise ValidationError(
            "unit_weight must be >= 0",
            details={"constraint": "unit_weight", "unit_weight": str(unit_weight)},
        )


def apply_computation(item: InvoiceItem) -> InvoiceItem:
    rate = item.product.tax_rate if item.product is not None else 0
    result = compute_line(item.quantity, item.unit_price, item.unit_weight, rate)
    item.line_total = result.line_total
    item.line_weight = result.line_weight
    item.tax_amount = result.tax_amount
    return item


def build_line_item(
    *,
    product: Product | None,
    quantity,
    unit_price=None,
    unit_weight=None,
    item_description: str | None = None,
    specifications: dict | None = None,
) -> InvoiceItem:
    """
    New (unattached) line with creation-time defaults applied.

    - empty description -> product name
    - unit price missing or exactly 0 -> product base price
    - unit weight missing or 0 -> product weight converted to kg
    """
    quantity = to_decimal(quantity, "quantity")
    price = to_money(unit_price if unit_price is not None else 0, "unit_price")
    weight = to_decimal(unit_weight if unit_weight is not None else 0, "unit_weight")
    description = (item_description or "").strip() or None

    if product is not None:
        if not description:
            description = product.name
        if price == 0:
            price = Decimal(product.base_price or 0)
        if weight == 0:
            weight = normalize_weight(product.weight_per_unit or 0, product.weight_unit)

    validate_line(quantity, price, weight, product)

    item = InvoiceItem(
        product=product,
        product_id=product.id if product is not None else None,
        item_description=description,
        quantity=quantity,
        unit_price=quantize_money(price),
        unit_weight=quantize_weight(weight),
        specifications=validate_json_map(specifications, "specifications"),
    )
    return apply_computation(item)


def apply_line_update(item: InvoiceItem, changes: dict) -> bool:
    """
    Apply edits to an existing line; recompute only when a priced field changed.

    No product defaulting and no unit conversion here: unit_weight is taken
    as kilograms. Returns True when line totals were recomputed.
    """
    quantity = to_decimal(changes["quantity"], "quantity") if "quantity" in changes else Decimal(item.quantity)
    price = to_money(changes["unit_price"], "unit_price") if "unit_price" in changes else Decimal(item.unit_price)
    weight = to_decimal(changes["unit_weight"], "unit_weight") if "unit_weight" in changes else Decimal(item.unit_weight)

    validate_line(quantity, price, weight, item.product)

    if "item_description" in changes:
        item.item_description = (changes["item_description"] or "").strip() or item.item_description
    if "specifications" in changes:
        item.specifications = validate_json_map(changes["specifications"], "specifications")

    priced_changed = (
        quantity != Decimal(item.quantity)
        or price != Decimal(item.unit_price)
        or weight != Decimal(item.unit_weight)
    )
    if priced_changed:
        item.quantity = quantity
        item.unit_price = quantize_money(price)
        item.unit_weight = quantize_weight(weight)
        apply_computation(item)
    return priced_changed


def specifications_summary(specifications: dict | None) -> str:
    """Render specifications as "Paper: A4, Color: cmyk" for printouts and lists."""
    if not specifications:
        return ""
    return ", ".join(f"{str(key)[:1].upper()}{str(key)[1:]}: {value}" for key, value in specifications.items())
