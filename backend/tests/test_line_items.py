"""
Tests for invoice line computation, unit normalization and validation.
"""

from decimal import Decimal

import pytest

from printshop.errors import ValidationError
from printshop.services.line_item_service import (
    apply_line_update,
    build_line_item,
    compute_line,
    normalize_weight,
    specifications_summary,
    validate_line,
)


class TestComputeLine:
    def test_totals_and_weight(self):
        result = compute_line(3, "100", "0.2")
        assert result.line_total == Decimal("300.00")
        assert result.line_weight == Decimal("0.600")
        assert result.tax_amount == Decimal("0")

    def test_product_tax_percentage(self):
        result = compute_line(2, "1500", "0.25", product_tax_rate_percent=15)
        assert result.line_total == Decimal("3000.00")
        assert result.tax_amount == Decimal("450.00")

    def test_money_rounds_half_up(self):
        result = compute_line("1", "0.125", "0", product_tax_rate_percent=0)
        assert result.line_total == Decimal("0.13")


class TestNormalizeWeight:
    @pytest.mark.parametrize("value,unit,expected", [
        ("200", "grams", Decimal("0.2")),
        ("200", "g", Decimal("0.2")),
        ("1", "lb", Decimal("0.453592")),
        ("1", "oz", Decimal("0.0283495")),
        ("1.5", "kg", Decimal("1.5")),
        ("1.5", "stone", Decimal("1.5")),
        ("1.5", None, Decimal("1.5")),
    ])
    def test_units(self, value, unit, expected):
        assert normalize_weight(value, unit) == expected


class TestValidateLine:
    @pytest.mark.parametrize("quantity,price,weight,constraint", [
        (0, 10, 0, "quantity"),
        (-1, 10, 0, "quantity"),
        (1, -5, 0, "unit_price"),
        (1, 5, "-0.1", "unit_weight"),
    ])
    def test_failed_constraint_is_named(self, quantity, price, weight, constraint):
        with pytest.raises(ValidationError) as exc:
            validate_line(quantity, price, weight)
        assert exc.value.details["constraint"] == constraint

    def test_product_quantity_bounds(self, bounded_product):
        with pytest.raises(ValidationError) as exc:
            validate_line(11, 1500, 0, bounded_product)
        assert exc.value.details["constraint"] == "maximum_quantity"

        bounded_product.minimum_quantity = 2
        with pytest.raises(ValidationError) as exc:
            validate_line(1, 1500, 0, bounded_product)
        assert exc.value.details["constraint"] == "minimum_quantity"

        validate_line(10, 1500, 0, bounded_product)


class TestBuildLineItem:
    def test_grams_product_normalized_once_at_creation(self, product):
        item = build_line_item(product=product, quantity=3)
        assert item.unit_weight == Decimal("0.200")
        assert item.unit_price == Decimal("100.00")
        assert item.line_total == Decimal("300.00")
        assert item.line_weight == Decimal("0.600")
        assert item.item_description == "A5 Flyer Pack"

    def test_explicit_values_win_over_product_defaults(self, product):
        item = build_line_item(
            product=product,
            quantity=2,
            unit_price="80",
            unit_weight="0.5",
            item_description="Custom flyers",
        )
        assert item.unit_price == Decimal("80.00")
        assert item.unit_weight == Decimal("0.500")
        assert item.item_description == "Custom flyers"

    def test_specifications_must_be_flat_json(self, product):
        with pytest.raises(ValidationError):
            build_line_item(product=product, quantity=1, specifications={"sizes": ["A4", "A5"]})

        item = build_line_item(
            product=product,
            quantity=1,
            specifications={"paper": "A4", "finish": {"lamination": True}},
        )
        assert item.specifications["finish"]["lamination"] is True

    def test_product_tax_applied(self, bounded_product):
        item = build_line_item(product=bounded_product, quantity=2)
        assert item.tax_amount == Decimal("450.00")


class TestApplyLineUpdate:
    def test_update_does_not_renormalize_or_default(self, product):
        item = build_line_item(product=product, quantity=3)
        changed = apply_line_update(item, {"unit_weight": "200", "unit_price": "0"})
        assert changed is True
        assert item.unit_weight == Decimal("200.000")
        assert item.unit_price == Decimal("0.00")
        assert item.line_total == Decimal("0.00")

    def test_unchanged_values_skip_recompute(self, product):
        item = build_line_item(product=product, quantity=3)
        assert apply_line_update(item, {"quantity": "3", "item_description": "Reprint"}) is False
        assert item.item_description == "Reprint"

    def test_invalid_update_rejected(self, product):
        item = build_line_item(product=product, quantity=3)
        with pytest.raises(ValidationError):
            apply_line_update(item, {"quantity": 0})
        assert item.quantity == Decimal("3")


def test_specifications_summary():
    assert specifications_summary({"paper": "A4", "color": "cmyk"}) == "Paper: A4, Color: cmyk"
    assert specifications_summary(None) == ""
