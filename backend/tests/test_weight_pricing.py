"""
Tests for weight tier pricing and tier administration.
"""

from decimal import Decimal

import pytest

from printshop.errors import NotFoundError, ValidationError
from printshop.models import WeightPricingTier
from printshop.services import weight_pricing_service
from printshop.services.weight_pricing_service import (
    default_ladder_price,
    price_for_weight,
    price_with_tiers,
    select_tier,
)


def _tier(name, min_weight, max_weight, base, per_kg, sort_order=0, status="active"):
    return WeightPricingTier(
        tier_name=name,
        min_weight=Decimal(min_weight),
        max_weight=None if max_weight is None else Decimal(max_weight),
        base_price=Decimal(base),
        price_per_kg=Decimal(per_kg),
        sort_order=sort_order,
        status=status,
    )


class TestDefaultLadder:
    @pytest.mark.parametrize("weight,expected", [
        ("0", "200.00"),
        ("0.5", "200.00"),
        ("1", "200.00"),
        ("1.001", "300.00"),
        ("3", "300.00"),
        ("4.2", "400.00"),
        ("5", "400.00"),
        ("7", "600.00"),
        ("10", "750.00"),
        ("12", "900.00"),
    ])
    def test_ladder_rungs(self, weight, expected):
        assert default_ladder_price(Decimal(weight)).total_price == Decimal(expected)

    def test_half_kilo_without_company_tiers(self, company):
        result = price_for_weight(company.id, "0.5")
        assert result.total_price == Decimal("200")
        assert result.tier_name == "Light"

    def test_seven_kilos_without_company_tiers(self, company):
        result = price_for_weight(company.id, 7)
        assert result.base_price == Decimal("500")
        assert result.additional_price == Decimal("100")
        assert result.total_price == Decimal("600")

    def test_negative_weight_rejected(self, company):
        with pytest.raises(ValidationError):
            price_for_weight(company.id, "-0.1")


class TestTierSelection:
    def test_highest_min_weight_wins_on_overlap(self):
        tiers = [
            _tier("Wide", "0", "20", "100", "10"),
            _tier("Narrow", "5", "8", "400", "0"),
        ]
        assert select_tier(tiers, Decimal("6")).tier_name == "Narrow"
        assert select_tier(tiers, Decimal("4")).tier_name == "Wide"

    def test_equal_min_weight_prefers_lowest_sort_order(self):
        tiers = [
            _tier("Second", "0", "5", "100", "0", sort_order=2),
            _tier("First", "0", "5", "90", "0", sort_order=1),
        ]
        assert select_tier(tiers, Decimal("1")).tier_name == "First"

    def test_tier_charges_per_kg_above_minimum(self):
        tiers = [_tier("Bulk", "10", None, "750", "60")]
        result = price_with_tiers(tiers, "12.5")
        assert result.additional_price == Decimal("150.00")
        assert result.total_price == Decimal("900.00")

    def test_falls_back_to_ladder_outside_tiers(self):
        tiers = [_tier("Mid", "2", "4", "250", "0")]
        assert price_with_tiers(tiers, "0.5").total_price == Decimal("200")

    def test_price_is_monotonic_within_a_tier(self):
        tiers = [_tier("Scaled", "0", "50", "100", "12.5")]
        weights = [Decimal(w) for w in ("0", "0.25", "1", "7.5", "33", "50")]
        prices = [price_with_tiers(tiers, w).total_price for w in weights]
        assert prices == sorted(prices)

    def test_inactive_tiers_are_ignored(self, db_session, company):
        db_session.add(WeightPricingTier(
            company_id=company.id, tier_name="Old", min_weight=0, max_weight=100,
            base_price=1, price_per_kg=0, status="inactive",
        ))
        db_session.commit()
        assert price_for_weight(company.id, 2).total_price == Decimal("300")


class TestTierAdministration:
    def test_create_and_list(self, company):
        tier = weight_pricing_service.create_tier(company.id, {
            "tier_name": "Local", "min_weight": "0", "max_weight": "2",
            "base_price": "150", "price_per_kg": "0",
        })
        assert tier.id is not None
        assert [t.tier_name for t in weight_pricing_service.list_tiers(company.id)] == ["Local"]
        assert price_for_weight(company.id, "1.5").total_price == Decimal("150")

    def test_strict_overlap_rejected(self, company):
        weight_pricing_service.create_tier(company.id, {
            "tier_name": "A", "min_weight": "0", "max_weight": "5", "base_price": "100",
        })
        with pytest.raises(ValidationError) as exc:
            weight_pricing_service.create_tier(company.id, {
                "tier_name": "B", "min_weight": "4", "max_weight": "8", "base_price": "200",
            })
        assert exc.value.details["conflicting_tier"] == "A"

    def test_touching_bounds_allowed(self, company):
        weight_pricing_service.create_tier(company.id, {
            "tier_name": "A", "min_weight": "0", "max_weight": "5", "base_price": "100",
        })
        weight_pricing_service.create_tier(company.id, {
            "tier_name": "B", "min_weight": "5", "base_price": "200",
        })
        assert price_for_weight(company.id, 5).tier_name == "B"

    def test_max_below_min_rejected(self, company):
        with pytest.raises(ValidationError):
            weight_pricing_service.create_tier(company.id, {
                "tier_name": "Bad", "min_weight": "5", "max_weight": "1",
            })

    def test_unknown_company(self, db_session):
        with pytest.raises(NotFoundError):
            weight_pricing_service.create_tier(999, {"tier_name": "X"})

    def test_update_tier_rechecks_overlap(self, company):
        weight_pricing_service.create_tier(company.id, {
            "tier_name": "A", "min_weight": "0", "max_weight": "5",
        })
        second = weight_pricing_service.create_tier(company.id, {
            "tier_name": "B", "min_weight": "5", "max_weight": "10",
        })
        with pytest.raises(ValidationError):
            weight_pricing_service.update_tier(company.id, second.id, {"min_weight": "3"})

        updated = weight_pricing_service.update_tier(company.id, second.id, {"base_price": "480"})
        assert updated.base_price == Decimal("480")

    def test_non_numeric_sort_order_rejected(self, company):
        with pytest.raises(ValidationError) as exc:
            weight_pricing_service.create_tier(company.id, {
                "tier_name": "A", "min_weight": "0", "sort_order": "first",
            })
        assert exc.value.details["field"] == "sort_order"

    def test_base_price_bounded_by_column(self, company):
        with pytest.raises(ValidationError) as exc:
            weight_pricing_service.create_tier(company.id, {
                "tier_name": "A", "min_weight": "0", "base_price": "1e12",
            })
        assert exc.value.details["field"] == "base_price"
