# Overview: Weight-tier delivery pricing and tier administration.

"""
Weight Pricing

Resolves a shipment weight (kg) to a delivery charge.

TIER SELECTION:
    Among the company's ACTIVE tiers, the tier with the largest min_weight
    such that min_weight <= weight and (max_weight is NULL or
    weight <= max_weight) wins. Overlapping tiers are therefore resolved in
    favour of the most specific lower bound.

    total = base_price + max(0, (weight - min_weight) * price_per_kg)

DEFAULT LADDER (company has no matching tier):
    weight <= 1       -> 200
    1  < weight <= 3  -> 300
    3  < weight <= 5  -> 400
    5  < weight <= 10 -> 500 + (weight - 5) * 50
    weight > 10       -> 750 + (weight - 10) * 75
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Company, WeightPricingTier
from ..validation import optional_decimal, quantize_money, to_decimal, to_int, to_money


TIER_STATUSES = {"active", "inactive"}


@dataclass(frozen=True)
class PriceResult:
    tier_name: str
    base_price: Decimal
    additional_price: Decimal
    total_price: Decimal
    weight: Decimal

    def to_dict(self) -> dict:
        return {
            "tier_name": self.tier_name,
            "base_price": str(self.base_price),
            "additional_price": str(self.additional_price),
            "total_price": str(self.total_price),
            "weight": str(self.weight),
        }


# (upper bound inclusive, tier name, base price, per-kg rate above the lower bound)
DEFAULT_LADDER = (
    (Decimal("1"), "Light", Decimal("200"), Decimal("0")),
    (Decimal("3"), "Medium", Decimal("300"), Decimal("0")),
    (Decimal("5"), "Heavy", Decimal("400"), Decimal("0")),
    (Decimal("10"), "Extra Heavy", Decimal("500"), Decimal("50")),
    (None, "Bulk", Decimal("750"), Decimal("75")),
)


def default_ladder_price(weight: Decimal) -> PriceResult:
    """Built-in ladder used when a company has no tier covering the weight."""
    lower = Decimal("0")
    for upper, name, base, per_kg in DEFAULT_LADDER:
        if upper is None or weight <= upper:
            # Flat rungs charge nothing above the floor; the others charge from
            # the previous rung's ceiling (5kg / 10kg).
            additional = (weight - lower) * per_kg if per_kg else Decimal("0")
            return PriceResult(
                tier_name=name,
                base_price=quantize_money(base),
                additional_price=quantize_money(additional),
                total_price=quantize_money(base + additional),
                weight=weight,
            )
        lower = upper
    raise AssertionError("default ladder has an open-ended last rung")


def tier_matches(tier: WeightPricingTier, weight: Decimal) -> bool:
    if weight < tier.min_weight:
        return False
    if tier.max_weight is not None and weight > tier.max_weight:
        return False
    return True


def select_tier(tiers: Iterable[WeightPricingTier], weight: Decimal) -> WeightPricingTier | None:
    """Highest min_weight among matching tiers; ties keep the lowest sort_order."""
    best = None
    for tier in tiers:
        if not tier_matches(tier, weight):
            continue
        if best is None or tier.min_weight > best.min_weight:
            best = tier
        elif tier.min_weight == best.min_weight and (tier.sort_order or 0) < (best.sort_order or 0):
            best = tier
    return best


def price_from_tier(tier: WeightPricingTier, weight: Decimal) -> PriceResult:
    base = Decimal(tier.base_price)
    additional = max(Decimal("0"), (weight - Decimal(tier.min_weight)) * Decimal(tier.price_per_kg))
    return PriceResult(
        tier_name=tier.tier_name,
        base_price=quantize_money(base),
        additional_price=quantize_money(additional),
        total_price=quantize_money(base + additional),
        weight=weight,
    )


def price_with_tiers(tiers: Iterable[WeightPricingTier], weight) -> PriceResult:
    """Pure pricing over an already-loaded tier list (callers filter to active tiers)."""
    weight = to_decimal(weight, "weight")
    if weight < 0:
        raise ValidationError("weight must be >= 0", details={"weight": str(weight)})

    tier = select_tier(tiers, weight)
    if tier is not None:
        return price_from_tier(tier, weight)
    return default_ladder_price(weight)


def active_tiers(company_id: int) -> list[WeightPricingTier]:
    return (
        db.session.query(WeightPricingTier)
        .filter_by(company_id=company_id, status="active")
        .order_by(WeightPricingTier.min_weight, WeightPricingTier.sort_order)
        .all()
    )


def price_for_weight(company_id: int, weight) -> PriceResult:
    """
    Delivery charge for `weight` kg under the company's tier table.

    Always returns a price: companies without a matching tier fall back to
    the default ladder.
    """
    return price_with_tiers(active_tiers(company_id), weight)


def pricing_breakdown(company_id: int, weights: Iterable) -> list[dict]:
    tiers = active_tiers(company_id)
    return [price_with_tiers(tiers, w).to_dict() for w in weights]


# =============================================================================
# Tier administration
# =============================================================================

def list_tiers(company_id: int, include_inactive: bool = False) -> list[WeightPricingTier]:
    query = db.session.query(WeightPricingTier).filter_by(company_id=company_id)
    if not include_inactive:
        query = query.filter_by(status="active")
    return query.order_by(WeightPricingTier.sort_order, WeightPricingTier.min_weight).all()


def _ranges_overlap(min_a: Decimal, max_a: Decimal | None, min_b: Decimal, max_b: Decimal | None) -> bool:
    # Closed intervals; None is +infinity. Touching bounds (1-3, 3-5) overlap
    # at the shared point, which the highest-min rule resolves, so only a
    # strict overlap is rejected.
    a_below_b_max = max_b is None or min_a < max_b
    b_below_a_max = max_a is None or min_b < max_a
    return a_below_b_max and b_below_a_max


def _validate_tier_values(data: dict) -> dict:
    tier_name = (data.get("tier_name") or "").strip()
    if not tier_name:
        raise ValidationError("tier_name is required", details={"field": "tier_name"})

    min_weight = to_decimal(data.get("min_weight", 0), "min_weight")
    max_weight = optional_decimal(data.get("max_weight"), "max_weight")
    base_price = to_money(data.get("base_price", 0), "base_price")
    price_per_kg = to_money(data.get("price_per_kg", 0), "price_per_kg")
    status = data.get("status", "active")

    if min_weight < 0:
        raise ValidationError("min_weight must be >= 0", details={"field": "min_weight"})
    if max_weight is not None and max_weight < min_weight:
        raise ValidationError(
            "max_weight must be >= min_weight",
            details={"field": "max_weight", "min_weight": str(min_weight), "max_weight": str(max_weight)},
        )
    if base_price < 0:
        raise ValidationError("base_price must be >= 0", details={"field": "base_price"})
    if price_per_kg < 0:
        raise ValidationError("price_per_kg must be >= 0", details={"field": "price_per_kg"})
    if status not in TIER_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(TIER_STATUSES))}",
            details={"field": "status"},
        )

    return {
        "tier_name": tier_name,
        "min_weight": min_weight,
        "max_weight": max_weight,
        "base_price": base_price,
        "price_per_kg": price_per_kg,
        "status": status,
        "sort_order": to_int(data.get("sort_order") or 0, "sort_order"),
    }


def _validate_no_overlap(company_id: int, values: dict, exclude_tier_id: int | None = None) -> None:
    if values["status"] != "active":
        return
    for tier in active_tiers(company_id):
        if tier.id == exclude_tier_id:
            continue
        if _ranges_overlap(values["min_weight"], values["max_weight"], tier.min_weight, tier.max_weight):
            raise ValidationError(
                f"Weight range overlaps with existing tier: {tier.tier_name}",
                details={"conflicting_tier_id": tier.id, "conflicting_tier": tier.tier_name},
            )


def create_tier(company_id: int, data: dict) -> WeightPricingTier:
    """Create a pricing tier after range and overlap validation."""
    if db.session.get(Company, company_id) is None:
        raise NotFoundError(f"Company {company_id} not found")

    values = _validate_tier_values(data)
    _validate_no_overlap(company_id, values)

    tier = WeightPricingTier(company_id=company_id, **values)
    db.session.add(tier)
    db.session.commit()
    return tier


def update_tier(company_id: int, tier_id: int, data: dict) -> WeightPricingTier:
    tier = db.session.get(WeightPricingTier, tier_id)
    if tier is None or tier.company_id != company_id:
        raise NotFoundError(f"Pricing tier {tier_id} not found in company")

    merged = {**tier.to_dict(), **data}
    values = _validate_tier_values(merged)
    _validate_no_overlap(company_id, values, exclude_tier_id=tier.id)

    for key, value in values.items():
        setattr(tier, key, value)
    db.session.commit()
    return tier
