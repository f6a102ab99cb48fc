from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import decimal_str


class Product(db.Model):
    """
    Sellable print product.

    weight_per_unit is stored in the unit the product was configured with
    (weight_unit); invoice lines convert it to kilograms when they are
    created. tax_rate here is a percentage (15 = 15%), unlike Company.tax_rate.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("company_id", "product_code", name="uq_products_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    product_code = db.Column(db.String(64), nullable=True)

    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    weight_per_unit = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    weight_unit = db.Column(db.String(16), nullable=False, default="kg")
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    minimum_quantity = db.Column(db.Integer, nullable=True)
    maximum_quantity = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "product_code": self.product_code,
            "base_price": decimal_str(self.base_price),
            "weight_per_unit": decimal_str(self.weight_per_unit),
            "weight_unit": self.weight_unit,
            "tax_rate": decimal_str(self.tax_rate),
            "minimum_quantity": self.minimum_quantity,
            "maximum_quantity": self.maximum_quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class WeightPricingTier(db.Model):
    """
    Company-configured weight bracket for delivery charges.

    A tier covers [min_weight, max_weight] kg (open-ended when max_weight is
    NULL) and charges base_price plus price_per_kg for every kg above
    min_weight. Only ACTIVE tiers are considered by the pricing engine.
    """
    __tablename__ = "weight_pricing_tiers"
    __table_args__ = (
        db.Index("ix_weight_tiers_company_status_min", "company_id", "status", "min_weight"),
        db.CheckConstraint("max_weight IS NULL OR max_weight >= min_weight", name="ck_weight_tiers_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    tier_name = db.Column(db.String(120), nullable=False)

    min_weight = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    max_weight = db.Column(db.Numeric(12, 3), nullable=True)
    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    price_per_kg = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("weight_pricing_tiers", lazy=True))

    @property
    def weight_range(self) -> str:
        if self.max_weight is not None:
            return f"{self.min_weight}kg - {self.max_weight}kg"
        return f"{self.min_weight}kg+"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "tier_name": self.tier_name,
            "min_weight": decimal_str(self.min_weight),
            "max_weight": decimal_str(self.max_weight),
            "base_price": decimal_str(self.base_price),
            "price_per_kg": decimal_str(self.price_per_kg),
            "status": self.status,
            "sort_order": self.sort_order,
            "weight_range": self.weight_range,
            "created_at": to_utc_z(self.created_at),
        }
