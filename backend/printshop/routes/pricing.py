# Overview: Flask API routes for weight pricing quotes and tier administration.

"""
Weight Pricing API Routes

- Quote a delivery charge for a weight (company tiers, default ladder fallback)
- List and create a company's weight tiers
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import PrintShopError
from ..services import weight_pricing_service
from ..validation import to_int
from . import json_body, required


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


@pricing_bp.post("/quote")
def quote_route():
    """
    Price one weight, or several.

    Request body:
    {
        "company_id": 1,
        "weight": "2.5"            (or "weights": ["0.5", "7"])
    }

    Returns:
        200: PriceResult (or {"quotes": [...]})
        400: Invalid input / negative weight
        404: Company not found
    """
    try:
        data = json_body()
        required(data, "company_id")
        company_id = to_int(data["company_id"], "company_id")

        if "weights" in data:
            quotes = weight_pricing_service.pricing_breakdown(company_id, data["weights"] or [])
            return jsonify({"quotes": quotes}), 200

        required(data, "weight")
        result = weight_pricing_service.price_for_weight(company_id, data["weight"])
        return jsonify(result.to_dict()), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to quote weight price")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/tiers")
def list_tiers_route():
    """
    Query params: company_id (required), include_inactive=true|false
    """
    try:
        company_id = request.args.get("company_id")
        if not company_id:
            return jsonify({"error": "company_id required"}), 400
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"

        tiers = weight_pricing_service.list_tiers(to_int(company_id, "company_id"), include_inactive)
        return jsonify({"tiers": [tier.to_dict() for tier in tiers]}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list weight tiers")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/tiers")
def create_tier_route():
    """
    Request body:
    {
        "company_id": 1,
        "tier_name": "Bulk",
        "min_weight": "10",
        "max_weight": null,
        "base_price": "750",
        "price_per_kg": "60"
    }

    Returns:
        201: Tier created
        400: Invalid bounds / overlap with an active tier
    """
    try:
        data = json_body()
        required(data, "company_id")
        tier = weight_pricing_service.create_tier(to_int(data["company_id"], "company_id"), data)
        return jsonify({"tier": tier.to_dict()}), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create weight tier")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.patch("/tiers/<int:tier_id>")
def update_tier_route(tier_id: int):
    """Request body: company_id plus any tier fields to change."""
    try:
        data = json_body()
        required(data, "company_id")
        tier = weight_pricing_service.update_tier(to_int(data["company_id"], "company_id"), tier_id, data)
        return jsonify({"tier": tier.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update weight tier")
        return jsonify({"error": "Internal server error"}), 500
