# Overview: Input coercion for decimals, quantities and free-form JSON maps.

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


MONEY_PLACES = Decimal("0.01")
WEIGHT_PLACES = Decimal("0.001")

# Maximum monetary value that fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce an API/CLI value to Decimal.

    Floats go through str() so 0.1 stays 0.1. Booleans, NaN and infinities
    are rejected.
    """
    if value is None:
        raise ValidationError(f"{field} is required", details={"field": field})
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number", details={"field": field})
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number", details={"field": field})
    else:
        raise ValidationError(f"{field} must be a number", details={"field": field})

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", details={"field": field})
    return result


def to_money(value: Any, field: str) -> Decimal:
    """to_decimal bounded to what a Numeric(12, 2) column can hold."""
    result = to_decimal(value, field)
    if abs(result) > MAX_MONEY:
        raise ValidationError(
            f"{field} exceeds the maximum of {MAX_MONEY}",
            details={"field": field, "max": str(MAX_MONEY)},
        )
    return result


def optional_decimal(value: Any, field: str) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value, field)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_weight(value: Decimal) -> Decimal:
    return value.quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP)


def to_int(value: Any, field: str) -> int:
    """Strict integer coercion: no floats, no decimals, no scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer", details={"field": field})


def to_bool(value: Any, field: str) -> bool:
    """JSON booleans, 0/1, and the strings true/false/yes/no/1/0."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    raise ValidationError(f"{field} must be a boolean", details={"field": field})


def validate_json_map(value: Any, field: str, *, _path: str = "") -> dict:
    """
    Validate a free-form specification/stage-data mapping.

    Keys are strings; values are strings, numbers, booleans or nested maps
    of the same shape. Lists, None and other objects are rejected so the
    stored JSON round-trips unchanged.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object", details={"field": field, "path": _path or "$"})

    result: dict = {}
    for key, item in value.items():
        path = f"{_path}.{key}" if _path else str(key)
        if not isinstance(key, str):
            raise ValidationError(f"{field} keys must be strings", details={"field": field, "path": path})
        if isinstance(item, dict):
            result[key] = validate_json_map(item, field, _path=path)
        elif isinstance(item, (str, bool, int, float)):
            if isinstance(item, float) and not math.isfinite(item):
                raise ValidationError(f"{field}.{path} must be a finite number", details={"field": field, "path": path})
            result[key] = item
        else:
            raise ValidationError(
                f"{field}.{path} must be a string, number, boolean or object",
                details={"field": field, "path": path},
            )
    return result


def decimal_str(value: Decimal | None) -> str | None:
    """JSON-safe rendering of Numeric columns (strings keep exact precision)."""
    return None if value is None else str(value)
