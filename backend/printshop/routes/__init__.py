# Overview: Request helpers shared by the API blueprints.

from __future__ import annotations

from flask import request

from ..context import ActionContext
from ..errors import ValidationError
from ..validation import to_int


def json_body() -> dict:
    """Parsed JSON object body ({} when empty); anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def action_context(data: dict) -> ActionContext:
    """Acting user comes from the body's actor_user_id (optional)."""
    actor = data.get("actor_user_id")
    return ActionContext(actor_user_id=None if actor is None else to_int(actor, "actor_user_id"))


def required(data: dict, *fields: str) -> None:
    missing = [name for name in fields if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", details={"missing": missing})
