# Overview: Explicit actor/clock context passed into every mutating service call.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .time_utils import utcnow


@dataclass(frozen=True)
class ActionContext:
    """
    Who is acting and what time it is.

    Services never look up the current user or the wall clock themselves;
    callers (routes, CLI, tests) build one of these and pass it down. Tests
    pin `now` to make durations and note timestamps deterministic.
    """
    actor_user_id: int | None = None
    now: datetime = field(default_factory=utcnow)
