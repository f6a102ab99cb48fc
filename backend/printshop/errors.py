# Overview: Domain error taxonomy shared by services, routes and CLI.

from __future__ import annotations


class PrintShopError(Exception):
    """
    Base for domain errors.

    Carries a human-readable message plus structured details, and the HTTP
    status the API layer answers with.
    """
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(PrintShopError):
    """400-level input problem (quantities, prices, weights, discounts, locked invoices)."""
    status_code = 400


class NotFoundError(PrintShopError):
    """Referenced company/branch/product/invoice/stage/job does not exist."""
    status_code = 404


class InvalidTransitionError(PrintShopError):
    """Stage or print job event is not allowed from the current state."""
    status_code = 409

    def __init__(self, current_state: str, event: str, details: dict | None = None, subject: str = "stage"):
        super().__init__(
            f"Cannot {event} a {subject} in status '{current_state}'",
            details={"current_state": current_state, "event": event, **(details or {})},
        )
        self.current_state = current_state
        self.event = event


class ConcurrencyConflictError(PrintShopError):
    """Optimistic-lock conflict that survived every retry."""
    status_code = 409


class FormatError(PrintShopError):
    """Stored invoice number does not end in a 6-digit sequence."""
    status_code = 500
