# backend/printshop/config.py
from __future__ import annotations
import os
from decimal import Decimal


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/printshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///printshop.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Applied when a company has no tax_rate of its own (fraction, 0.12 = 12%)
    DEFAULT_TAX_RATE = Decimal(os.environ.get("DEFAULT_TAX_RATE", "0.12"))

    # due_date = invoice_date + INVOICE_DUE_DAYS when not provided
    INVOICE_DUE_DAYS = int(os.environ.get("INVOICE_DUE_DAYS", "30"))

    # Read-compute-write attempts before ConcurrencyConflictError is raised
    CONCURRENCY_RETRY_ATTEMPTS = int(os.environ.get("CONCURRENCY_RETRY_ATTEMPTS", "3"))
    CONCURRENCY_BACKOFF_BASE = float(os.environ.get("CONCURRENCY_BACKOFF_BASE", "0.1"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
