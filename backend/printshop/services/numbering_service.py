# Overview: Per-branch invoice and print-job number allocation.

from __future__ import annotations

import re

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError

from ..errors import FormatError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Invoice, NumberSequence


INVOICE_SEQUENCE = "INVOICE"
INVOICE_PAD = 6

_TRAILING_SEQUENCE = re.compile(r"(\d{6})$")


def parse_invoice_sequence(invoice_number: str) -> int:
    """
    Sequence part of a stored invoice number ("COL-000042" -> 42).

    Raises FormatError when the number does not end in 6 digits; a silent
    fallback here would hand out a number that may already exist.
    """
    match = _TRAILING_SEQUENCE.search(invoice_number or "")
    if not match:
        raise FormatError(
            f"Invoice number '{invoice_number}' does not end in a {INVOICE_PAD}-digit sequence",
            details={"invoice_number": invoice_number},
        )
    return int(match.group(1))


def format_invoice_number(branch_code: str, sequence: int) -> str:
    return f"{branch_code}-{sequence:0{INVOICE_PAD}d}"


def _require_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError(f"Branch {branch_id} not found", details={"branch_id": branch_id})
    return branch


def _seed_from_latest_invoice(branch_id: int) -> int:
    """First number for a branch whose counter row does not exist yet."""
    last_invoice = (
        db.session.query(Invoice)
        .filter_by(branch_id=branch_id)
        .order_by(Invoice.id.desc())
        .first()
    )
    if last_invoice is None:
        return 1
    return parse_invoice_sequence(last_invoice.invoice_number) + 1


def _allocate(branch_id: int, sequence_type: str, seed) -> int:
    """
    Atomically take the next number of a (branch, type) sequence.

    Increments with a single UPDATE so concurrent callers serialize on the
    row. A missing row is created inside a SAVEPOINT; losing that insert race
    falls back to the UPDATE path without discarding the caller's
    transaction. Runs inside the caller's transaction: rolling back the
    caller also gives the number back.
    """
    stmt = (
        update(NumberSequence)
        .where(
            NumberSequence.branch_id == branch_id,
            NumberSequence.sequence_type == sequence_type,
        )
        .values(next_number=NumberSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    def _read_back() -> int:
        current = (
            db.session.query(NumberSequence.next_number)
            .filter_by(branch_id=branch_id, sequence_type=sequence_type)
            .scalar()
        )
        return current - 1

    result = db.session.execute(stmt)
    if result.rowcount:
        return _read_back()

    first = seed()
    try:
        with db.session.begin_nested():
            db.session.add(NumberSequence(branch_id=branch_id, sequence_type=sequence_type, next_number=first + 1))
        return first
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        return _read_back()


def next_invoice_number(branch_id: int) -> str:
    """
    Allocate the next invoice number for a branch: "{branch.code}-{seq:06d}".

    Does not commit; the number is only consumed when the caller's
    transaction (normally the one inserting the invoice) commits.
    """
    branch = _require_branch(branch_id)
    sequence = _allocate(branch.id, INVOICE_SEQUENCE, lambda: _seed_from_latest_invoice(branch.id))
    return format_invoice_number(branch.code, sequence)


def _raise_floor(branch_id: int, sequence_type: str, floor: int, seed) -> None:
    """
    Make sure the sequence will not issue anything below `floor`.

    Same row discipline as _allocate: a single conditional UPDATE, or a
    SAVEPOINT insert seeded with max(seed(), floor) when the row is missing.
    """
    stmt = (
        update(NumberSequence)
        .where(
            NumberSequence.branch_id == branch_id,
            NumberSequence.sequence_type == sequence_type,
        )
        .values(next_number=case(
            (NumberSequence.next_number < floor, floor),
            else_=NumberSequence.next_number,
        ))
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount:
        return

    start = max(seed(), floor)
    try:
        with db.session.begin_nested():
            db.session.add(NumberSequence(branch_id=branch_id, sequence_type=sequence_type, next_number=start))
    except IntegrityError:
        if not db.session.execute(stmt).rowcount:
            raise


def reserve_invoice_number(branch_id: int, invoice_number: str) -> str:
    """
    Accept a caller-chosen invoice number and move the branch counter past it.

    The number must end in a 6-digit sequence. Does not commit; the counter
    moves only if the caller's transaction commits.
    """
    branch = _require_branch(branch_id)
    number = (invoice_number or "").strip()
    try:
        sequence = parse_invoice_sequence(number)
    except FormatError as exc:
        raise ValidationError(exc.message, details={"field": "invoice_number", **exc.details})
    _raise_floor(branch.id, INVOICE_SEQUENCE, sequence + 1, lambda: _seed_from_latest_invoice(branch.id))
    return number


def preview_invoice_number(branch_id: int) -> str:
    """The number next_invoice_number would issue now, without consuming it."""
    branch = _require_branch(branch_id)
    current = (
        db.session.query(NumberSequence.next_number)
        .filter_by(branch_id=branch.id, sequence_type=INVOICE_SEQUENCE)
        .scalar()
    )
    sequence = current if current is not None else _seed_from_latest_invoice(branch.id)
    return format_invoice_number(branch.code, sequence)


def next_print_job_number(branch_id: int, period: str) -> str:
    """
    Allocate "PJ-{branch.code}-{period}-{seq:04d}"; the sequence restarts
    for every period (YYMM).
    """
    branch = _require_branch(branch_id)
    sequence = _allocate(branch.id, f"PRINT_JOB:{period}", lambda: 1)
    return f"PJ-{branch.code}-{period}-{sequence:04d}"
