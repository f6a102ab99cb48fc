# Overview: Production stage state machine and print job creation.

"""
Production Stage Lifecycle

================================================================================
STATE MACHINE (stage_status):
================================================================================

    pending ──start──> in_progress ──complete──> completed
                           │
                           ├──require_approval──> requires_approval
                           │                          ├──approve / complete──> completed
                           │                          └──reject──> rejected
                           └──reject──> rejected

    pending / in_progress ──put_on_hold──> on_hold
    on_hold ──resume──> in_progress (stage was started) | pending (never started)
    pending / on_hold ──skip──> skipped

    completed, rejected and skipped are terminal.

RULES:
1. Any (state, event) pair outside the table raises InvalidTransitionError;
   nothing is written.
2. Every accepted transition appends "{YYYY-mm-dd HH:MM:SS}: {Label}" (plus
   " - {notes}" when given) to the stage notes and records the actor.
3. complete / approve recompute the parent job's progress in the same
   transaction.
4. The stage row is locked and version-checked; conflicts are retried by
   run_with_retry and surface as ConcurrencyConflictError.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..context import ActionContext
from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Invoice, PrintJob, ProductionStage
from ..time_utils import format_note_time, minutes_between
from ..validation import to_int, validate_json_map
from .concurrency import lock_for_update, run_with_retry
from .numbering_service import next_print_job_number
from .progress_service import CLOSED_PRODUCTION_STATUSES, ProgressResult, recompute_locked


# event -> (valid source states, note label)
TRANSITIONS = {
    "start": (("pending",), "Started"),
    "complete": (("in_progress", "requires_approval"), "Completed"),
    "put_on_hold": (("pending", "in_progress"), "Put on hold"),
    "resume": (("on_hold",), "Resumed"),
    "reject": (("in_progress", "requires_approval"), "Rejected"),
    "require_approval": (("in_progress",), "Requires approval"),
    "approve": (("requires_approval",), "Approved"),
    "skip": (("pending", "on_hold"), "Skipped"),
}

EVENTS = tuple(TRANSITIONS)
TERMINAL_STATES = {"completed", "rejected", "skipped"}
PROGRESS_EVENTS = {"complete", "approve"}


def allowed_events(state: str) -> list[str]:
    """Events accepted from `state`, in table order (empty for terminal states)."""
    if state in TERMINAL_STATES:
        return []
    return [event for event, (sources, _label) in TRANSITIONS.items() if state in sources]


@dataclass(frozen=True)
class StageResult:
    stage: ProductionStage
    event: str
    previous_status: str
    progress: ProgressResult | None = None

    def to_dict(self) -> dict:
        return {
            "event": self.event,
            "previous_status": self.previous_status,
            "stage": self.stage.to_dict(),
            "progress": self.progress.to_dict() if self.progress else None,
        }


def _append_note(stage: ProductionStage, ctx: ActionContext, label: str, notes: str | None) -> None:
    line = f"{format_note_time(ctx.now)}: {label}"
    if notes:
        line = f"{line} - {notes}"
    stage.notes = f"{stage.notes}\n{line}" if stage.notes else line


def _apply_event(
    stage: ProductionStage,
    event: str,
    ctx: ActionContext,
    notes: str | None,
    stage_data: dict,
) -> None:
    now = ctx.now

    if event == "start":
        stage.stage_status = "in_progress"
        stage.started_at = now
    elif event == "complete":
        stage.stage_status = "completed"
        stage.completed_at = now
        stage.actual_duration = minutes_between(stage.started_at, now)
        if stage_data:
            stage.stage_data = {**(stage.stage_data or {}), **stage_data}
    elif event == "put_on_hold":
        stage.stage_status = "on_hold"
    elif event == "resume":
        stage.stage_status = "in_progress" if stage.started_at else "pending"
    elif event == "reject":
        stage.stage_status = "rejected"
        stage.rejection_reason = notes
        if stage.requires_customer_approval:
            stage.approval_status = "rejected"
    elif event == "require_approval":
        stage.stage_status = "requires_approval"
    elif event == "approve":
        stage.stage_status = "completed"
        stage.completed_at = now
        stage.approved_by_user_id = ctx.actor_user_id
        stage.approval_status = "approved"
        if stage.requires_customer_approval:
            stage.customer_approved_at = now

    stage.updated_by_user_id = ctx.actor_user_id


def _lock_stage(stage_id: int) -> ProductionStage:
    stage = lock_for_update(db.session.query(ProductionStage).filter_by(id=stage_id)).first()
    if stage is None:
        raise NotFoundError(f"Production stage {stage_id} not found", details={"stage_id": stage_id})
    return stage


def transition_stage(
    stage_id: int,
    event: str,
    ctx: ActionContext,
    notes: str | None = None,
    stage_data: dict | None = None,
) -> StageResult:
    """
    Apply `event` to a stage.

    Raises:
        NotFoundError: stage does not exist
        InvalidTransitionError: event unknown or not valid from the current state
        ConcurrencyConflictError: the stage kept changing underneath us
    """
    data = validate_json_map(stage_data, "stage_data")

    def _op() -> StageResult:
        stage = _lock_stage(stage_id)
        previous = stage.stage_status

        rule = TRANSITIONS.get(event)
        if rule is None or previous not in rule[0]:
            raise InvalidTransitionError(
                previous,
                event,
                details={"stage_id": stage.id, "allowed_events": allowed_events(previous)},
            )

        _apply_event(stage, event, ctx, notes, data)
        _append_note(stage, ctx, rule[1], notes)

        progress = None
        if event in PROGRESS_EVENTS:
            db.session.flush()
            progress = recompute_locked(stage.print_job_id, ctx)

        db.session.commit()
        current_app.logger.info(
            "Stage %s (%s) %s: %s -> %s (user=%s)",
            stage.id, stage.stage_name, event, previous, stage.stage_status, ctx.actor_user_id,
        )
        return StageResult(stage=stage, event=event, previous_status=previous, progress=progress)

    return run_with_retry(_op)


# =============================================================================
# Stage navigation and creation
# =============================================================================

def get_stage(stage_id: int) -> ProductionStage:
    stage = db.session.get(ProductionStage, stage_id)
    if stage is None:
        raise NotFoundError(f"Production stage {stage_id} not found", details={"stage_id": stage_id})
    return stage


def next_stage(stage_id: int) -> ProductionStage | None:
    stage = get_stage(stage_id)
    return (
        db.session.query(ProductionStage)
        .filter(
            ProductionStage.print_job_id == stage.print_job_id,
            ProductionStage.stage_order > stage.stage_order,
        )
        .order_by(ProductionStage.stage_order.asc())
        .first()
    )


def previous_stage(stage_id: int) -> ProductionStage | None:
    stage = get_stage(stage_id)
    return (
        db.session.query(ProductionStage)
        .filter(
            ProductionStage.print_job_id == stage.print_job_id,
            ProductionStage.stage_order < stage.stage_order,
        )
        .order_by(ProductionStage.stage_order.desc())
        .first()
    )


def create_stage(
    print_job_id: int,
    stage_name: str,
    ctx: ActionContext,
    *,
    stage_order: int | None = None,
    estimated_duration: int | None = None,
    requires_customer_approval: bool = False,
) -> ProductionStage:
    """Append a stage to an open job (order defaults to last + 1)."""
    name = (stage_name or "").strip()
    if not name:
        raise ValidationError("stage_name is required", details={"field": "stage_name"})

    def _op() -> ProductionStage:
        job = lock_for_update(db.session.query(PrintJob).filter_by(id=print_job_id)).first()
        if job is None:
            raise NotFoundError(f"Print job {print_job_id} not found", details={"print_job_id": print_job_id})
        if job.production_status in CLOSED_PRODUCTION_STATUSES:
            raise ValidationError(
                f"Cannot add stages to a {job.production_status} print job",
                details={"print_job_id": job.id, "production_status": job.production_status},
            )

        if stage_order is None:
            current_max = (
                db.session.query(db.func.max(ProductionStage.stage_order))
                .filter_by(print_job_id=job.id)
                .scalar()
            )
            order = (current_max or 0) + 1
        else:
            order = to_int(stage_order, "stage_order")
            if order < 1:
                raise ValidationError("stage_order must be >= 1", details={"field": "stage_order"})
            taken = (
                db.session.query(ProductionStage.id)
                .filter_by(print_job_id=job.id, stage_order=order)
                .first()
            )
            if taken is not None:
                raise ValidationError(
                    f"Stage order {order} already used on this job",
                    details={"print_job_id": job.id, "stage_order": order},
                )

        stage = ProductionStage(
            print_job_id=job.id,
            stage_name=name,
            stage_order=order,
            stage_status="pending",
            estimated_duration=None if estimated_duration is None else to_int(estimated_duration, "estimated_duration"),
            requires_customer_approval=bool(requires_customer_approval),
            updated_by_user_id=ctx.actor_user_id,
        )
        db.session.add(stage)
        db.session.commit()
        return stage

    return run_with_retry(_op)


# =============================================================================
# Print jobs
# =============================================================================

# (stage_name, estimated minutes, requires customer approval)
STAGE_TEMPLATES = {
    "business_cards": (
        ("design_review", 30, False),
        ("customer_approval", 60, True),
        ("pre_press_setup", 45, False),
        ("printing_process", 120, False),
        ("cutting", 60, False),
        ("quality_inspection", 30, False),
        ("packaging", 30, False),
    ),
    "brochures": (
        ("design_review", 60, False),
        ("customer_approval", 120, True),
        ("pre_press_setup", 90, False),
        ("printing_process", 180, False),
        ("folding", 90, False),
        ("quality_inspection", 45, False),
        ("packaging", 45, False),
    ),
    "flyers": (
        ("design_review", 30, False),
        ("customer_approval", 60, True),
        ("pre_press_setup", 30, False),
        ("printing_process", 90, False),
        ("cutting", 45, False),
        ("quality_inspection", 30, False),
        ("packaging", 30, False),
    ),
    "posters": (
        ("design_review", 45, False),
        ("customer_approval", 90, True),
        ("pre_press_setup", 60, False),
        ("printing_process", 120, False),
        ("cutting", 45, False),
        ("quality_inspection", 30, False),
        ("packaging", 30, False),
    ),
    "banners": (
        ("design_review", 60, False),
        ("customer_approval", 120, True),
        ("material_preparation", 45, False),
        ("printing_process", 180, False),
        ("finishing", 90, False),
        ("quality_inspection", 45, False),
        ("packaging", 45, False),
    ),
    "default": (
        ("design_review", 45, False),
        ("customer_approval", 90, True),
        ("pre_press_setup", 60, False),
        ("printing_process", 120, False),
        ("finishing", 60, False),
        ("quality_inspection", 30, False),
        ("packaging", 30, False),
    ),
}

PRIORITIES = ("low", "normal", "high", "urgent")


def stage_template(job_type: str) -> tuple:
    return STAGE_TEMPLATES.get(job_type, STAGE_TEMPLATES["default"])


def get_print_job(print_job_id: int) -> PrintJob:
    job = db.session.get(PrintJob, print_job_id)
    if job is None:
        raise NotFoundError(f"Print job {print_job_id} not found", details={"print_job_id": print_job_id})
    return job


def create_print_job(
    branch_id: int,
    job_type: str,
    ctx: ActionContext,
    *,
    invoice_id: int | None = None,
    priority: str = "normal",
    quantity=1,
    specifications: dict | None = None,
    assigned_to_user_id: int | None = None,
    with_default_stages: bool = True,
) -> PrintJob:
    """
    Create a print job numbered PJ-{branch}-{yymm}-{seq} and, by default,
    the stage list for its job type.
    """
    job_type = (job_type or "").strip() or "custom"
    if priority not in PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(PRIORITIES)}",
            details={"field": "priority"},
        )
    qty = to_int(quantity, "quantity")
    if qty <= 0:
        raise ValidationError("quantity must be > 0", details={"field": "quantity"})
    specs = validate_json_map(specifications, "specifications")

    def _op() -> PrintJob:
        branch = db.session.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found", details={"branch_id": branch_id})
        if invoice_id is not None:
            invoice = db.session.get(Invoice, invoice_id)
            if invoice is None or invoice.branch_id != branch.id:
                raise NotFoundError(
                    f"Invoice {invoice_id} not found in branch",
                    details={"invoice_id": invoice_id, "branch_id": branch.id},
                )

        job = PrintJob(
            branch_id=branch.id,
            invoice_id=invoice_id,
            assigned_to_user_id=assigned_to_user_id,
            job_number=next_print_job_number(branch.id, ctx.now.strftime("%y%m")),
            job_type=job_type,
            priority=priority,
            quantity=qty,
            production_status="pending",
            completion_percentage=0,
            specifications=specs,
            created_by_user_id=ctx.actor_user_id,
        )
        if with_default_stages:
            for index, (name, minutes, needs_approval) in enumerate(stage_template(job_type), start=1):
                job.stages.append(ProductionStage(
                    stage_name=name,
                    stage_order=index,
                    stage_status="pending",
                    estimated_duration=minutes,
                    requires_customer_approval=needs_approval,
                    updated_by_user_id=ctx.actor_user_id,
                ))
        db.session.add(job)
        db.session.commit()
        current_app.logger.info(
            "Print job %s created (%s, %d stages, user=%s)",
            job.job_number, job_type, len(job.stages), ctx.actor_user_id,
        )
        return job

    return run_with_retry(_op)
