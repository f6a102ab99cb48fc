# Overview: Job-level production moves: hold, resume, cancel, complete, assign, reprioritize.

"""
Print Job Lifecycle

================================================================================
JOB MOVES (production_status):
================================================================================

    pending .. quality_check ──put_on_hold──> on_hold
    on_hold ──resume──> status implied by the last completed stage
    any status but completed / cancelled ──cancel──> cancelled
    any status but completed / cancelled ──complete──> completed

    completed and cancelled are closed: no further moves, no new stages.

RESUME TARGET (last completed stage by stage_order):
    design_review, customer_approval                 -> design_approved
    pre_press_setup, material_preparation            -> pre_press
    printing_setup, printing_process, color_matching -> printing
    cutting, folding, binding, laminating, coating   -> finishing
    quality_inspection                               -> quality_check
    anything else, or no completed stage             -> design_review

Every move goes through progress_service.change_job_status, so each one
appends "Status changed from X to Y - {note}" to production_notes.
Assignment and priority changes log a note only when one is given.
================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..context import ActionContext
from ..errors import InvalidTransitionError, ValidationError
from ..extensions import db
from ..models import PrintJob, ProductionStage
from ..time_utils import format_note_time
from ..validation import to_int
from .concurrency import run_with_retry
from .production_service import PRIORITIES
from .progress_service import CLOSED_PRODUCTION_STATUSES, append_note, change_job_status, lock_job


RESUME_STATUS_BY_STAGE = {
    "design_review": "design_approved",
    "customer_approval": "design_approved",
    "pre_press_setup": "pre_press",
    "material_preparation": "pre_press",
    "printing_setup": "printing",
    "printing_process": "printing",
    "color_matching": "printing",
    "cutting": "finishing",
    "folding": "finishing",
    "binding": "finishing",
    "laminating": "finishing",
    "coating": "finishing",
    "quality_inspection": "quality_check",
}

DEFAULT_RESUME_STATUS = "design_review"


def _require_open(job: PrintJob, event: str) -> None:
    if job.production_status in CLOSED_PRODUCTION_STATUSES:
        raise InvalidTransitionError(
            job.production_status,
            event,
            details={"print_job_id": job.id},
            subject="print job",
        )


def resume_status_for(job_id: int) -> str:
    """Status a held job returns to, from its last completed stage."""
    last_completed = (
        db.session.query(ProductionStage)
        .filter_by(print_job_id=job_id, stage_status="completed")
        .order_by(ProductionStage.stage_order.desc())
        .first()
    )
    if last_completed is None:
        return DEFAULT_RESUME_STATUS
    return RESUME_STATUS_BY_STAGE.get(last_completed.stage_name, DEFAULT_RESUME_STATUS)


def _move(print_job_id: int, ctx: ActionContext, target, note: str | None) -> PrintJob:
    def _op() -> PrintJob:
        job = lock_job(print_job_id)
        status = target(job)
        change_job_status(job, status, ctx, notes=note)
        db.session.commit()
        return job

    return run_with_retry(_op)


def put_job_on_hold(print_job_id: int, ctx: ActionContext, reason: str | None = None) -> PrintJob:
    def target(job: PrintJob) -> str:
        _require_open(job, "put_on_hold")
        if job.production_status == "on_hold":
            raise InvalidTransitionError("on_hold", "put_on_hold", details={"print_job_id": job.id}, subject="print job")
        return "on_hold"

    return _move(print_job_id, ctx, target, f"Put on hold: {reason}" if reason else None)


def resume_job(print_job_id: int, ctx: ActionContext, notes: str | None = None) -> PrintJob:
    """Take a job off hold; see RESUME TARGET above."""
    def target(job: PrintJob) -> str:
        if job.production_status != "on_hold":
            raise InvalidTransitionError(
                job.production_status, "resume", details={"print_job_id": job.id}, subject="print job"
            )
        return resume_status_for(job.id)

    return _move(print_job_id, ctx, target, f"Resumed: {notes}" if notes else "Job resumed")


def cancel_job(print_job_id: int, ctx: ActionContext, reason: str | None = None) -> PrintJob:
    def target(job: PrintJob) -> str:
        _require_open(job, "cancel")
        return "cancelled"

    return _move(print_job_id, ctx, target, f"Cancelled: {reason}" if reason else None)


def complete_job(print_job_id: int, ctx: ActionContext, notes: str | None = None) -> PrintJob:
    """Close the job as completed regardless of stage progress (percentage becomes 100)."""
    def target(job: PrintJob) -> str:
        _require_open(job, "complete")
        return "completed"

    return _move(
        print_job_id, ctx, target,
        f"Completed: {notes}" if notes else "Job completed successfully",
    )


def assign_job(print_job_id: int, user_id, ctx: ActionContext, notes: str | None = None) -> PrintJob:
    assignee = to_int(user_id, "assigned_to_user_id")

    def _op() -> PrintJob:
        job = lock_job(print_job_id)
        _require_open(job, "assign")
        job.assigned_to_user_id = assignee
        if notes:
            job.production_notes = append_note(
                job.production_notes,
                f"{format_note_time(ctx.now)}: Assigned to user #{assignee}. {notes}",
            )
        db.session.commit()
        current_app.logger.info(
            "Print job %s assigned to user %s (user=%s)", job.job_number, assignee, ctx.actor_user_id,
        )
        return job

    return run_with_retry(_op)


def set_job_priority(print_job_id: int, priority: str, ctx: ActionContext, reason: str | None = None) -> PrintJob:
    if priority not in PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(PRIORITIES)}",
            details={"field": "priority"},
        )

    def _op() -> PrintJob:
        job = lock_job(print_job_id)
        _require_open(job, "reprioritize")
        old_priority = job.priority
        job.priority = priority
        if reason:
            job.production_notes = append_note(
                job.production_notes,
                f"{format_note_time(ctx.now)}: Priority changed from {old_priority} to {priority}. Reason: {reason}",
            )
        db.session.commit()
        current_app.logger.info(
            "Print job %s priority %s -> %s (user=%s)", job.job_number, old_priority, priority, ctx.actor_user_id,
        )
        return job

    return run_with_retry(_op)
