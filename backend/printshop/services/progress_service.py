# Overview: Rolls stage completion up into print job progress and status.

"""
Print Job Progress

    completed  = stages with stage_status == "completed"
    percentage = floor(100 * completed / total), 0 when the job has no stages

    percentage == 100                   -> job "completed"
    percentage > 0 and job is "pending" -> job "design_review"
    otherwise                           -> status unchanged

Recomputing with unchanged stages writes nothing. A manual percentage set via
set_manual_progress stands until the next recompute.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..context import ActionContext
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import PrintJob, ProductionStage
from ..models.production import PRODUCTION_STATUSES
from ..time_utils import format_note_time
from ..validation import to_int
from .concurrency import lock_for_update, run_with_retry


ACTIVE_PRODUCTION_STATUSES = {"design_review", "pre_press", "printing"}
CLOSED_PRODUCTION_STATUSES = {"completed", "cancelled"}


@dataclass(frozen=True)
class ProgressResult:
    completed: int
    total: int
    percentage: int
    production_status: str

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
            "production_status": self.production_status,
        }


def compute_progress(stages: Iterable, current_status: str = "pending") -> ProgressResult:
    stage_list = list(stages)
    total = len(stage_list)
    completed = sum(1 for stage in stage_list if stage.stage_status == "completed")
    percentage = (100 * completed) // total if total else 0

    status = current_status
    if percentage == 100:
        status = "completed"
    elif percentage > 0 and current_status == "pending":
        status = "design_review"

    return ProgressResult(completed=completed, total=total, percentage=percentage, production_status=status)


def append_note(existing: str | None, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


def change_job_status(job: PrintJob, status: str, ctx: ActionContext, notes: str | None = None) -> bool:
    """
    Move a job to `status`, stamping started_at / actual_completion.

    Returns False (and writes nothing) when the job already has that status.
    Does not commit.
    """
    if status not in PRODUCTION_STATUSES:
        raise ValidationError(
            f"Invalid production status '{status}'",
            details={"production_status": status},
        )
    if job.production_status == status:
        return False

    old_status = job.production_status
    job.production_status = status

    if status in ACTIVE_PRODUCTION_STATUSES and job.started_at is None:
        job.started_at = ctx.now
    elif status == "completed":
        if job.actual_completion is None:
            job.actual_completion = ctx.now
        job.completion_percentage = 100

    line = f"{format_note_time(ctx.now)}: Status changed from {old_status} to {status}"
    if notes:
        line = f"{line} - {notes}"
    job.production_notes = append_note(job.production_notes, line)

    current_app.logger.info(
        "Print job %s status %s -> %s (user=%s)",
        job.job_number, old_status, status, ctx.actor_user_id,
    )
    return True


def apply_progress(job: PrintJob, stages: Iterable[ProductionStage], ctx: ActionContext) -> ProgressResult:
    """Write the computed percentage and status onto an already-locked job; does not commit."""
    result = compute_progress(stages, job.production_status)
    if job.completion_percentage != result.percentage:
        job.completion_percentage = result.percentage
    change_job_status(job, result.production_status, ctx)
    return result


def _job_stages(print_job_id: int) -> list[ProductionStage]:
    return (
        db.session.query(ProductionStage)
        .filter_by(print_job_id=print_job_id)
        .order_by(ProductionStage.stage_order)
        .all()
    )


def lock_job(print_job_id: int) -> PrintJob:
    job = lock_for_update(db.session.query(PrintJob).filter_by(id=print_job_id)).first()
    if job is None:
        raise NotFoundError(f"Print job {print_job_id} not found", details={"print_job_id": print_job_id})
    return job


def recompute_locked(print_job_id: int, ctx: ActionContext) -> ProgressResult:
    """Lock the job and apply progress inside the caller's transaction."""
    job = lock_job(print_job_id)
    return apply_progress(job, _job_stages(job.id), ctx)


def recompute_job_progress(print_job_id: int, ctx: ActionContext) -> ProgressResult:
    def _op() -> ProgressResult:
        result = recompute_locked(print_job_id, ctx)
        db.session.commit()
        return result

    return run_with_retry(_op)


def set_manual_progress(
    print_job_id: int,
    percentage,
    ctx: ActionContext,
    notes: str | None = None,
) -> PrintJob:
    """
    Override completion_percentage (clamped to 0..100) without touching status.

    With notes, "Progress updated to N%. {notes}" is added to the job log.
    """
    value = max(0, min(100, to_int(percentage, "percentage")))

    def _op() -> PrintJob:
        job = lock_job(print_job_id)
        if job.completion_percentage != value:
            job.completion_percentage = value
            current_app.logger.info(
                "Print job %s progress manually set to %d%% (user=%s)",
                job.job_number, value, ctx.actor_user_id,
            )
        if notes:
            job.production_notes = append_note(
                job.production_notes,
                f"{format_note_time(ctx.now)}: Progress updated to {value}%. {notes}",
            )
        db.session.commit()
        return job

    return run_with_retry(_op)
