"""
Tests for job-level moves: hold, resume, cancel, complete, assign, priority.
"""

import pytest

from printshop.errors import InvalidTransitionError, NotFoundError, ValidationError
from printshop.models import PrintJob
from printshop.services import job_lifecycle_service, production_service, progress_service


@pytest.fixture
def job(db_session, branch, ctx):
    return production_service.create_print_job(branch.id, "business_cards", ctx)


def _finish(stage_id, ctx):
    production_service.transition_stage(stage_id, "start", ctx)
    production_service.transition_stage(stage_id, "complete", ctx)


def _reload(db_session, job_id):
    db_session.expire_all()
    return db_session.get(PrintJob, job_id)


class TestHoldAndResume:
    def test_hold_logs_reason(self, db_session, job, ctx):
        job_lifecycle_service.put_job_on_hold(job.id, ctx, reason="Waiting for paper")

        job = _reload(db_session, job.id)
        assert job.production_status == "on_hold"
        assert job.production_notes == (
            "2026-03-14 09:30:00: Status changed from pending to on_hold - Put on hold: Waiting for paper"
        )

    def test_hold_twice_is_rejected(self, db_session, job, ctx):
        job_lifecycle_service.put_job_on_hold(job.id, ctx)
        with pytest.raises(InvalidTransitionError) as exc_info:
            job_lifecycle_service.put_job_on_hold(job.id, ctx)
        assert "print job" in exc_info.value.message

    def test_resume_without_completed_stages_goes_to_design_review(self, db_session, job, ctx):
        job_lifecycle_service.put_job_on_hold(job.id, ctx)
        job_lifecycle_service.resume_job(job.id, ctx)

        job = _reload(db_session, job.id)
        assert job.production_status == "design_review"
        assert job.production_notes.endswith("Status changed from on_hold to design_review - Job resumed")

    @pytest.mark.parametrize("done,expected", [
        (1, "design_approved"),
        (2, "design_approved"),
        (3, "pre_press"),
        (4, "printing"),
        (5, "finishing"),
        (6, "quality_check"),
    ])
    def test_resume_follows_last_completed_stage(self, db_session, job, ctx, done, expected):
        for stage in list(job.stages)[:done]:
            _finish(stage.id, ctx)
        job_lifecycle_service.put_job_on_hold(job.id, ctx)
        job_lifecycle_service.resume_job(job.id, ctx, notes="Paper arrived")

        job = _reload(db_session, job.id)
        assert job.production_status == expected
        assert job.production_notes.endswith(f"to {expected} - Resumed: Paper arrived")

    def test_unmapped_stage_resumes_to_design_review(self, db_session, job, ctx):
        for stage in job.stages:
            if stage.stage_name != "packaging":
                production_service.transition_stage(stage.id, "skip", ctx)
        packaging = [s for s in job.stages if s.stage_name == "packaging"][0]
        _finish(packaging.id, ctx)
        job_lifecycle_service.put_job_on_hold(job.id, ctx)

        assert job_lifecycle_service.resume_job(job.id, ctx).production_status == "design_review"

    def test_resume_requires_hold(self, db_session, job, ctx):
        with pytest.raises(InvalidTransitionError):
            job_lifecycle_service.resume_job(job.id, ctx)


class TestCancelAndComplete:
    def test_cancel_closes_job(self, db_session, job, ctx):
        job_lifecycle_service.cancel_job(job.id, ctx, reason="Customer withdrew")

        job = _reload(db_session, job.id)
        assert job.production_status == "cancelled"
        assert job.actual_completion is None
        assert job.production_notes.endswith("Cancelled: Customer withdrew")

    def test_complete_sets_full_progress(self, db_session, job, ctx):
        job_lifecycle_service.complete_job(job.id, ctx)

        job = _reload(db_session, job.id)
        assert job.production_status == "completed"
        assert job.completion_percentage == 100
        assert job.actual_completion == ctx.now
        assert job.production_notes.endswith("- Job completed successfully")

    @pytest.mark.parametrize("close", ["cancel_job", "complete_job"])
    def test_closed_jobs_accept_no_moves(self, db_session, job, ctx, close):
        getattr(job_lifecycle_service, close)(job.id, ctx)
        for move in ("put_job_on_hold", "cancel_job", "complete_job"):
            with pytest.raises(InvalidTransitionError):
                getattr(job_lifecycle_service, move)(job.id, ctx)

    def test_held_job_can_be_cancelled(self, db_session, job, ctx):
        job_lifecycle_service.put_job_on_hold(job.id, ctx)
        assert job_lifecycle_service.cancel_job(job.id, ctx).production_status == "cancelled"

    def test_unknown_job(self, db_session, ctx):
        with pytest.raises(NotFoundError):
            job_lifecycle_service.cancel_job(4242, ctx)


class TestClosedJobStages:
    def test_completed_job_rejects_new_stages(self, db_session, branch, ctx):
        job = production_service.create_print_job(branch.id, "flyers", ctx, with_default_stages=False)
        stage = production_service.create_stage(job.id, "printing_process", ctx)
        _finish(stage.id, ctx)
        assert _reload(db_session, job.id).production_status == "completed"

        with pytest.raises(ValidationError):
            production_service.create_stage(job.id, "lamination", ctx)

        result = progress_service.recompute_job_progress(job.id, ctx)
        assert result.percentage == 100
        assert result.production_status == "completed"

    def test_cancelled_job_rejects_new_stages(self, db_session, job, ctx):
        job_lifecycle_service.cancel_job(job.id, ctx)
        with pytest.raises(ValidationError):
            production_service.create_stage(job.id, "lamination", ctx)


class TestAssignmentAndPriority:
    def test_assign_with_notes(self, db_session, job, ctx):
        job_lifecycle_service.assign_job(job.id, 4, ctx, notes="Night shift")

        job = _reload(db_session, job.id)
        assert job.assigned_to_user_id == 4
        assert job.production_notes == "2026-03-14 09:30:00: Assigned to user #4. Night shift"

    def test_assign_without_notes_leaves_log(self, db_session, job, ctx):
        job_lifecycle_service.assign_job(job.id, "9", ctx)
        job = _reload(db_session, job.id)
        assert job.assigned_to_user_id == 9
        assert job.production_notes is None

    def test_priority_change_with_reason(self, db_session, job, ctx):
        job_lifecycle_service.set_job_priority(job.id, "urgent", ctx, reason="Trade show")

        job = _reload(db_session, job.id)
        assert job.priority == "urgent"
        assert job.production_notes == (
            "2026-03-14 09:30:00: Priority changed from normal to urgent. Reason: Trade show"
        )

    def test_unknown_priority(self, db_session, job, ctx):
        with pytest.raises(ValidationError):
            job_lifecycle_service.set_job_priority(job.id, "asap", ctx)

    def test_manual_progress_note(self, db_session, job, ctx):
        progress_service.set_manual_progress(job.id, 40, ctx, notes="Plates ready")
        job = _reload(db_session, job.id)
        assert job.production_notes == "2026-03-14 09:30:00: Progress updated to 40%. Plates ready"
