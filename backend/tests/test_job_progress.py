"""
Tests for rolling stage completion up into print job progress.
"""

from types import SimpleNamespace

import pytest

from printshop.errors import NotFoundError
from printshop.models import PrintJob, ProductionStage
from printshop.services import production_service, progress_service
from printshop.services.progress_service import compute_progress


def _stages(*statuses):
    return [SimpleNamespace(stage_status=status) for status in statuses]


class TestComputeProgress:
    def test_half_done_pending_job_moves_to_design_review(self):
        result = compute_progress(_stages("completed", "completed", "pending", "in_progress"), "pending")
        assert result.completed == 2
        assert result.total == 4
        assert result.percentage == 50
        assert result.production_status == "design_review"

    def test_percentage_is_floored(self):
        assert compute_progress(_stages("completed", "pending", "pending")).percentage == 33
        assert compute_progress(_stages("completed", "completed", "pending")).percentage == 66

    def test_all_completed(self):
        result = compute_progress(_stages("completed", "completed"), "printing")
        assert result.percentage == 100
        assert result.production_status == "completed"

    def test_no_stages(self):
        result = compute_progress([], "pending")
        assert result.percentage == 0
        assert result.production_status == "pending"

    def test_later_status_is_kept(self):
        result = compute_progress(_stages("completed", "pending"), "printing")
        assert result.production_status == "printing"

    def test_skipped_stages_do_not_count_as_completed(self):
        assert compute_progress(_stages("completed", "skipped")).percentage == 50


@pytest.fixture
def job(db_session, branch, ctx):
    job = production_service.create_print_job(branch.id, "flyers", ctx, with_default_stages=False)
    for order in range(1, 5):
        db_session.add(ProductionStage(
            print_job_id=job.id,
            stage_name=f"step_{order}",
            stage_order=order,
            stage_status="pending",
        ))
    db_session.commit()
    return job


def _finish(stage_id, ctx):
    production_service.transition_stage(stage_id, "start", ctx)
    return production_service.transition_stage(stage_id, "complete", ctx)


def test_two_of_four_stages(db_session, job, ctx):
    stages = list(job.stages)
    _finish(stages[0].id, ctx)
    result = _finish(stages[1].id, ctx)

    assert result.progress.percentage == 50
    job = db_session.get(PrintJob, job.id)
    assert job.completion_percentage == 50
    assert job.production_status == "design_review"
    assert job.started_at == ctx.now


def test_progress_tracks_every_completion(db_session, job, ctx):
    stages = list(job.stages)
    for done, stage in enumerate(stages, start=1):
        _finish(stage.id, ctx)
        db_session.expire_all()
        assert db_session.get(PrintJob, job.id).completion_percentage == (100 * done) // len(stages)

    job = db_session.get(PrintJob, job.id)
    assert job.production_status == "completed"
    assert job.actual_completion == ctx.now


def test_recompute_is_idempotent(db_session, job, ctx):
    _finish(job.stages[0].id, ctx)
    first = progress_service.recompute_job_progress(job.id, ctx)
    version = db_session.get(PrintJob, job.id).version_id
    notes = db_session.get(PrintJob, job.id).production_notes

    second = progress_service.recompute_job_progress(job.id, ctx)
    assert first == second
    job = db_session.get(PrintJob, job.id)
    assert job.version_id == version
    assert job.production_notes == notes


def test_status_change_logged_in_production_notes(db_session, job, ctx):
    _finish(job.stages[0].id, ctx)
    job = db_session.get(PrintJob, job.id)
    assert job.production_notes == "2026-03-14 09:30:00: Status changed from pending to design_review"


def test_manual_progress_holds_until_next_recompute(db_session, job, ctx):
    progress_service.set_manual_progress(job.id, 80, ctx)
    assert db_session.get(PrintJob, job.id).completion_percentage == 80

    _finish(job.stages[0].id, ctx)
    assert db_session.get(PrintJob, job.id).completion_percentage == 25


@pytest.mark.parametrize("value,expected", [(-10, 0), (0, 0), (55, 55), (140, 100)])
def test_manual_progress_is_clamped(db_session, job, ctx, value, expected):
    job = progress_service.set_manual_progress(job.id, value, ctx)
    assert job.completion_percentage == expected


def test_unknown_job(db_session, ctx):
    with pytest.raises(NotFoundError):
        progress_service.recompute_job_progress(4242, ctx)
