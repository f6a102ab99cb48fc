# Overview: Flask API routes for print jobs, production stages and job progress.

"""
Production API Routes

- Create print jobs (stages generated from the job type template)
- Add stages, fire stage events (start, complete, approve, ...)
- Recompute or manually override job progress
- Hold, resume, cancel or complete a whole job; reassign or reprioritize it

Invalid stage events answer 409 with the current state and the events that
state accepts.
"""

from flask import Blueprint, jsonify, current_app

from ..errors import PrintShopError
from ..services import job_lifecycle_service, production_service, progress_service
from ..validation import to_bool, to_int
from . import action_context, json_body, required


production_bp = Blueprint("production", __name__, url_prefix="/api/print-jobs")


@production_bp.post("/")
def create_print_job_route():
    """
    Request body:
    {
        "branch_id": 1,
        "job_type": "business_cards",
        "invoice_id": 5,                  (optional)
        "priority": "normal",             (low, normal, high, urgent)
        "quantity": 500,
        "specifications": {"paper": "350gsm"},
        "with_default_stages": true,
        "actor_user_id": 12
    }
    """
    try:
        data = json_body()
        required(data, "branch_id", "job_type")
        job = production_service.create_print_job(
            to_int(data["branch_id"], "branch_id"),
            data["job_type"],
            action_context(data),
            invoice_id=None if data.get("invoice_id") is None else to_int(data["invoice_id"], "invoice_id"),
            priority=data.get("priority", "normal"),
            quantity=data.get("quantity", 1),
            specifications=data.get("specifications"),
            assigned_to_user_id=data.get("assigned_to_user_id"),
            with_default_stages=to_bool(data.get("with_default_stages", True), "with_default_stages"),
        )
        return jsonify({"print_job": job.to_dict(include_stages=True)}), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create print job")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.get("/<int:print_job_id>")
def get_print_job_route(print_job_id: int):
    try:
        job = production_service.get_print_job(print_job_id)
        payload = job.to_dict(include_stages=True)
        for stage in payload["stages"]:
            stage["allowed_events"] = production_service.allowed_events(stage["stage_status"])
        return jsonify({"print_job": payload}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load print job")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.post("/<int:print_job_id>/stages")
def create_stage_route(print_job_id: int):
    """
    Request body:
    {
        "stage_name": "lamination",
        "stage_order": 8,                     (optional, appended last)
        "estimated_duration": 30,             (minutes, optional)
        "requires_customer_approval": false
    }
    """
    try:
        data = json_body()
        required(data, "stage_name")
        stage = production_service.create_stage(
            print_job_id,
            data["stage_name"],
            action_context(data),
            stage_order=data.get("stage_order"),
            estimated_duration=data.get("estimated_duration"),
            requires_customer_approval=to_bool(data.get("requires_customer_approval", False), "requires_customer_approval"),
        )
        return jsonify({"stage": stage.to_dict()}), 201

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create production stage")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.post("/stages/<int:stage_id>/<event>")
def stage_event_route(stage_id: int, event: str):
    """
    Fire a stage event.

    Events: start, complete, put_on_hold, resume, reject, require_approval,
    approve, skip

    Request body:
    {
        "notes": "Plates checked",      (optional; rejection reason for reject)
        "stage_data": {"sheets": 520},  (optional, merged on complete)
        "actor_user_id": 12
    }

    Returns:
        200: StageResult (stage + job progress for complete/approve)
        404: Stage not found
        409: Event not allowed from the current state / concurrent update
    """
    try:
        data = json_body()
        result = production_service.transition_stage(
            stage_id,
            event,
            action_context(data),
            notes=data.get("notes"),
            stage_data=data.get("stage_data"),
        )
        return jsonify(result.to_dict()), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply stage event")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.post("/<int:print_job_id>/progress")
def recompute_progress_route(print_job_id: int):
    try:
        data = json_body()
        result = progress_service.recompute_job_progress(print_job_id, action_context(data))
        return jsonify(result.to_dict()), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to recompute job progress")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.put("/<int:print_job_id>/progress")
def set_progress_route(print_job_id: int):
    """Request body: {"completion_percentage": 40, "notes": "..."} (clamped to 0..100)"""
    try:
        data = json_body()
        required(data, "completion_percentage")
        job = progress_service.set_manual_progress(
            print_job_id, data["completion_percentage"], action_context(data), notes=data.get("notes")
        )
        return jsonify({"print_job": job.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set job progress")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# JOB LIFECYCLE
# =============================================================================

# action -> (service function, body field carrying the note)
JOB_MOVES = {
    "hold": (job_lifecycle_service.put_job_on_hold, "reason"),
    "resume": (job_lifecycle_service.resume_job, "notes"),
    "cancel": (job_lifecycle_service.cancel_job, "reason"),
    "complete": (job_lifecycle_service.complete_job, "notes"),
}


@production_bp.post("/<int:print_job_id>/<any(hold, resume, cancel, complete):action>")
def job_move_route(print_job_id: int, action: str):
    """
    Move a whole job.

    Request body:
    {
        "reason": "Waiting for paper",   (hold / cancel, optional)
        "notes": "Paper arrived",        (resume / complete, optional)
        "actor_user_id": 12
    }

    Returns:
        200: print job
        404: Print job not found
        409: Move not allowed from the current status
    """
    try:
        data = json_body()
        move, note_field = JOB_MOVES[action]
        job = move(print_job_id, action_context(data), data.get(note_field))
        return jsonify({"print_job": job.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to %s print job", action)
        return jsonify({"error": "Internal server error"}), 500


@production_bp.put("/<int:print_job_id>/assignee")
def assign_job_route(print_job_id: int):
    """Request body: {"assigned_to_user_id": 4, "notes": "Night shift", "actor_user_id": 12}"""
    try:
        data = json_body()
        required(data, "assigned_to_user_id")
        job = job_lifecycle_service.assign_job(
            print_job_id, data["assigned_to_user_id"], action_context(data), notes=data.get("notes")
        )
        return jsonify({"print_job": job.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign print job")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.put("/<int:print_job_id>/priority")
def set_priority_route(print_job_id: int):
    """Request body: {"priority": "urgent", "reason": "Trade show", "actor_user_id": 12}"""
    try:
        data = json_body()
        required(data, "priority")
        job = job_lifecycle_service.set_job_priority(
            print_job_id, data["priority"], action_context(data), reason=data.get("reason")
        )
        return jsonify({"print_job": job.to_dict()}), 200

    except PrintShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change print job priority")
        return jsonify({"error": "Internal server error"}), 500
