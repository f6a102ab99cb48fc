from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PRODUCTION_STATUSES = (
    "pending",
    "design_review",
    "design_approved",
    "pre_press",
    "printing",
    "finishing",
    "quality_check",
    "completed",
    "on_hold",
    "cancelled",
)

STAGE_STATUSES = (
    "pending",
    "in_progress",
    "completed",
    "on_hold",
    "requires_approval",
    "rejected",
    "skipped",
)


class PrintJob(db.Model):
    """
    Production work order, optionally raised from an invoice.

    completion_percentage and production_status are derived from the job's
    stages by progress_service; completion_percentage may also be set by
    hand, in which case it holds until the next stage completion.
    """
    __tablename__ = "print_jobs"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "job_number", name="uq_print_jobs_branch_number"),
        db.Index("ix_print_jobs_branch_status", "branch_id", "production_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)
    assigned_to_user_id = db.Column(db.Integer, nullable=True)

    # e.g. "PJ-COL-2610-0007"
    job_number = db.Column(db.String(64), nullable=False)
    job_type = db.Column(db.String(32), nullable=False, default="custom")
    priority = db.Column(db.String(16), nullable=False, default="normal")
    quantity = db.Column(db.Integer, nullable=False, default=1)

    production_status = db.Column(db.String(32), nullable=False, default="pending", index=True)
    completion_percentage = db.Column(db.Integer, nullable=False, default=0)

    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_completion = db.Column(db.DateTime(timezone=True), nullable=True)

    specifications = db.Column(db.JSON, nullable=True)
    production_notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch", backref=db.backref("print_jobs", lazy=True))
    invoice = db.relationship("Invoice", backref=db.backref("print_jobs", lazy=True))
    stages = db.relationship(
        "ProductionStage",
        back_populates="print_job",
        cascade="all, delete-orphan",
        order_by="ProductionStage.stage_order",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_stages: bool = False) -> dict:
        data = {
            "id": self.id,
            "branch_id": self.branch_id,
            "invoice_id": self.invoice_id,
            "assigned_to_user_id": self.assigned_to_user_id,
            "job_number": self.job_number,
            "job_type": self.job_type,
            "priority": self.priority,
            "quantity": self.quantity,
            "production_status": self.production_status,
            "completion_percentage": self.completion_percentage,
            "started_at": to_utc_z(self.started_at),
            "actual_completion": to_utc_z(self.actual_completion),
            "specifications": self.specifications or {},
            "production_notes": self.production_notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_stages:
            data["stages"] = [stage.to_dict() for stage in self.stages]
        return data


class ProductionStage(db.Model):
    """
    One step of a print job's workflow.

    LIFECYCLE (enforced by production_service.transition_stage):
        pending -> in_progress -> completed
                        |-> requires_approval -> completed | rejected
        pending / in_progress -> on_hold -> (resume) in_progress | pending
        pending / on_hold -> skipped

    completed, rejected and skipped are terminal. notes is an append-only
    log; every accepted transition adds one timestamped line.
    """
    __tablename__ = "production_stages"
    __table_args__ = (
        db.UniqueConstraint("print_job_id", "stage_order", name="uq_production_stages_job_order"),
        db.Index("ix_production_stages_job_status", "print_job_id", "stage_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    print_job_id = db.Column(db.Integer, db.ForeignKey("print_jobs.id"), nullable=False, index=True)

    stage_name = db.Column(db.String(64), nullable=False)
    stage_order = db.Column(db.Integer, nullable=False)
    stage_status = db.Column(db.String(32), nullable=False, default="pending")

    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Minutes
    estimated_duration = db.Column(db.Integer, nullable=True)
    actual_duration = db.Column(db.Integer, nullable=True)

    requires_customer_approval = db.Column(db.Boolean, nullable=False, default=False)
    customer_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approval_status = db.Column(db.String(16), nullable=True)
    approved_by_user_id = db.Column(db.Integer, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    stage_data = db.Column(db.JSON, nullable=True)

    updated_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    print_job = db.relationship("PrintJob", back_populates="stages")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def stage_label(self) -> str:
        return self.stage_name.replace("_", " ").title()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "print_job_id": self.print_job_id,
            "stage_name": self.stage_name,
            "stage_label": self.stage_label,
            "stage_order": self.stage_order,
            "stage_status": self.stage_status,
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at),
            "estimated_duration": self.estimated_duration,
            "actual_duration": self.actual_duration,
            "requires_customer_approval": self.requires_customer_approval,
            "customer_approved_at": to_utc_z(self.customer_approved_at),
            "approval_status": self.approval_status,
            "approved_by_user_id": self.approved_by_user_id,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
            "stage_data": self.stage_data or {},
            "updated_by_user_id": self.updated_by_user_id,
            "version_id": self.version_id,
        }
