from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class NumberSequence(db.Model):
    """
    Atomic per-branch number sequences.

    WHY: Prevent duplicate invoice and print-job numbers when two requests
    create documents for the same branch at the same time. next_number is
    always incremented with a single UPDATE, never read-then-write.
    """
    __tablename__ = "number_sequences"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "sequence_type", name="uq_number_sequences_branch_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    sequence_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("number_sequences", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "sequence_type": self.sequence_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
