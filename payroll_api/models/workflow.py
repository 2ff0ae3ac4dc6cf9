from datetime import datetime
from payroll_api.extensions import db


class WorkflowAction(db.Model):
    """Append-only log of status transitions across the approval pipelines."""
    __tablename__ = "workflow_actions"

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(32), nullable=False)   # attendance|payment|salary_revision
    entity_id   = db.Column(db.Integer, nullable=False)
    action      = db.Column(db.String(40), nullable=False)   # e.g. attendance.approve, payroll.mark_processed
    from_status = db.Column(db.String(20))
    to_status   = db.Column(db.String(20), nullable=False)
    comment     = db.Column(db.Text)
    acted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    acted_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_workflow_entity", "entity_type", "entity_id"),
    )

    acted_by = db.relationship("User")
