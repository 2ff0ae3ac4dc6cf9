from datetime import datetime
from enum import Enum

from payroll_api.extensions import db


class AttendanceStage(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayrollStage(str, Enum):
    """Payroll view of the same status column: submitted = moved, approved = processed."""
    NOT_MOVED = "not_moved"
    MOVED = "moved"
    PROCESSED = "processed"


_PAYROLL_VIEW = {
    AttendanceStage.DRAFT: PayrollStage.NOT_MOVED,
    AttendanceStage.REJECTED: PayrollStage.NOT_MOVED,
    AttendanceStage.SUBMITTED: PayrollStage.MOVED,
    AttendanceStage.APPROVED: PayrollStage.PROCESSED,
}


class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_code = db.Column(db.String(32), nullable=False, index=True)
    employee_name = db.Column(db.String(160), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year  = db.Column(db.Integer, nullable=False)

    total_working_days = db.Column(db.Integer, nullable=False, default=30)
    present_days  = db.Column(db.Integer, nullable=False, default=0)
    absent_days   = db.Column(db.Integer, nullable=False, default=0)
    casual_leaves = db.Column(db.Integer, nullable=False, default=0)
    sick_leaves   = db.Column(db.Integer, nullable=False, default=0)
    earned_leaves = db.Column(db.Integer, nullable=False, default=0)
    other_leaves  = db.Column(db.Integer, nullable=False, default=0)
    total_leaves  = db.Column(db.Integer, nullable=False, default=0)
    half_days     = db.Column(db.Integer, nullable=False, default=0)
    overtime_hours = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    deduct_pf     = db.Column(db.Boolean, nullable=False, default=True)
    deduct_esic   = db.Column(db.Boolean, nullable=False, default=True)
    reimbursement = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    note          = db.Column(db.Text)

    status = db.Column(db.String(16), nullable=False, default=AttendanceStage.DRAFT.value, index=True)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    submitted_at    = db.Column(db.DateTime)
    approved_by_id  = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at     = db.Column(db.DateTime)
    rejected_by_id  = db.Column(db.Integer, db.ForeignKey("users.id"))
    rejected_at     = db.Column(db.DateTime)
    comments        = db.Column(db.Text)

    version    = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_attendance_emp_period"),
        db.Index("ix_attendance_period", "year", "month"),
    )
    __mapper_args__ = {"version_id_col": version}

    employee = db.relationship("Employee", lazy="joined")

    def recompute_totals(self):
        self.total_leaves = sum(int(x or 0) for x in (
            self.casual_leaves, self.sick_leaves, self.earned_leaves, self.other_leaves,
        ))
        working = int(self.total_working_days or 0)
        present = int(self.present_days or 0)
        self.absent_days = self.total_leaves + (working - present - self.total_leaves)

    @property
    def stage(self) -> AttendanceStage:
        return AttendanceStage(self.status)

    @property
    def payroll_stage(self) -> PayrollStage:
        return _PAYROLL_VIEW[self.stage]

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.employee_code} {self.month}/{self.year} {self.status}>"
