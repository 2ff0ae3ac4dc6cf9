from datetime import datetime
from payroll_api.extensions import db

REVISION_STATUSES = ("pending", "hr_approved", "finance_approved", "md_approved", "rejected")
REVISION_REASONS = ("increment", "promotion", "adjustment", "bonus", "other")


class SalaryRevision(db.Model):
    __tablename__ = "salary_revisions"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_code = db.Column(db.String(32), nullable=False)
    employee_name = db.Column(db.String(160), nullable=False)

    current_salary = db.Column(db.Numeric(14, 2), nullable=False)
    new_salary     = db.Column(db.Numeric(14, 2), nullable=False)
    effective_date = db.Column(db.Date, nullable=False)
    reason      = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    requested_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    requested_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    hr_approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    hr_approved_at    = db.Column(db.DateTime)
    hr_comments       = db.Column(db.Text)
    finance_approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    finance_approved_at    = db.Column(db.DateTime)
    finance_comments       = db.Column(db.Text)
    md_approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    md_approved_at    = db.Column(db.DateTime)
    md_comments       = db.Column(db.Text)
    rejected_by_id   = db.Column(db.Integer, db.ForeignKey("users.id"))
    rejected_at      = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    implemented_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    implemented_at    = db.Column(db.DateTime)

    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    employee = db.relationship("Employee", lazy="joined")

    @property
    def increment_amount(self) -> float:
        return float((self.new_salary or 0) - (self.current_salary or 0))

    @property
    def increment_percent(self) -> float:
        cur = float(self.current_salary or 0)
        return round(self.increment_amount / cur * 100, 2) if cur else 0.0
