from datetime import datetime
from payroll_api.extensions import db
from payroll_api.services.salary_calculator import calculate_salary

# columns written by recompute(); never edited directly
BREAKDOWN_FIELDS = (
    "basic", "hra", "conveyance", "other_allowance",
    "pf", "esic", "day_wise_deduction", "net_salary",
)


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    code  = db.Column(db.String(32), unique=True, nullable=False)
    name  = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    department  = db.Column(db.String(120), nullable=True)
    designation = db.Column(db.String(120), nullable=True)
    doj = db.Column(db.Date, nullable=True)   # date of joining
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # calculator inputs
    salary        = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    paid_days     = db.Column(db.Integer, nullable=False, default=30)
    leaves        = db.Column(db.Integer, nullable=False, default=0)
    deduct_pf     = db.Column(db.Boolean, nullable=False, default=True)
    deduct_esic   = db.Column(db.Boolean, nullable=False, default=True)
    reimbursement = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    note          = db.Column(db.Text, nullable=True)

    # latest breakdown
    basic              = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    hra                = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    conveyance         = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_allowance    = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pf                 = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    esic               = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    day_wise_deduction = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary         = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    version    = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    user = db.relationship("User", lazy="joined")

    def recompute(self):
        """Refresh the breakdown from the current calculator inputs."""
        b = calculate_salary(
            self.salary,
            paid_days=30 if self.paid_days is None else self.paid_days,
            deduct_pf=self.deduct_pf is not False,
            deduct_esic=self.deduct_esic is not False,
            reimbursement=self.reimbursement or 0,
        )
        for field in BREAKDOWN_FIELDS:
            setattr(self, field, getattr(b, field))
        return b

    def breakdown(self) -> dict:
        return {f: float(getattr(self, f) or 0) for f in BREAKDOWN_FIELDS}

    def __repr__(self) -> str:
        return f"<Employee id={self.id} code={self.code!r}>"
