from datetime import datetime
from payroll_api.extensions import db

EMAIL_STATUSES = ("not_sent", "sent", "delivered", "failed")

# employee fields frozen onto the payslip at generation time
SNAPSHOT_FIELDS = (
    "salary", "paid_days", "leaves",
    "basic", "hra", "conveyance", "other_allowance",
    "pf", "esic", "day_wise_deduction", "net_salary",
    "reimbursement", "department", "designation",
)


class Payslip(db.Model):
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_code = db.Column(db.String(32), nullable=False)
    employee_name = db.Column(db.String(160), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year  = db.Column(db.Integer, nullable=False)

    salary    = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    paid_days = db.Column(db.Integer, nullable=False, default=30)
    leaves    = db.Column(db.Integer, nullable=False, default=0)
    basic              = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    hra                = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    conveyance         = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_allowance    = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pf                 = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    esic               = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    day_wise_deduction = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    reimbursement      = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary         = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    department  = db.Column(db.String(120))
    designation = db.Column(db.String(120))

    generated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    generated_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime)

    # latest delivery attempt; full history in payslip_email_logs
    email_sent       = db.Column(db.Boolean, nullable=False, default=False)
    email_sent_at    = db.Column(db.DateTime)
    email_status     = db.Column(db.String(16), nullable=False, default="not_sent")
    email_message_id = db.Column(db.String(255))
    email_error      = db.Column(db.Text)

    version = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_payslip_emp_period"),
        db.Index("ix_payslip_period", "year", "month"),
    )
    __mapper_args__ = {"version_id_col": version}

    employee = db.relationship("Employee", lazy="joined")
    email_logs = db.relationship(
        "PayslipEmailLog",
        back_populates="payslip",
        order_by="PayslipEmailLog.id",
        cascade="all, delete-orphan",
    )

    def snapshot(self) -> dict:
        """Plain dict of everything a renderer or notifier needs; safe to hand to a worker thread."""
        money = ("salary", "basic", "hra", "conveyance", "other_allowance", "pf", "esic",
                 "day_wise_deduction", "reimbursement", "net_salary")
        data = {f: float(getattr(self, f) or 0) for f in money}
        data.update({
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_code": self.employee_code,
            "employee_name": self.employee_name,
            "month": self.month,
            "year": self.year,
            "paid_days": self.paid_days,
            "leaves": self.leaves,
            "department": self.department,
            "designation": self.designation,
            "gross_earnings": data["basic"] + data["hra"] + data["conveyance"] + data["other_allowance"],
            "total_deductions": data["pf"] + data["esic"] + data["day_wise_deduction"],
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        })
        return data


class PayslipEmailLog(db.Model):
    __tablename__ = "payslip_email_logs"

    id = db.Column(db.Integer, primary_key=True)
    payslip_id = db.Column(db.Integer, db.ForeignKey("payslips.id", ondelete="CASCADE"), nullable=False, index=True)
    sent_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    success    = db.Column(db.Boolean, nullable=False)
    message_id = db.Column(db.String(255))
    error      = db.Column(db.Text)
    is_bulk    = db.Column(db.Boolean, nullable=False, default=False)

    payslip = db.relationship("Payslip", back_populates="email_logs")
