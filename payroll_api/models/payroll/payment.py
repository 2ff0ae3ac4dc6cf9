from datetime import datetime
from payroll_api.extensions import db

PAYMENT_STATUSES = ("pending", "finance_approved", "md_approved", "paid", "rejected")
PAYMENT_METHODS = ("bank_transfer", "cheque", "cash", "upi", "other")


class PaymentRequest(db.Model):
    __tablename__ = "payment_requests"

    id = db.Column(db.Integer, primary_key=True)
    payslip_id  = db.Column(db.Integer, db.ForeignKey("payslips.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_code = db.Column(db.String(32), nullable=False)
    employee_name = db.Column(db.String(160), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year  = db.Column(db.Integer, nullable=False)

    amount            = db.Column(db.Numeric(14, 2), nullable=False)
    payment_date      = db.Column(db.Date, nullable=False)
    payment_method    = db.Column(db.String(20), nullable=False)
    payment_reference = db.Column(db.String(120), nullable=False)
    bank_account_number = db.Column(db.String(40))
    bank_ifsc_code      = db.Column(db.String(20))
    bank_name           = db.Column(db.String(120))
    remarks = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    requested_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    requested_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    finance_approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    finance_approved_at    = db.Column(db.DateTime)
    finance_comments       = db.Column(db.Text)
    md_approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    md_approved_at    = db.Column(db.DateTime)
    md_comments       = db.Column(db.Text)
    processed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    processed_at    = db.Column(db.DateTime)
    rejected_by_id   = db.Column(db.Integer, db.ForeignKey("users.id"))
    rejected_at      = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    version = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        # one live request per payslip; rejected ones may be superseded
        db.Index(
            "uq_payment_active_payslip", "payslip_id", unique=True,
            postgresql_where=db.text("status <> 'rejected'"),
            sqlite_where=db.text("status <> 'rejected'"),
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    payslip  = db.relationship("Payslip", lazy="joined")
    employee = db.relationship("Employee", lazy="joined")
