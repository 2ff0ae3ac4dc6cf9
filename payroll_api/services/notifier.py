# payroll_api/services/notifier.py
import calendar
import logging
import smtplib
import uuid
from dataclasses import dataclass, asdict
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def _money(v) -> str:
    return f"₹{float(v or 0):,.2f}"


def payslip_email(payslip: dict, company_name: str, portal_url: str = "") -> tuple[str, str, str]:
    """Build (subject, html, text) for a payslip notification."""
    period = f"{calendar.month_name[payslip['month']]} {payslip['year']}"
    subject = f"Salary Slip - {period}"
    rows = [
        ("Basic", payslip["basic"]),
        ("HRA", payslip["hra"]),
        ("Conveyance", payslip["conveyance"]),
        ("Other Allowance", payslip["other_allowance"]),
        ("PF", -payslip["pf"]),
        ("ESIC", -payslip["esic"]),
        ("Day-wise Deduction", -payslip["day_wise_deduction"]),
    ]
    if payslip.get("reimbursement"):
        rows.append(("Reimbursement", payslip["reimbursement"]))
    lines = "".join(
        f"<tr><td style='padding:4px 12px'>{label}</td>"
        f"<td style='padding:4px 12px;text-align:right'>{_money(amount)}</td></tr>"
        for label, amount in rows
    )
    link = f"<p><a href='{portal_url}'>View in portal</a></p>" if portal_url else ""
    html = f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h2>{company_name}</h2>
        <p>Dear {payslip['employee_name']},</p>
        <p>Your salary slip for <strong>{period}</strong> is ready.</p>
        <table style="border-collapse: collapse;">
            {lines}
            <tr><td style='padding:4px 12px'><strong>Net Salary</strong></td>
                <td style='padding:4px 12px;text-align:right'><strong>{_money(payslip['net_salary'])}</strong></td></tr>
        </table>
        <p>Paid days: {payslip['paid_days']} &middot; Leaves: {payslip['leaves']}</p>
        {link}
    </body>
    </html>
    """
    text = (
        f"Dear {payslip['employee_name']},\n\n"
        f"Your salary slip for {period} is ready.\n"
        f"Net salary: {_money(payslip['net_salary'])}\n"
    )
    return subject, html, text


class SmtpNotifier:
    """Delivers payslip notifications over SMTP (STARTTLS)."""

    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Payroll",
        company_name: str = "Payroll",
        portal_url: str = "",
        timeout: float = 30,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.company_name = company_name
        self.portal_url = portal_url
        self.timeout = timeout

    def send(self, recipient: dict, payslip: dict, is_bulk: bool = False) -> NotificationResult:
        if not self.smtp_user or not self.smtp_password:
            logger.warning("Email not configured. SMTP credentials missing.")
            return NotificationResult(False, error="Email service not configured")

        subject, html, text = payslip_email(payslip, self.company_name, self.portal_url)
        message_id = make_msgid(domain=self.from_email.split("@")[-1] or None)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = recipient["email"]
        msg["Message-ID"] = message_id
        if is_bulk:
            msg["Precedence"] = "bulk"
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, recipient["email"], msg.as_string())
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return NotificationResult(False, error="SMTP authentication failed")
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send payslip email to %s: %s", recipient["email"], e)
            return NotificationResult(False, error=str(e))

        logger.info("Payslip email sent to %s (%s)", recipient["email"], message_id)
        return NotificationResult(True, message_id=message_id)


class LogNotifier:
    """Development backend: writes the message to the log instead of sending it."""

    def __init__(self, company_name: str = "Payroll"):
        self.company_name = company_name

    def send(self, recipient: dict, payslip: dict, is_bulk: bool = False) -> NotificationResult:
        subject, _html, _text = payslip_email(payslip, self.company_name)
        message_id = f"<{uuid.uuid4().hex}@payroll.local>"
        logger.info("[mail:log] to=%s subject=%r bulk=%s id=%s",
                    recipient.get("email"), subject, is_bulk, message_id)
        return NotificationResult(True, message_id=message_id)


def build_notifier(config) -> object:
    backend = (config.get("MAIL_BACKEND") or "log").lower()
    if backend == "smtp":
        return SmtpNotifier(
            smtp_host=config.get("SMTP_HOST"),
            smtp_port=int(config.get("SMTP_PORT") or 587),
            smtp_user=config.get("SMTP_USER") or "",
            smtp_password=config.get("SMTP_PASSWORD") or "",
            from_email=config.get("MAIL_FROM") or "",
            from_name=config.get("MAIL_FROM_NAME") or "Payroll",
            company_name=config.get("COMPANY_NAME") or "Payroll",
            portal_url=config.get("FRONTEND_URL") or "",
            timeout=float(config.get("NOTIFIER_TIMEOUT_SECONDS") or 30),
        )
    return LogNotifier(company_name=config.get("COMPANY_NAME") or "Payroll")
