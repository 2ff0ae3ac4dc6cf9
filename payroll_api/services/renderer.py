# payroll_api/services/renderer.py
import calendar
from datetime import datetime
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

HEADER_BLUE = colors.HexColor("#4472C4")


def _money(v) -> str:
    return f"{float(v or 0):,.2f}"


def _period(month, year) -> str:
    return f"{calendar.month_name[int(month)]} {year}" if month else str(year or "")


class PdfRenderer:
    """Turns payslip snapshots and payroll reports into PDF bytes."""

    def __init__(self, company_name: str = "Payroll"):
        self.company_name = company_name

    def _styles(self):
        styles = getSampleStyleSheet()
        title = ParagraphStyle(
            "PayrollTitle",
            parent=styles["Heading1"],
            fontSize=18,
            textColor=HEADER_BLUE,
            spaceAfter=6,
            alignment=TA_CENTER,
        )
        subtitle = ParagraphStyle(
            "PayrollSubtitle",
            parent=styles["Normal"],
            fontSize=10,
            textColor=colors.grey,
            spaceAfter=14,
            alignment=TA_CENTER,
        )
        return styles, title, subtitle

    def _table(self, data, col_widths, bold_last=False):
        table = Table(data, colWidths=col_widths)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F5F5F5")]),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ]
        if bold_last:
            style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
        table.setStyle(TableStyle(style))
        return table

    def render_payslip(self, p: dict) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=36, leftMargin=36,
                                topMargin=36, bottomMargin=24)
        styles, title, subtitle = self._styles()
        elements = [
            Paragraph(self.company_name, title),
            Paragraph(f"Salary Slip for {_period(p['month'], p['year'])}", subtitle),
        ]

        info = [
            ["Employee", p["employee_name"], "Code", p["employee_code"]],
            ["Department", p.get("department") or "-", "Designation", p.get("designation") or "-"],
            ["Paid Days", str(p["paid_days"]), "Leaves", str(p["leaves"])],
        ]
        info_table = Table(info, colWidths=[1.2 * inch, 2.3 * inch, 1.2 * inch, 2.3 * inch])
        info_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ]))
        elements += [info_table, Spacer(1, 0.25 * inch)]

        earnings = [
            ("Basic", p["basic"]), ("HRA", p["hra"]),
            ("Conveyance", p["conveyance"]), ("Other Allowance", p["other_allowance"]),
        ]
        deductions = [("PF", p["pf"]), ("ESIC", p["esic"]), ("Day-wise Deduction", p["day_wise_deduction"])]
        data = [["Earnings", "Amount", "Deductions", "Amount"]]
        for i in range(max(len(earnings), len(deductions))):
            e = earnings[i] if i < len(earnings) else ("", None)
            d = deductions[i] if i < len(deductions) else ("", None)
            data.append([e[0], _money(e[1]) if e[0] else "", d[0], _money(d[1]) if d[0] else ""])
        data.append(["Gross Earnings", _money(p["gross_earnings"]), "Total Deductions", _money(p["total_deductions"])])
        elements.append(self._table(data, [1.8 * inch, 1.7 * inch, 1.8 * inch, 1.7 * inch], bold_last=True))
        elements.append(Spacer(1, 0.2 * inch))

        if p.get("reimbursement"):
            elements.append(Paragraph(f"Reimbursement: {_money(p['reimbursement'])}", styles["Normal"]))
        elements.append(Paragraph(f"<b>Net Salary: {_money(p['net_salary'])}</b>", styles["Heading3"]))
        elements.append(Spacer(1, 0.3 * inch))
        elements.append(Paragraph(
            "This is a computer generated payslip and does not require a signature.", subtitle))

        doc.build(elements)
        return buffer.getvalue()

    def render_report(self, report: dict) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=30, leftMargin=30,
                                topMargin=30, bottomMargin=18)
        styles, title, subtitle = self._styles()
        elements = [
            Paragraph(f"{self.company_name} - Payroll Report", title),
            Paragraph(
                f"{report['label']} | Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
                subtitle,
            ),
        ]

        data = [["#", "Code", "Employee", "Period", "Net Salary", "Paid"]]
        for idx, r in enumerate(report["rows"], start=1):
            data.append([
                str(idx), r["employee_code"], r["employee_name"][:28],
                f"{r['month']:02d}/{r['year']}", _money(r["net_salary"]),
                "Yes" if r["is_paid"] else "No",
            ])
        elements.append(self._table(
            data, [0.4 * inch, 0.9 * inch, 2.4 * inch, 0.9 * inch, 1.3 * inch, 0.6 * inch]))
        elements.append(Spacer(1, 0.3 * inch))

        t = report["totals"]
        elements.append(Paragraph(
            f"<b>Summary:</b><br/>"
            f"Payslips: {t['count']}<br/>"
            f"Total Salary: {_money(t['total_salary'])}<br/>"
            f"Paid: {_money(t['paid_amount'])} ({t['paid_count']})<br/>"
            f"Pending: {_money(t['pending_amount'])} ({t['pending_count']})",
            styles["Normal"],
        ))

        doc.build(elements)
        return buffer.getvalue()
