"""CSV and PDF export of complaints with their computed deadline columns."""
import csv
import io
from datetime import date, datetime
from typing import Iterable, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...models.domain import Complaint
from .deadline_engine import deadline_summary

CSV_HEADER = [
    "Complaint ID",
    "Portal Name",
    "Category",
    "Department",
    "Date Lodged",
    "Expected Response Date",
    "Computed Due Date",
    "Status",
    "Days Pending",
    "Days Until Next Action",
    "Description",
    "Notes",
    "Last Updated",
]


def export_filename(now: Optional[datetime] = None, extension: str = "csv") -> str:
    now = now or datetime.now()
    return f"complaints-{now:%Y%m%d-%H%M}.{extension}"


def complaints_to_csv(complaints: Iterable[Complaint], today: Optional[date] = None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for c in complaints:
        summary = deadline_summary(c, today=today)
        writer.writerow([
            c.complaint_id,
            c.portal_name,
            c.category.value,
            c.department,
            c.date_lodged or "",
            c.expected_response_date or "",
            summary["dueDate"] or "",
            summary["displayStatus"],
            "" if summary["daysPending"] is None else summary["daysPending"],
            "" if summary["daysUntilDue"] is None else summary["daysUntilDue"],
            c.description,
            c.notes,
            c.last_updated or "",
        ])

    return buffer.getvalue()


# =============================================================================
# PDF
# =============================================================================

PDF_HEADER = [
    "Complaint ID",
    "Portal",
    "Category",
    "Dept",
    "Lodged",
    "Due",
    "Status",
    "Pending (d)",
    "Until (d)",
]

PDF_COLUMN_WIDTHS = [110, 125, 65, 120, 65, 65, 75, 60, 55]


def complaints_to_pdf(
    complaints: Iterable[Complaint],
    today: Optional[date] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """
    Render complaints as a landscape A4 table.

    Same deadline math as the CSV export, reduced to the columns that fit on
    a printed page. Returns the PDF document bytes.
    """
    generated_at = generated_at or datetime.now()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
        title="Complaint Tracking Export",
    )
    styles = getSampleStyleSheet()

    rows = [PDF_HEADER]
    for c in complaints:
        summary = deadline_summary(c, today=today)
        rows.append([
            c.complaint_id,
            c.portal_name,
            c.category.value,
            c.department,
            c.date_lodged or "",
            summary["dueDate"] or "",
            summary["displayStatus"],
            "" if summary["daysPending"] is None else str(summary["daysPending"]),
            "" if summary["daysUntilDue"] is None else str(summary["daysUntilDue"]),
        ])

    table = Table(rows, colWidths=PDF_COLUMN_WIDTHS, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2563eb")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
        ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
        ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))

    elements = [
        Paragraph("Complaint Tracking Export", styles["Heading1"]),
        Paragraph(f"Generated: {generated_at:%d %b %Y, %H:%M}", styles["Normal"]),
        Spacer(1, 12),
        table,
    ]
    doc.build(elements)
    return buffer.getvalue()
