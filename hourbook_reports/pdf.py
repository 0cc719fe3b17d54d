from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    HRFlowable,
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from hourbook.config import get_settings
from hourbook.logging import get_logger

from .compiler import ReportDocument, ReportRow, format_hours, format_money

logger = get_logger(__name__)

COLUMN_WIDTHS = [50 * mm, 50 * mm, 22 * mm, 25 * mm, 23 * mm]
CELL_LIMIT = 40


def _clip(value: str) -> str:
    return value if len(value) <= CELL_LIMIT else value[: CELL_LIMIT - 1] + "…"


def _header(document: ReportDocument, styles) -> Table:
    right_style = ParagraphStyle("report_company", parent=styles["Normal"], fontSize=8, alignment=TA_RIGHT)
    company = Paragraph(
        "<br/>".join([f"<b>{escape(document.header.name)}</b>", *(escape(line) for line in document.header.lines)]),
        right_style,
    )
    logo: Any = ""
    if document.header.logo_path and Path(document.header.logo_path).exists():
        logo = Image(document.header.logo_path, width=30 * mm, height=20 * mm, kind="proportional")
    return Table([[logo, company]], colWidths=[85 * mm, 85 * mm])


def _items_table(rows: List[ReportRow], document: ReportDocument, with_total: bool) -> Table:
    data: List[List[Any]] = [
        ["Customer", "Project", "Hours", f"Rate ({document.currency}/h)", f"Amount ({document.currency})"]
    ]
    for row in rows:
        data.append([_clip(row.customer), _clip(row.project), f"{row.hours:.2f}", f"{row.rate:.2f}", f"{row.amount:.2f}"])
    if with_total:
        data.append(
            [
                "",
                "Total:",
                format_hours(document.summary.total_hours),
                "",
                format_money(document.summary.total_amount, document.currency),
            ]
        )

    table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1)
    commands = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
        ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]
    if with_total:
        commands += [
            ("LINEABOVE", (0, -1), (-1, -1), 0.75, colors.black),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ]
    table.setStyle(TableStyle(commands))
    return table


def _signature(document: ReportDocument, styles) -> List[Any]:
    label_style = ParagraphStyle("report_sig_label", parent=styles["Normal"], fontSize=8)
    story: List[Any] = [Paragraph(document.signature.statement, styles["Normal"]), Spacer(1, 14 * mm)]
    for line in document.signature.lines:
        table = Table(
            [["", "", ""], [Paragraph(line.place_label, label_style), "", Paragraph(line.signer_label, label_style)]],
            colWidths=[70 * mm, 30 * mm, 70 * mm],
        )
        table.setStyle(
            TableStyle(
                [
                    ("LINEABOVE", (0, 1), (0, 1), 0.5, colors.black),
                    ("LINEABOVE", (2, 1), (2, 1), 0.5, colors.black),
                ]
            )
        )
        story.extend([table, Spacer(1, 10 * mm)])
    return story


def build_story(document: ReportDocument) -> List[Any]:
    styles = getSampleStyleSheet()
    centered = ParagraphStyle("report_period", parent=styles["Normal"], fontSize=12, alignment=TA_CENTER)
    body_style = ParagraphStyle("report_body", parent=styles["Normal"], fontSize=10)

    story: List[Any] = [_header(document, styles), Spacer(1, 8 * mm)]
    story.append(Paragraph(escape(document.title), styles["Title"]))
    story.append(Paragraph(escape(document.period_label), centered))
    story.append(Spacer(1, 8 * mm))

    if document.customer is not None:
        lines = [f"<b>Customer:</b> {escape(document.customer.name)}"]
        if document.customer.contact_person:
            lines.append(f"Contact: {escape(document.customer.contact_person)}")
        if document.customer.email:
            lines.append(f"Email: {escape(document.customer.email)}")
        story.append(Paragraph("<br/>".join(lines), body_style))
        story.append(Spacer(1, 5 * mm))

    summary = Table(
        [
            [f"Total hours: {format_hours(document.summary.total_hours)}"],
            [f"Total amount: {format_money(document.summary.total_amount, document.currency)}"],
        ],
        colWidths=[170 * mm],
    )
    summary.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    story.extend([summary, Spacer(1, 8 * mm)])

    last = len(document.pages) - 1
    for index, page_rows in enumerate(document.pages):
        if index:
            story.append(PageBreak())
        story.append(_items_table(list(page_rows), document, with_total=index == last))

    story.extend([Spacer(1, 12 * mm), HRFlowable(width="100%", color=colors.lightgrey), Spacer(1, 6 * mm)])
    story.extend(_signature(document, styles))
    return story


def _footer_drawer(document: ReportDocument):
    def draw(canvas, doc) -> None:
        if not document.footer.tax_line:
            return
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.grey)
        canvas.drawCentredString(A4[0] / 2, 12 * mm, document.footer.tax_line)
        canvas.restoreState()

    return draw


def _build(document: ReportDocument, target, invariant: Optional[bool]) -> None:
    if invariant is None:
        invariant = get_settings().pdf_invariant
    doc = SimpleDocTemplate(
        target,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title=document.title,
        invariant=int(invariant),
    )
    footer = _footer_drawer(document)
    doc.build(build_story(document), onFirstPage=footer, onLaterPages=footer)


def render_report_pdf(document: ReportDocument, output_path: Path, invariant: Optional[bool] = None) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _build(document, str(output_path), invariant)
    logger.info("report_rendered", path=str(output_path), pages=len(document.pages))
    return output_path


def render_report_bytes(document: ReportDocument, invariant: Optional[bool] = None) -> bytes:
    buffer = BytesIO()
    _build(document, buffer, invariant)
    return buffer.getvalue()
