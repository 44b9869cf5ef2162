from io import BytesIO
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from models import BackgroundCheckReport
from services.presentation import NO_SUMMARY, ReportSection, build_sections, risk_badge_color, risk_label
from utils.helpers import load_app_settings

REPORT_TITLE = "AI Background Check Report"

TEXT = colors.HexColor("#1F2937")
SUB = colors.HexColor("#4B5563")
BORDER = colors.HexColor("#E2E8F0")
PANEL = colors.HexColor("#F1F5F9")
BRAND = colors.HexColor("#2563EB")
COVER = colors.HexColor("#32429B")

MARGIN = 12 * mm
HEADER_BAND = 22 * mm


class NumberedCanvas(canvas.Canvas):
    """Defers page output until the total page count is known, then stamps 'Page N of M'."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        width, _ = self._pagesize
        self.saveState()
        self.setStrokeColor(BORDER)
        self.setLineWidth(0.5)
        self.line(10 * mm, 12 * mm, width - 10 * mm, 12 * mm)
        self.setFont("Helvetica", 9)
        self.setFillColor(SUB)
        self.drawRightString(width - 10 * mm, 6 * mm, f"Page {self._pageNumber} of {total}")
        self.restoreState()


def _styles():
    base = getSampleStyleSheet()
    return {
        "cover_title": ParagraphStyle("CoverTitle", parent=base["Title"], fontSize=24, leading=30,
                                      textColor=COVER, alignment=TA_CENTER),
        "cover_line": ParagraphStyle("CoverLine", parent=base["Normal"], fontSize=14, leading=20,
                                     textColor=TEXT, alignment=TA_CENTER),
        "cover_date": ParagraphStyle("CoverDate", parent=base["Normal"], fontSize=10, leading=14,
                                     textColor=TEXT, alignment=TA_CENTER),
        "name": ParagraphStyle("SubjectName", parent=base["Normal"], fontName="Helvetica-Bold",
                               fontSize=16, leading=20, textColor=TEXT),
        "meta": ParagraphStyle("SubjectMeta", parent=base["Normal"], fontSize=10, leading=14, textColor=SUB),
        "badge": ParagraphStyle("Badge", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=10,
                                leading=12, alignment=TA_CENTER),
        "heading": ParagraphStyle("SectionHeading", parent=base["Normal"], fontName="Helvetica-Bold",
                                  fontSize=12, leading=16, textColor=TEXT),
        "primary": ParagraphStyle("RowPrimary", parent=base["Normal"], fontName="Helvetica-Bold",
                                  fontSize=11, leading=15, textColor=TEXT),
        "row_meta": ParagraphStyle("RowMeta", parent=base["Normal"], fontSize=10, leading=14, textColor=SUB),
        "body": ParagraphStyle("RowBody", parent=base["Normal"], fontSize=11, leading=15, textColor=TEXT),
    }


def _text(value: Optional[str]) -> str:
    return escape(value or "")


def _link(label: str, url: str) -> str:
    href = escape(url, {'"': "&quot;"})
    return f'<a href="{href}" color="blue">{_text(label)}</a>'


def _boxed(rows: List[list], width: float, header_rows: int = 1) -> Table:
    table = Table([[r] for r in rows], colWidths=[width], repeatRows=header_rows)
    table.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 0.75, BORDER),
        ("LEFTPADDING", (0, 0), (-1, -1), 6 * mm),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6 * mm),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("TOPPADDING", (0, 0), (-1, 0), 6),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 6 * mm),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _section_table(section: ReportSection, styles, width: float) -> Table:
    rows: List[list] = [[Paragraph(_text(section.title), styles["heading"])]]
    for row in section.rows:
        primary = _link(row.primary, row.link) if row.link else _text(row.primary)
        cell = [Paragraph(primary, styles["primary"])]
        if row.meta:
            cell.append(Paragraph(_text(row.meta), styles["row_meta"]))
        if row.secondary:
            cell.append(Paragraph(_text(row.secondary), styles["body"]))
        rows.append(cell)
    return _boxed(rows, width)


def _subject_block(report: BackgroundCheckReport, styles, width: float) -> Table:
    prospect = report.prospect
    place = ", ".join(p for p in [prospect.city, prospect.state] if p)
    generated = report.generated_at.strftime("%Y-%m-%d")
    left = [Paragraph(_text(prospect.full_name or "Unknown Subject"), styles["name"])]
    if place:
        left.append(Paragraph(_text(place), styles["meta"]))
    left.append(Paragraph(_text(f"Report ID: {report.report_id} • Generated: {generated}"), styles["meta"]))

    badge = risk_badge_color(report.risk.level)
    badge_style = ParagraphStyle("BadgeColored", parent=styles["badge"], textColor=colors.HexColor(badge["text"]))
    badge_cell = Table([[Paragraph(risk_label(report.risk.level), badge_style)]], colWidths=[32 * mm])
    badge_cell.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor(badge["fill"])),
        ("ROUNDEDCORNERS", [6, 6, 6, 6]),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))

    block = Table([[left, badge_cell]], colWidths=[width - 40 * mm, 40 * mm])
    block.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PANEL),
        ("ROUNDEDCORNERS", [8, 8, 8, 8]),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
        ("LEFTPADDING", (0, 0), (0, 0), 6 * mm),
        ("TOPPADDING", (0, 0), (-1, -1), 4 * mm),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4 * mm),
    ]))
    return block


def _draw_header_band(canv, doc):
    width, height = doc.pagesize
    canv.saveState()
    canv.setFillColor(BRAND)
    canv.rect(0, height - HEADER_BAND, width, HEADER_BAND, fill=1, stroke=0)
    canv.restoreState()


def _noop(canv, doc):
    pass


def build_story(report: BackgroundCheckReport, width: float) -> list:
    styles = _styles()
    subject = report.prospect.full_name or "Unknown Subject"
    story: list = [
        Spacer(1, 70 * mm),
        Paragraph(REPORT_TITLE, styles["cover_title"]),
        Paragraph(_text(subject), styles["cover_line"]),
        Paragraph(f"Generated on {report.generated_at.strftime('%B %d, %Y')}", styles["cover_date"]),
        PageBreak(),
        _subject_block(report, styles, width),
        Spacer(1, 8 * mm),
    ]

    summary = report.person.short_summary.strip() or NO_SUMMARY
    story.append(_boxed([
        [Paragraph("Executive Summary", styles["heading"])],
        [Paragraph(_text(summary), styles["body"])],
    ], width))
    story.append(Spacer(1, 6 * mm))

    for section in build_sections(report.person, now=report.generated_at):
        story.append(_section_table(section, styles, width))
        story.append(Spacer(1, 6 * mm))
    return story


def generate_report_pdf(report: BackgroundCheckReport, app_settings: Optional[dict] = None) -> bytes:
    """Render the report to PDF bytes (cover page, subject block, summary, sections)."""
    app_settings = app_settings or load_app_settings()
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=HEADER_BAND + 6 * mm,
        bottomMargin=18 * mm,
        title=f"{REPORT_TITLE} - {report.prospect.full_name}",
        author=app_settings.get("brand_name", ""),
        subject=report.report_id,
    )
    width = A4[0] - 2 * MARGIN
    doc.build(
        build_story(report, width),
        onFirstPage=_noop,
        onLaterPages=_draw_header_band,
        canvasmaker=NumberedCanvas,
    )
    return buf.getvalue()


def save_report_pdf(report: BackgroundCheckReport, file_path: str) -> str:
    with open(file_path, "wb") as f:
        f.write(generate_report_pdf(report))
    return file_path


def report_file_name(report: BackgroundCheckReport, epoch_ms: int) -> str:
    return f"background-report-{report.report_id}-{epoch_ms}.pdf"


def download_file_name(report: BackgroundCheckReport) -> str:
    return f"background-report-{report.prospect.first_name}-{report.prospect.last_name}.pdf"
