"""PDF renderer -- draws the ROI report onto A4 pages with a reportlab canvas.

Layout:
  - Cover page with the organization, period and one summary card per
    ROI variant, plus the key figures and a cost/benefit bar chart
  - Detail sections (current situation, causes, goals, target group,
    purpose, intervention and costs, plan, benefit areas, break-even
    alternatives, recommendation)
  - Conclusion

Every numeric field is used directly for bar heights and arc extents;
ROIReportData guarantees they are finite numbers.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas as rl_canvas

from backend.models.report import OrganizationInfo, ROIReportData
from backend.services.shared_fields import load_organization_info_from_form_d
from backend.store.base import FormStore, StoreError

from .conclusion import roi_conclusion
from .formatting import format_currency, format_months, format_percent

logger = logging.getLogger(__name__)

PAGE_W, PAGE_H = A4
MARGIN = 15 * mm
CONTENT_W = PAGE_W - 2 * MARGIN
TOP_Y = PAGE_H - 30 * mm
BOTTOM_Y = 20 * mm

PRIMARY = (0.0, 0.2, 0.4)
ACCENT = (0.0, 0.4, 0.8)
GREEN = (0.0, 0.6, 0.2)
PURPLE = (0.4, 0.0, 0.8)
GREY = (0.86, 0.86, 0.86)
TEXT = (0.16, 0.16, 0.16)
MUTED = (0.47, 0.47, 0.47)

REPORT_TITLE = "ROI-rapport"
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


@dataclass(frozen=True)
class PdfExport:
    filename: str
    content: bytes


def _pdf_text(text: str) -> str:
    # Helvetica has no U+2212; fall back to a hyphen-minus.
    return text.replace("\u2212", "-")


def build_pdf_filename(organization_name: str, generated_on: Optional[date] = None) -> str:
    """``ROI-rapport-{organization}-{DD-MM-YYYY}.pdf``"""
    generated_on = generated_on or date.today()
    name = _UNSAFE_FILENAME_CHARS.sub("-", organization_name.strip()).strip("-") or "organisation"
    return f"{REPORT_TITLE}-{name}-{generated_on.strftime('%d-%m-%Y')}.pdf"


def apply_organization_info(
    data: ROIReportData, info: Optional[OrganizationInfo]
) -> ROIReportData:
    """Overlay freshly read Form D identity on a report snapshot."""
    if info is None or info.is_empty:
        return data
    shared = replace(
        data.shared_fields,
        organization_name=info.organization_name or data.shared_fields.organization_name,
        contact_person=info.contact_person or data.shared_fields.contact_person,
        start_date=info.start_date or data.shared_fields.start_date,
        end_date=info.end_date or data.shared_fields.end_date,
    )
    shared = replace(shared, time_period=shared.date_range)
    time_period = data.time_period
    if info.start_date and info.end_date:
        time_period = shared.date_range
    return replace(data, shared_fields=shared, time_period=time_period)


class _PageWriter:
    """Cursor-based drawing helpers with automatic page breaks."""

    def __init__(self, c: rl_canvas.Canvas, organization_name: str):
        self.c = c
        self.organization_name = organization_name
        self.page = 1
        self.y = TOP_Y
        self._decorate()

    # ── page furniture ────────────────────────────────────────────────────

    def _decorate(self) -> None:
        c = self.c
        c.setFillColorRGB(*PRIMARY)
        c.rect(0, PAGE_H - 18 * mm, PAGE_W, 18 * mm, fill=1, stroke=0)
        c.setFillColorRGB(1, 1, 1)
        c.setFont("Helvetica-Bold", 13)
        c.drawString(MARGIN, PAGE_H - 11 * mm, _pdf_text(REPORT_TITLE))
        c.setFont("Helvetica", 9)
        c.drawRightString(PAGE_W - MARGIN, PAGE_H - 11 * mm, _pdf_text(self.organization_name))

        c.setStrokeColorRGB(*MUTED)
        c.line(MARGIN, 14 * mm, PAGE_W - MARGIN, 14 * mm)
        c.setFillColorRGB(*MUTED)
        c.setFont("Helvetica", 7)
        c.drawString(MARGIN, 10 * mm, "ROI-analys för psykosocial arbetsmiljö")
        c.drawRightString(PAGE_W - MARGIN, 10 * mm, f"Sida {self.page}")
        c.setFillColorRGB(*TEXT)

    def new_page(self) -> None:
        self.c.showPage()
        self.page += 1
        self.y = TOP_Y
        self._decorate()

    def ensure_space(self, height: float) -> None:
        if self.y - height < BOTTOM_Y:
            self.new_page()

    # ── text ──────────────────────────────────────────────────────────────

    def heading(self, text: str, size: int = 14, color: tuple = PRIMARY) -> None:
        self.ensure_space(size + 14)
        self.y -= size + 2
        self.c.setFillColorRGB(*color)
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(MARGIN, self.y, _pdf_text(text))
        self.y -= 4
        self.c.setStrokeColorRGB(*ACCENT)
        self.c.line(MARGIN, self.y, PAGE_W - MARGIN, self.y)
        self.y -= 8
        self.c.setFillColorRGB(*TEXT)

    def paragraph(self, text: str, size: float = 10, empty_text: str = "Ingen information angiven.") -> None:
        text = text.strip() or empty_text
        leading = size * 1.4
        self.c.setFont("Helvetica", size)
        self.c.setFillColorRGB(*TEXT)
        for block in text.split("\n"):
            for line in simpleSplit(_pdf_text(block), "Helvetica", size, CONTENT_W) or [""]:
                self.ensure_space(leading)
                self.c.setFont("Helvetica", size)
                self.y -= leading
                self.c.drawString(MARGIN, self.y, line)
        self.y -= 6

    def bullet_list(self, items: Sequence[str], numbered: bool = False) -> None:
        size, leading = 10, 14
        for index, item in enumerate(items, start=1):
            marker = f"{index}." if numbered else "\u2022"
            lines = simpleSplit(_pdf_text(item), "Helvetica", size, CONTENT_W - 8 * mm)
            for line_no, line in enumerate(lines):
                self.ensure_space(leading)
                self.y -= leading
                self.c.setFont("Helvetica", size)
                if line_no == 0:
                    self.c.drawString(MARGIN + 2 * mm, self.y, marker)
                self.c.drawString(MARGIN + 8 * mm, self.y, line)
        self.y -= 6

    def key_value_table(self, rows: Sequence[tuple[str, str]], header: tuple[str, str] = ("Beskrivning", "Värde"), color: tuple = ACCENT) -> None:
        row_h = 7 * mm
        self.ensure_space(row_h * 2)
        self._table_row(header, row_h, fill=color, bold=True, text_color=(1, 1, 1))
        for index, row in enumerate(rows):
            self.ensure_space(row_h)
            fill = (0.95, 0.95, 0.95) if index % 2 == 0 else None
            self._table_row(row, row_h, fill=fill)
        self.y -= 6

    def _table_row(self, row: tuple[str, str], row_h: float, fill=None, bold: bool = False, text_color: tuple = TEXT) -> None:
        c = self.c
        self.y -= row_h
        if fill is not None:
            c.setFillColorRGB(*fill)
            c.rect(MARGIN, self.y, CONTENT_W, row_h, fill=1, stroke=0)
        c.setFillColorRGB(*text_color)
        font = "Helvetica-Bold" if bold else "Helvetica"
        c.setFont(font, 9)
        label = simpleSplit(_pdf_text(row[0]), font, 9, CONTENT_W * 0.6)[:1] or [""]
        c.drawString(MARGIN + 2 * mm, self.y + 2.3 * mm, label[0])
        c.drawRightString(PAGE_W - MARGIN - 2 * mm, self.y + 2.3 * mm, _pdf_text(row[1]))
        c.setFillColorRGB(*TEXT)

    # ── graphics ──────────────────────────────────────────────────────────

    def summary_cards(self, cards: Sequence[tuple[str, str, str, tuple]]) -> None:
        """Row of (title, value, caption, color) cards."""
        gap = 5 * mm
        card_w = (CONTENT_W - gap * (len(cards) - 1)) / len(cards)
        card_h = 30 * mm
        self.ensure_space(card_h + 6)
        top = self.y
        for index, (title, value, caption, color) in enumerate(cards):
            x = MARGIN + index * (card_w + gap)
            c = self.c
            c.setFillColorRGB(0.97, 0.97, 0.97)
            c.setStrokeColorRGB(*color)
            c.roundRect(x, top - card_h, card_w, card_h, 3 * mm, stroke=1, fill=1)
            c.setFillColorRGB(*color)
            c.rect(x, top - 3 * mm, card_w, 3 * mm, fill=1, stroke=0)
            c.setFont("Helvetica-Bold", 8.5)
            c.setFillColorRGB(*TEXT)
            for n, line in enumerate(simpleSplit(_pdf_text(title), "Helvetica-Bold", 8.5, card_w - 6 * mm)[:2]):
                c.drawString(x + 3 * mm, top - 8 * mm - n * 10, line)
            c.setFont("Helvetica-Bold", 15)
            c.setFillColorRGB(*color)
            c.drawString(x + 3 * mm, top - 20 * mm, _pdf_text(value))
            c.setFont("Helvetica", 7.5)
            c.setFillColorRGB(*MUTED)
            c.drawString(x + 3 * mm, top - 26 * mm, _pdf_text(caption))
        self.c.setFillColorRGB(*TEXT)
        self.y = top - card_h - 8

    def bar_chart(self, bars: Sequence[tuple[str, float, tuple]], height: float = 45 * mm) -> None:
        """Vertical bars scaled to the largest value."""
        self.ensure_space(height + 14 * mm)
        c = self.c
        base_y = self.y - height - 4 * mm
        max_value = max((value for _, value, _ in bars), default=0.0)
        bar_w = 30 * mm
        gap = 20 * mm
        x = MARGIN + 10 * mm
        c.setStrokeColorRGB(*MUTED)
        c.line(MARGIN, base_y, PAGE_W - MARGIN, base_y)
        for label, value, color in bars:
            bar_h = (max(value, 0.0) / max_value) * height if max_value > 0 else 0.0
            c.setFillColorRGB(*color)
            c.rect(x, base_y, bar_w, bar_h, fill=1, stroke=0)
            c.setFillColorRGB(*TEXT)
            c.setFont("Helvetica-Bold", 8.5)
            c.drawCentredString(x + bar_w / 2, base_y + bar_h + 2 * mm, _pdf_text(format_currency(value)))
            c.setFont("Helvetica", 8.5)
            c.drawCentredString(x + bar_w / 2, base_y - 5 * mm, _pdf_text(label))
            x += bar_w + gap
        self.y = base_y - 10 * mm

    def stat_bar(self, label: str, value: float, max_value: float, value_text: str, color: tuple = ACCENT) -> None:
        """Horizontal progress bar with the label above it."""
        self.ensure_space(14 * mm)
        c = self.c
        self.y -= 5 * mm
        c.setFont("Helvetica", 9)
        c.setFillColorRGB(*TEXT)
        c.drawString(MARGIN, self.y, _pdf_text(label))
        c.setFont("Helvetica-Bold", 9)
        c.drawRightString(PAGE_W - MARGIN, self.y, _pdf_text(value_text))
        self.y -= 5 * mm
        c.setFillColorRGB(*GREY)
        c.roundRect(MARGIN, self.y, CONTENT_W, 3 * mm, 1.5 * mm, stroke=0, fill=1)
        fraction = min(1.0, max(0.0, value / max_value)) if max_value > 0 else 0.0
        if fraction > 0:
            c.setFillColorRGB(*color)
            c.roundRect(MARGIN, self.y, CONTENT_W * fraction, 3 * mm, 1.5 * mm, stroke=0, fill=1)
        c.setFillColorRGB(*TEXT)
        self.y -= 4 * mm

    def donut(self, fraction: float, center_text: str, caption: str, color: tuple) -> None:
        radius = 16 * mm
        inner = 10 * mm
        self.ensure_space(2 * radius + 14 * mm)
        c = self.c
        cx = MARGIN + radius + 4 * mm
        cy = self.y - radius - 4 * mm
        c.setFillColorRGB(*GREY)
        c.circle(cx, cy, radius, stroke=0, fill=1)
        fraction = min(1.0, max(0.0, fraction))
        if fraction >= 1.0:
            c.setFillColorRGB(*color)
            c.circle(cx, cy, radius, stroke=0, fill=1)
        elif fraction > 0:
            c.setFillColorRGB(*color)
            # Clockwise from twelve o'clock.
            c.wedge(cx - radius, cy - radius, cx + radius, cy + radius, 90, -360 * fraction, stroke=0, fill=1)
        c.setFillColorRGB(1, 1, 1)
        c.circle(cx, cy, inner, stroke=0, fill=1)
        c.setFillColorRGB(*TEXT)
        c.setFont("Helvetica-Bold", 10)
        c.drawCentredString(cx, cy - 3.5, _pdf_text(center_text))
        c.setFont("Helvetica", 9)
        for n, line in enumerate(simpleSplit(_pdf_text(caption), "Helvetica", 9, CONTENT_W - 2 * radius - 16 * mm)):
            c.drawString(cx + radius + 8 * mm, cy + 6 - n * 12, line)
        self.y = cy - radius - 8 * mm


def _draw_cover(w: _PageWriter, data: ROIReportData, generated_on: date) -> None:
    c = w.c
    shared = data.shared_fields
    w.y -= 6 * mm
    c.setFillColorRGB(*PRIMARY)
    c.setFont("Helvetica-Bold", 22)
    c.drawString(MARGIN, w.y, _pdf_text(shared.organization_name or "Organisation"))
    w.y -= 9 * mm
    c.setFont("Helvetica", 11)
    c.setFillColorRGB(*MUTED)
    if shared.contact_person:
        c.drawString(MARGIN, w.y, _pdf_text(f"Kontaktperson: {shared.contact_person}"))
        w.y -= 6 * mm
    period = data.time_period or shared.date_range
    if period:
        c.drawString(MARGIN, w.y, _pdf_text(f"Period: {period}"))
        w.y -= 6 * mm
    c.setFont("Helvetica", 9)
    c.drawString(MARGIN, w.y, f"Rapport genererad: {generated_on.isoformat()}")
    w.y -= 10 * mm

    w.heading("Exekutiv sammanfattning")
    min_effect = (
        format_percent(data.min_effect_for_break_even_alt3)
        if not data.is_missing("min_effect_for_break_even_alt3")
        else "N/A"
    )
    w.summary_cards(
        [
            ("ROI", format_percent(data.roi), f"Investering {format_currency(data.total_cost, abbreviated=True)}", ACCENT),
            ("Maxkostnad för break-even", format_currency(data.total_cost_alt2, abbreviated=True), "ROI = 0%", GREEN),
            ("Minsta effekt för break-even", min_effect, "Minskad andel med hög stress", PURPLE),
        ]
    )

    w.heading("Nyckeltal", size=12)
    w.key_value_table(
        [
            ("Total kostnad", format_currency(data.total_cost)),
            ("Total nytta", format_currency(data.total_benefit)),
            ("ROI", format_percent(data.roi)),
            ("Återbetalningstid", format_months(data.payback_period) if data.payback_period else "N/A"),
        ]
    )
    w.bar_chart(
        [
            ("Kostnad", data.total_cost, ACCENT),
            ("Nytta", data.total_benefit, GREEN),
        ]
    )


def _draw_details(w: _PageWriter, data: ROIReportData) -> None:
    w.heading("Nuläge")
    w.paragraph(data.current_situation, empty_text="Ingen information om nuläget.")
    w.stat_bar(
        "Andel av personalen med hög stressnivå",
        data.stress_percentage,
        100,
        format_percent(data.stress_percentage),
    )
    largest_cost = max(data.production_loss_value, data.sick_leave_value)
    w.stat_bar(
        "Värde av produktionsbortfall",
        data.production_loss_value,
        largest_cost,
        f"{format_currency(data.production_loss_value)}/år",
        color=PURPLE,
    )
    w.stat_bar(
        "Kostnad för sjukfrånvaro",
        data.sick_leave_value,
        largest_cost,
        f"{format_currency(data.sick_leave_value)}/år",
        color=PURPLE,
    )
    w.y -= 4 * mm

    w.heading("Orsaksanalys och risker")
    w.paragraph(data.cause_analysis)
    w.heading("Mål")
    w.paragraph(data.goals_description, empty_text="Ingen information om målsättningen.")
    w.heading("Målgrupp")
    w.paragraph(data.target_group)
    w.heading("Syfte med insatsen")
    w.paragraph(data.intervention_purpose)

    w.heading("Intervention")
    w.paragraph(data.intervention_description)
    if data.interventions_array:
        w.bullet_list(data.interventions_array)
    if data.intervention_costs:
        w.key_value_table(
            [(item.description, format_currency(item.amount)) for item in data.intervention_costs],
            header=("Kostnad", "Belopp"),
        )
    if data.intervention_breakdown:
        w.key_value_table(
            [
                (
                    f"{item.name} (extern {format_currency(item.external_cost)}, "
                    f"intern {format_currency(item.internal_cost)})",
                    format_currency(item.total_cost),
                )
                for item in data.intervention_breakdown
            ],
            header=("Insats", "Total kostnad"),
        )

    w.heading("Genomförandeplan")
    if data.implementation_plan_array:
        w.bullet_list(data.implementation_plan_array, numbered=True)
    else:
        w.paragraph(data.implementation_plan)

    if data.benefit_areas:
        w.heading("Nyttoområden")
        w.key_value_table(
            [(item.description, format_currency(item.amount)) for item in data.benefit_areas],
            header=("Nytta", "Belopp"),
            color=GREEN,
        )

    w.heading("Maximal kostnad för break-even")
    w.key_value_table(
        [
            ("Max kostnad", format_currency(data.total_cost_alt2)),
            ("Total nytta", format_currency(data.total_benefit_alt2)),
            ("Kostnad för psykisk ohälsa", format_currency(data.total_mental_health_cost_alt2)),
            ("Antagen minskning av stressnivå", format_percent(data.reduced_stress_percentage_alt2)),
            ("ROI", format_percent(data.roi_alt2)),
        ],
        color=GREEN,
    )

    w.heading("Minsta effekt för break-even")
    w.key_value_table(
        [
            ("Total kostnad", format_currency(data.total_cost_alt3)),
            ("Kostnad för psykisk ohälsa", format_currency(data.total_mental_health_cost_alt3)),
            ("ROI", format_percent(data.roi_alt3)),
        ],
        color=PURPLE,
    )
    w.donut(
        data.min_effect_for_break_even_alt3 / 100,
        format_percent(data.min_effect_for_break_even_alt3),
        "Stressnivån måste minska med minst denna andel för att investeringen ska nå break-even.",
        PURPLE,
    )

    if data.recommendation.strip():
        w.heading("Rekommendation")
        w.paragraph(data.recommendation)


def render_roi_pdf(
    data: ROIReportData,
    fresh_org_info: Optional[OrganizationInfo] = None,
    generated_on: Optional[date] = None,
) -> bytes:
    """Draw the full report and return the PDF bytes."""
    generated_on = generated_on or date.today()
    data = apply_organization_info(data, fresh_org_info)
    buffer = io.BytesIO()
    c = rl_canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"{REPORT_TITLE} {data.shared_fields.organization_name}".strip())
    c.setAuthor(data.shared_fields.contact_person)
    try:
        writer = _PageWriter(c, data.shared_fields.organization_name)
        _draw_cover(writer, data, generated_on)
        writer.new_page()
        _draw_details(writer, data)
        writer.new_page()
        writer.heading("Slutsats")
        writer.paragraph(roi_conclusion(data))
    finally:
        c.save()
    return buffer.getvalue()


async def export_roi_pdf(
    data: ROIReportData,
    store: Optional[FormStore] = None,
    user_id: Optional[str] = None,
    project_id: Optional[str] = None,
    generated_on: Optional[date] = None,
) -> PdfExport:
    """Render the report, refreshing the organization identity from Form D first."""
    generated_on = generated_on or date.today()
    if store is not None and user_id:
        try:
            data = apply_organization_info(
                data, await load_organization_info_from_form_d(store, user_id, project_id)
            )
        except StoreError as e:
            logger.warning(f"Could not refresh Form D for PDF export, using snapshot: {e}")

    content = render_roi_pdf(data, generated_on=generated_on)
    filename = build_pdf_filename(data.shared_fields.organization_name, generated_on)
    logger.info(f"Rendered {filename} ({len(content)} bytes)")
    return PdfExport(filename=filename, content=content)
