"""Narrative conclusions for the executive summary tabs."""

from __future__ import annotations

from typing import Optional

from backend.kpi_library.formulas import calc_value_per_invested_krona
from backend.models.enums import ConclusionTab
from backend.models.report import ROIReportData

from .formatting import format_currency, format_months, format_number, format_percent

NO_DATA_TEXT = (
    "Baserat på tillgänglig data kan vi inte fastställa en ROI-analys. "
    "Vänligen fyll i både kostnader och fördelar för att generera en slutsats."
)

INCOMPLETE_DATA_TEXT = (
    "Baserat på tillgänglig data kan vi inte fastställa en fullständig ROI-analys. "
    "Vänligen fyll i både kostnader och fördelar för att generera en slutsats."
)

# (lower bound in percent, wording), checked top-down.
ROI_STRENGTH_BANDS: tuple[tuple[float, str], ...] = (
    (200, "extremt stark"),
    (100, "mycket stark"),
    (50, "stark"),
    (20, "god"),
)


def roi_strength(roi: float) -> str:
    for lower_bound, wording in ROI_STRENGTH_BANDS:
        if roi >= lower_bound:
            return wording
    return "positiv"


def payback_analysis(payback_period: float) -> str:
    if not payback_period:
        return ""
    if payback_period < 3:
        return (
            "Återbetalningstiden är mycket kort, vilket gör detta till en "
            "investering med låg risk."
        )
    if payback_period < 12:
        return (
            "Återbetalningstiden är rimlig och inom ett år, vilket är lovande "
            "för denna typ av intervention."
        )
    return (
        f"Återbetalningstiden på {format_months(payback_period)} är relativt lång, "
        "men investeringen ger ändå ett positivt resultat över tid."
    )


def roi_conclusion(data: Optional[ROIReportData]) -> str:
    """Conclusion for the actual-ROI tab."""
    if data is None:
        return NO_DATA_TEXT
    if data.total_cost <= 0 or data.total_benefit <= 0:
        return INCOMPLETE_DATA_TEXT

    cost_text = format_currency(data.total_cost)
    benefit_text = format_currency(data.total_benefit)

    if data.roi > 0:
        lines = [
            f"Analysen visar en {roi_strength(data.roi)} avkastning på "
            f"{format_percent(data.roi)} för investeringen på {cost_text}.",
            "Det innebär att varje investerad krona genererar "
            f"{format_number(calc_value_per_invested_krona(data.roi), 2)} kronor i värde.",
            f"Det totala värdet av interventionen uppskattas till {benefit_text}.",
        ]
        analysis = payback_analysis(data.payback_period)
        if analysis:
            lines.append(analysis)
        lines.append(
            "Baserat på denna analys rekommenderas investeringen som en "
            "ekonomiskt fördelaktig åtgärd."
        )
        return "\n".join(lines)

    return "\n".join(
        [
            f"ROI-beräkningen visar att investeringen på {cost_text} inte ger en "
            f"positiv ekonomisk avkastning jämfört med det förväntade värdet på {benefit_text}.",
            "Detta betyder dock inte nödvändigtvis att interventionen saknar värde, "
            "då vissa fördelar kan vara svåra att kvantifiera ekonomiskt.",
            "Vi rekommenderar en fördjupad analys med fokus på både ekonomiska och "
            "icke-ekonomiska fördelar innan ett beslut fattas.",
        ]
    )


def max_cost_conclusion(data: ROIReportData) -> str:
    return (
        "Maximal kostnad för break-even\n\n"
        "Med den förväntade minskningen av stressnivån på "
        f"{format_percent(data.reduced_stress_percentage_alt2)} och den totala kostnaden "
        f"för psykisk ohälsa på {format_currency(data.total_mental_health_cost_alt2)} per år, "
        f"blir den maximala kostnaden för insatsen {format_currency(data.total_cost_alt2)}.\n\n"
        "Detta representerar den högsta investering som kan göras med given effekt för att "
        "fortfarande nå break-even (ROI = 0%). All investering över detta belopp skulle ge "
        "en negativ avkastning, medan en lägre investering skulle ge en positiv ROI."
    )


def min_effect_conclusion(data: ROIReportData) -> str:
    return (
        "Minsta effekt för break-even\n\n"
        f"Med nuvarande investering på {format_currency(data.total_cost_alt3)} och den totala "
        "kostnaden för psykisk ohälsa på "
        f"{format_currency(data.total_mental_health_cost_alt3)} per år, måste stressnivån "
        f"minska med minst {format_percent(data.min_effect_for_break_even_alt3)} för att nå "
        "break-even (ROI = 0%).\n\n"
        "Detta är den minimala effekt som krävs för att investeringen ska täcka sina "
        "kostnader. All effekt utöver detta procenttal skulle ge en positiv avkastning."
    )


def generate_conclusion(
    data: Optional[ROIReportData], tab: ConclusionTab = ConclusionTab.ROI
) -> str:
    """Conclusion text for one of the executive summary tabs."""
    if data is None:
        return NO_DATA_TEXT
    if tab == ConclusionTab.MAX_COST:
        return max_cost_conclusion(data)
    if tab == ConclusionTab.MIN_EFFECT:
        return min_effect_conclusion(data)
    return roi_conclusion(data)
