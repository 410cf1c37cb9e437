from .enums import BreakEvenMode, ConclusionTab, FormLetter, ReportStatus
from .report import (
    InterventionBreakdown,
    LineItem,
    OrganizationInfo,
    ROIReportData,
    SharedFields,
)
from .variants import ActualROI, MaxCostBreakEven, MinEffectBreakEven, ROIVariant

__all__ = [
    "ActualROI",
    "BreakEvenMode",
    "ConclusionTab",
    "FormLetter",
    "InterventionBreakdown",
    "LineItem",
    "MaxCostBreakEven",
    "MinEffectBreakEven",
    "OrganizationInfo",
    "ROIReportData",
    "ROIVariant",
    "ReportStatus",
    "SharedFields",
]
