"""ROI result variants stored in Form J.

Each variant carries only the fields relevant to its break-even mode.
Values stay ``None`` when the form did not define them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .enums import BreakEvenMode


@dataclass(frozen=True)
class ActualROI:
    """Variant 1: ROI from the expected reduction in stress level."""

    total_cost: Optional[float] = None
    total_benefit: Optional[float] = None
    roi: Optional[float] = None
    total_mental_health_cost: Optional[float] = None
    reduced_stress_percentage: Optional[float] = None
    mode: BreakEvenMode = field(default=BreakEvenMode.ACTUAL, init=False)


@dataclass(frozen=True)
class MaxCostBreakEven:
    """Variant 2: the highest intervention cost that still breaks even.

    The benefit is variant 1's economic benefit; ROI is 0 by definition.
    """

    max_intervention_cost: Optional[float] = None
    economic_benefit: Optional[float] = None
    total_mental_health_cost: Optional[float] = None
    reduced_stress_percentage: Optional[float] = None
    mode: BreakEvenMode = field(default=BreakEvenMode.MAX_COST_BREAK_EVEN, init=False)

    @property
    def is_defined(self) -> bool:
        return self.max_intervention_cost is not None

    @property
    def total_benefit(self) -> Optional[float]:
        return self.economic_benefit if self.is_defined else None

    @property
    def roi(self) -> Optional[float]:
        return 0.0 if self.is_defined else None


@dataclass(frozen=True)
class MinEffectBreakEven:
    """Variant 3: the smallest stress reduction that covers the cost.

    Benefit equals cost and ROI is 0 by definition.
    """

    total_cost: Optional[float] = None
    total_mental_health_cost: Optional[float] = None
    min_effect_for_break_even: Optional[float] = None
    mode: BreakEvenMode = field(default=BreakEvenMode.MIN_EFFECT_BREAK_EVEN, init=False)

    @property
    def is_defined(self) -> bool:
        return self.min_effect_for_break_even is not None

    @property
    def total_benefit(self) -> Optional[float]:
        return self.total_cost if self.is_defined else None

    @property
    def roi(self) -> Optional[float]:
        return 0.0 if self.is_defined else None


ROIVariant = Union[ActualROI, MaxCostBreakEven, MinEffectBreakEven]
