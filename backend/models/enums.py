from enum import Enum


class FormLetter(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    H = "H"
    I = "I"  # noqa: E741
    J = "J"


class BreakEvenMode(str, Enum):
    ACTUAL = "actual"
    MAX_COST_BREAK_EVEN = "max_cost_break_even"
    MIN_EFFECT_BREAK_EVEN = "min_effect_break_even"


class ReportStatus(str, Enum):
    READY = "ready"
    NO_DATA = "no_data"
    STORE_ERROR = "store_error"
    FAILED = "failed"


class ConclusionTab(str, Enum):
    ROI = "roi"
    MAX_COST = "max-kostnad"
    MIN_EFFECT = "min-effekt"
