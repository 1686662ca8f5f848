"""
Rule catalog - the compiled, immutable form of a scoring rules document.

A RuleCatalog is built once per load and never mutated. Operators and
metric keys are already resolved, so evaluators only walk tuples.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from opencredit.domain.metric_registry import MetricAccessor, resolve

DEFAULT_CATALOG_VERSION = "1.0.0-builtin-default"

DEFAULT_WARNING_BELOW = Decimal("40")
DEFAULT_STRENGTH_ABOVE = Decimal("85")


class Operator(Enum):
    GTE = ">="
    GT = ">"
    LTE = "<="
    LT = "<"
    EQ = "=="
    NE = "!="

    @classmethod
    def parse(cls, raw: str) -> "Operator":
        """Accept symbols and spelled names; anything else is a ValueError"""
        token = str(raw).strip().upper()
        operator = _OPERATOR_SPELLINGS.get(token)
        if operator is None:
            raise ValueError(f"Unsupported comparison operator: {raw!r}")
        return operator

    def apply(self, actual: Decimal, threshold: Decimal) -> bool:
        if self is Operator.GTE:
            return actual >= threshold
        if self is Operator.GT:
            return actual > threshold
        if self is Operator.LTE:
            return actual <= threshold
        if self is Operator.LT:
            return actual < threshold
        if self is Operator.EQ:
            return actual == threshold
        return actual != threshold


_OPERATOR_SPELLINGS = {
    ">=": Operator.GTE,
    "≥": Operator.GTE,
    "GREATER_THAN_OR_EQUAL": Operator.GTE,
    ">": Operator.GT,
    "GREATER_THAN": Operator.GT,
    "<=": Operator.LTE,
    "≤": Operator.LTE,
    "LESS_THAN_OR_EQUAL": Operator.LTE,
    "<": Operator.LT,
    "LESS_THAN": Operator.LT,
    "==": Operator.EQ,
    "=": Operator.EQ,
    "EQUAL": Operator.EQ,
    "!=": Operator.NE,
    "≠": Operator.NE,
    "NOT_EQUAL": Operator.NE,
}


class Calculation(Enum):
    """Named formula modes for components scored without tiers"""

    INVERSE_COEFFICIENT_OF_VARIATION = "inverse_coefficient_of_variation"

    @classmethod
    def parse(cls, raw: str) -> Optional["Calculation"]:
        # Catalog authors write the formula out, e.g. "100 - (coefficient_of_variation * 100)"
        if "coefficient_of_variation" in raw.lower():
            return cls.INVERSE_COEFFICIENT_OF_VARIATION
        return None


@dataclass(frozen=True)
class Tier:
    """[min, max) -> score band; a missing bound is open"""

    score: Decimal
    label: str
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None
    description: Optional[str] = None

    def contains(self, value: Decimal) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value >= self.max:
            return False
        return True


@dataclass(frozen=True)
class SeasonalAdjustment:
    enabled: bool
    bonus: Decimal
    threshold_cv: Optional[Decimal] = None


@dataclass(frozen=True)
class ScoringComponent:
    name: str
    weight: Decimal
    metric: MetricAccessor
    tiers: Tuple[Tier, ...] = ()
    calculation: Optional[Calculation] = None
    seasonal_adjustment: Optional[SeasonalAdjustment] = None
    description: Optional[str] = None
    warning_below: Decimal = DEFAULT_WARNING_BELOW
    strength_above: Decimal = DEFAULT_STRENGTH_ABOVE
    warning_message: Optional[str] = None
    strength_message: Optional[str] = None

    @property
    def is_formula(self) -> bool:
        return self.calculation is not None


@dataclass(frozen=True)
class RiskBand:
    label: str
    min: int
    max: int

    def contains(self, score: int) -> bool:
        return self.min <= score <= self.max


@dataclass(frozen=True)
class EligibilityRule:
    id: str
    metric: MetricAccessor
    operator: Operator
    threshold: Decimal
    name: str = ""
    failure_message: Optional[str] = None
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class FraudRule:
    id: str
    metric: MetricAccessor
    operator: Operator
    threshold: Decimal
    severity: str
    action: str
    explanation: str = ""
    name: str = ""


@dataclass(frozen=True)
class ConsistencyAdjustment:
    enabled: bool
    threshold: Decimal
    reduction_factor: Decimal


@dataclass(frozen=True)
class LoanParameters:
    """Per-band lookup tables; an empty table means the section was absent"""

    multipliers: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    tenure_days: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    consistency_adjustment: Optional[ConsistencyAdjustment] = None
    annual_rates: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    has_limits: bool = False


@dataclass(frozen=True)
class RuleCatalog:
    version: str
    components: Tuple[ScoringComponent, ...]
    risk_bands: Tuple[RiskBand, ...] = ()
    eligibility_rules: Tuple[EligibilityRule, ...] = ()
    fraud_rules: Tuple[FraudRule, ...] = ()
    loan_parameters: Optional[LoanParameters] = None
    validation_warnings: Tuple[str, ...] = ()
    source: str = "builtin"
    is_fallback: bool = False
    name: Optional[str] = None
    last_updated: Optional[str] = None

    def component(self, name: str) -> Optional[ScoringComponent]:
        for component in self.components:
            if component.name == name:
                return component
        return None

    @property
    def total_weight(self) -> Decimal:
        return sum((c.weight for c in self.components), Decimal("0"))


def band_label(key: str) -> str:
    """Normalize a risk category key: "low_risk" -> "LOW" """
    label = key.strip().upper()
    if label.endswith("_RISK"):
        label = label[: -len("_RISK")]
    return label


def default_catalog(reason: Optional[str] = None) -> RuleCatalog:
    """
    Minimal built-in catalog served when no document can be loaded.

    Scores on monthly volume alone; risk bands, eligibility, fraud and loan
    sections fall back to the evaluators' built-in defaults.
    """
    volume_tiers = (
        Tier(min=Decimal("500000"), score=Decimal("100"), label="Excellent"),
        Tier(min=Decimal("200000"), max=Decimal("500000"), score=Decimal("80"), label="Good"),
        Tier(min=Decimal("100000"), max=Decimal("200000"), score=Decimal("60"), label="Average"),
        Tier(min=Decimal("50000"), max=Decimal("100000"), score=Decimal("40"), label="Below Average"),
        Tier(min=Decimal("0"), max=Decimal("50000"), score=Decimal("20"), label="Low"),
    )
    volume = ScoringComponent(
        name="volume",
        weight=Decimal("1.0"),
        metric=resolve("average_monthly_volume"),
        tiers=volume_tiers,
        description="Average monthly transaction volume",
        warning_message="Low transaction volume",
        strength_message="Strong transaction volume",
    )
    warnings = (f"Serving built-in default catalog: {reason}",) if reason else ()
    return RuleCatalog(
        version=DEFAULT_CATALOG_VERSION,
        components=(volume,),
        validation_warnings=warnings,
        source="builtin",
        is_fallback=True,
        name="Built-in default",
    )
