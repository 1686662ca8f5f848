"""Domain models - immutable dataclasses representing engine inputs and outputs"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class Direction(str, Enum):
    CREDIT = "CREDIT"  # money received
    DEBIT = "DEBIT"  # money paid out


class TransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class Transaction:
    """Single payment event supplied by the collection platform"""

    timestamp: datetime
    amount: Decimal
    direction: Direction
    status: TransactionStatus
    counterparty_id: Optional[str] = None
    category: str = ""
    transaction_id: str = ""


@dataclass(frozen=True)
class MonthlyVolume:
    """Successful credit activity for one calendar month"""

    month: str  # YYYY-MM
    volume: Decimal
    transaction_count: int
    unique_counterparties: int


@dataclass(frozen=True)
class DerivedMetrics:
    """Statistical features derived from a transaction history"""

    # Volume windows
    last_3_months_volume: Decimal
    last_6_months_volume: Decimal
    last_12_months_volume: Decimal
    previous_3_months_volume: Decimal
    average_monthly_volume: Decimal
    average_transaction_value: Decimal

    # Counts
    total_transaction_count: int
    successful_transaction_count: int
    failed_transaction_count: int

    # Counterparties
    unique_counterparty_count: int
    top_10_counterparty_volume: Decimal
    customer_concentration: Decimal

    monthly_volumes: Tuple[MonthlyVolume, ...]

    # Performance
    consistency_score: Decimal
    growth_rate: Decimal
    bounce_rate: Decimal
    coefficient_of_variation: Decimal
    max_month_over_month_change: Decimal

    # Seasonality
    is_seasonal: bool
    peak_month: str
    trough_month: str

    # Anomaly flags
    has_sudden_volume_spike: bool
    has_low_customer_diversity: bool
    has_single_payer_dominance: bool

    @property
    def business_tenure_months(self) -> int:
        return len(self.monthly_volumes)


@dataclass(frozen=True)
class ComponentScore:
    """Score contributed by one catalog component"""

    name: str
    score: Decimal
    weight: Decimal
    metric_value: Decimal
    label: str
    description: Optional[str] = None
    warning: Optional[str] = None
    strength: Optional[str] = None

    @property
    def weighted_score(self) -> Decimal:
        return self.score * self.weight


@dataclass(frozen=True)
class ScoreResult:
    """Composite credit score with per-component breakdown"""

    credit_score: int
    risk_band: str
    components: Tuple[ComponentScore, ...]
    warnings: Tuple[str, ...]
    strengths: Tuple[str, ...]
    catalog_version: str

    def component(self, name: str) -> Optional[ComponentScore]:
        for component in self.components:
            if component.name == name:
                return component
        return None


@dataclass(frozen=True)
class RuleOutcome:
    """Trace entry for one eligibility rule"""

    rule_id: str
    name: str
    passed: bool
    actual_value: Decimal
    threshold: Decimal
    operator: str


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    failure_reason: Optional[str]
    recommendation: Optional[str]
    rule_results: Tuple[RuleOutcome, ...]
    rules_checked: int
    rules_passed: int
    catalog_version: str


@dataclass(frozen=True)
class FraudIndicator:
    """Triggered fraud rule"""

    rule_id: str
    name: str
    severity: str
    action: str
    explanation: str
    actual_value: Decimal
    threshold: Decimal
    catalog_version: str


@dataclass(frozen=True)
class LoanTerms:
    eligible_amount: Decimal
    max_tenure_days: int
    annual_interest_rate: Decimal
    amount_multiplier: Decimal
    tenure_reduced: bool
    catalog_version: str


@dataclass(frozen=True)
class RepaymentRecommendation:
    recommended_emi: Decimal
    max_monthly_repayment: Decimal
    tenure_months: int


@dataclass(frozen=True)
class CreditAssessment:
    """Output of a complete evaluation against one catalog snapshot"""

    eligible: bool
    ineligibility_reason: Optional[str]
    score: ScoreResult
    eligibility: EligibilityResult
    fraud_indicators: Tuple[FraudIndicator, ...]
    loan_terms: LoanTerms
    offered_amount: Decimal
    offered_tenure_days: int
    repayment: Optional[RepaymentRecommendation]
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    strengths: Tuple[str, ...] = field(default_factory=tuple)
    catalog_version: str = ""

    @property
    def credit_score(self) -> int:
        return self.score.credit_score

    @property
    def risk_band(self) -> str:
        return self.score.risk_band
