"""Pydantic schema for the rule catalog document (YAML or JSON)"""

from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from opencredit.domain.catalog import Operator


def _decimal_from_document(value: Any) -> Any:
    # YAML floats go through str() so 0.15 stays 0.15
    if isinstance(value, float):
        return str(value)
    return value


def _text_from_document(value: Any) -> Any:
    # Unquoted YAML versions and dates arrive as numbers / date objects
    if value is None or isinstance(value, str):
        return value
    return str(value)


CatalogDecimal = Annotated[Decimal, BeforeValidator(_decimal_from_document)]
CatalogText = Annotated[str, BeforeValidator(_text_from_document)]


class DocumentModel(BaseModel):
    """Base for catalog sections; unknown keys are documentation and ignored"""

    model_config = ConfigDict(extra="ignore", frozen=True)


class TierDocument(DocumentModel):
    min: Optional[CatalogDecimal] = None
    max: Optional[CatalogDecimal] = None
    score: CatalogDecimal = Field(..., ge=0, le=100)
    label: str = ""
    description: Optional[str] = None


class SeasonalAdjustmentDocument(DocumentModel):
    enabled: bool = False
    threshold: Optional[CatalogDecimal] = Field(default=None, validation_alias=AliasChoices("threshold", "threshold_cv"))
    bonus: CatalogDecimal = Field(default=Decimal("0"), validation_alias=AliasChoices("bonus", "bonus_if_seasonal"))


class ComponentDocument(DocumentModel):
    weight: CatalogDecimal = Field(..., ge=0)
    metric: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    calculation: Optional[str] = None
    tiers: List[TierDocument] = Field(default_factory=list)
    seasonal_adjustment: Optional[SeasonalAdjustmentDocument] = None
    warning_below: Optional[CatalogDecimal] = None
    strength_above: Optional[CatalogDecimal] = None
    warning_message: Optional[str] = None
    strength_message: Optional[str] = None


class ScoringDocument(DocumentModel):
    components: Dict[str, ComponentDocument]


class RiskCategoryDocument(DocumentModel):
    min: int
    max: int
    label: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_score_range(cls, data: Any) -> Any:
        # Accepts both {min, max} and {score_range: {min, max}}
        if isinstance(data, dict) and isinstance(data.get("score_range"), dict):
            return {**data, **data["score_range"]}
        return data


class RuleDocument(DocumentModel):
    id: CatalogText
    name: Optional[str] = None
    description: Optional[str] = None
    metric: str
    operator: Operator
    value: CatalogDecimal
    enabled: bool = True

    @model_validator(mode="before")
    @classmethod
    def flatten_condition(cls, data: Any) -> Any:
        # Accepts flat rules and rules with a nested `condition` block
        if isinstance(data, dict) and isinstance(data.get("condition"), dict):
            return {**data["condition"], **{k: v for k, v in data.items() if k != "condition"}}
        return data

    @field_validator("operator", mode="before")
    @classmethod
    def parse_operator(cls, value: Any) -> Operator:
        if isinstance(value, Operator):
            return value
        return Operator.parse(value)


class EligibilityRuleDocument(RuleDocument):
    failure_message: Optional[str] = None
    recommendation: Optional[str] = None


class FraudRuleDocument(RuleDocument):
    severity: str = "MEDIUM"
    action: str = "REVIEW"
    explanation: str = ""


class EligibilityDocument(DocumentModel):
    description: Optional[str] = None
    rules: List[EligibilityRuleDocument] = Field(default_factory=list)


class FraudDetectionDocument(DocumentModel):
    description: Optional[str] = None
    rules: List[FraudRuleDocument] = Field(default_factory=list)


class MultiplierDocument(DocumentModel):
    multiplier: CatalogDecimal = Field(..., ge=0)


class LimitsDocument(DocumentModel):
    min: Optional[CatalogDecimal] = Field(default=None, validation_alias=AliasChoices("min", "minimum"))
    max: Optional[CatalogDecimal] = Field(default=None, validation_alias=AliasChoices("max", "maximum"))
    currency: Optional[str] = None


class AmountDocument(DocumentModel):
    by_risk_category: Dict[str, MultiplierDocument] = Field(default_factory=dict)
    limits: Optional[LimitsDocument] = None


class TenureBandDocument(DocumentModel):
    max_days: int = Field(..., gt=0)


class ConsistencyAdjustmentDocument(DocumentModel):
    enabled: bool = False
    threshold: CatalogDecimal = Decimal("0")
    reduction_factor: CatalogDecimal = Decimal("1")


class TenureDocument(DocumentModel):
    by_risk_category: Dict[str, TenureBandDocument] = Field(default_factory=dict)
    consistency_adjustment: Optional[ConsistencyAdjustmentDocument] = None


class RateDocument(DocumentModel):
    annual_rate: CatalogDecimal = Field(..., ge=0)


class InterestRateDocument(DocumentModel):
    by_risk_category: Dict[str, RateDocument] = Field(default_factory=dict)


class LoanParametersDocument(DocumentModel):
    amount: Optional[AmountDocument] = None
    tenure: Optional[TenureDocument] = None
    interest_rate: Optional[InterestRateDocument] = None


class MetadataDocument(DocumentModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CatalogDocument(DocumentModel):
    """Root of a scoring rules document"""

    version: CatalogText = Field(..., min_length=1)
    last_updated: Optional[CatalogText] = None
    metadata: Optional[MetadataDocument] = None
    scoring: ScoringDocument
    risk_categories: Dict[str, RiskCategoryDocument] = Field(default_factory=dict)
    eligibility: Optional[EligibilityDocument] = None
    fraud_detection: Optional[FraudDetectionDocument] = None
    loan_parameters: Optional[LoanParametersDocument] = None
