"""
Rule catalog compilation: document -> validated, immutable RuleCatalog.

Hard problems (unparseable text, schema violations, bad operators, a
component with nothing to score, inverted loan limits) raise
ConfigLoadError. Soft problems are collected as validation warnings on the
catalog and never stop a load.
"""

from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml
from pydantic import ValidationError

from opencredit.domain import metric_registry
from opencredit.domain.catalog import (
    DEFAULT_STRENGTH_ABOVE,
    DEFAULT_WARNING_BELOW,
    Calculation,
    ConsistencyAdjustment,
    EligibilityRule,
    FraudRule,
    LoanParameters,
    RiskBand,
    RuleCatalog,
    ScoringComponent,
    SeasonalAdjustment,
    Tier,
    band_label,
)
from opencredit.domain.exceptions import ConfigLoadError, UnknownMetricKeyError
from opencredit.domain.metric_registry import MetricAccessor
from opencredit.infrastructure.catalog.schema import (
    CatalogDocument,
    ComponentDocument,
    LoanParametersDocument,
    RuleDocument,
)

WEIGHT_TOLERANCE = Decimal("0.001")


def parse_catalog(text: str, source: str = "<memory>", strict_metric_keys: bool = False) -> RuleCatalog:
    """Parse YAML (or JSON) catalog text"""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Catalog is not valid YAML/JSON: {e}", source) from e

    if not isinstance(document, dict):
        raise ConfigLoadError("Catalog document must be a mapping at the top level", source)

    return build_catalog(document, source=source, strict_metric_keys=strict_metric_keys)


def build_catalog(
    document: Mapping[str, Any],
    source: str = "<memory>",
    strict_metric_keys: bool = False,
) -> RuleCatalog:
    """Validate an already-decoded document and compile it"""
    try:
        parsed = CatalogDocument.model_validate(document)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigLoadError(
            f"Catalog failed validation ({e.error_count()} error(s)); first at {location}: {first['msg']}",
            source,
        ) from e

    return _CatalogCompiler(source, strict_metric_keys).compile(parsed)


class _CatalogCompiler:
    def __init__(self, source: str, strict_metric_keys: bool):
        self.source = source
        self.strict = strict_metric_keys
        self.warnings: List[str] = []

    def compile(self, document: CatalogDocument) -> RuleCatalog:
        components = tuple(
            self._component(name, component)
            for name, component in document.scoring.components.items()
        )
        if not components:
            raise ConfigLoadError("Catalog defines no scoring components", self.source)

        total_weight = sum((c.weight for c in components), Decimal("0"))
        if abs(total_weight - Decimal("1")) > WEIGHT_TOLERANCE:
            self.warnings.append(f"Component weights sum to {total_weight}, expected 1.0")

        risk_bands = self._risk_bands(document)

        eligibility_docs = document.eligibility.rules if document.eligibility else []
        eligibility_rules = tuple(
            EligibilityRule(
                id=rule.id,
                name=rule.name or rule.id,
                metric=self._metric(rule.metric, f"eligibility rule {rule.id}"),
                operator=rule.operator,
                threshold=rule.value,
                failure_message=rule.failure_message,
                recommendation=rule.recommendation,
            )
            for rule in eligibility_docs
            if rule.enabled
        )
        self._check_duplicate_ids("eligibility", eligibility_docs)

        fraud_docs = document.fraud_detection.rules if document.fraud_detection else []
        fraud_rules = tuple(
            FraudRule(
                id=rule.id,
                name=rule.name or rule.id,
                metric=self._metric(rule.metric, f"fraud rule {rule.id}"),
                operator=rule.operator,
                threshold=rule.value,
                severity=rule.severity.upper(),
                action=rule.action.upper(),
                explanation=rule.explanation,
            )
            for rule in fraud_docs
            if rule.enabled
        )
        self._check_duplicate_ids("fraud", fraud_docs)

        loan_parameters = self._loan_parameters(document.loan_parameters)

        return RuleCatalog(
            version=document.version,
            components=components,
            risk_bands=risk_bands,
            eligibility_rules=eligibility_rules,
            fraud_rules=fraud_rules,
            loan_parameters=loan_parameters,
            validation_warnings=tuple(self.warnings),
            source=self.source,
            is_fallback=False,
            name=document.metadata.name if document.metadata else None,
            last_updated=document.last_updated,
        )

    def _metric(self, key: str, owner: str) -> MetricAccessor:
        accessor = metric_registry.resolve(key)
        if not accessor.known:
            if self.strict:
                raise UnknownMetricKeyError(f"Unknown metric key {key!r} in {owner}", self.source)
            self.warnings.append(f"Unknown metric key {key!r} in {owner}; it will read as 0")
        return accessor

    def _component(self, name: str, doc: ComponentDocument) -> ScoringComponent:
        calculation: Optional[Calculation] = None
        if doc.calculation:
            calculation = Calculation.parse(doc.calculation)
            if calculation is None and not doc.tiers:
                raise ConfigLoadError(f"Component {name!r} has an unrecognised calculation and no tiers", self.source)
            if calculation is None:
                self.warnings.append(f"Component {name!r}: calculation {doc.calculation!r} not recognised, using tiers")

        if calculation is None and not doc.tiers:
            raise ConfigLoadError(f"Component {name!r} has neither tiers nor a calculation", self.source)

        if calculation is None and not doc.metric:
            raise ConfigLoadError(f"Tiered component {name!r} must name a metric", self.source)

        metric_key = doc.metric or "coefficient_of_variation"
        tiers = tuple(
            Tier(score=t.score, label=t.label, min=t.min, max=t.max, description=t.description)
            for t in doc.tiers
        )
        if calculation is None:
            self._check_tiers(name, tiers)

        seasonal = None
        if doc.seasonal_adjustment is not None:
            seasonal = SeasonalAdjustment(
                enabled=doc.seasonal_adjustment.enabled,
                bonus=doc.seasonal_adjustment.bonus,
                threshold_cv=doc.seasonal_adjustment.threshold,
            )

        return ScoringComponent(
            name=name,
            weight=doc.weight,
            metric=self._metric(metric_key, f"component {name}"),
            tiers=tiers,
            calculation=calculation,
            seasonal_adjustment=seasonal,
            description=doc.description,
            warning_below=doc.warning_below if doc.warning_below is not None else DEFAULT_WARNING_BELOW,
            strength_above=doc.strength_above if doc.strength_above is not None else DEFAULT_STRENGTH_ABOVE,
            warning_message=doc.warning_message,
            strength_message=doc.strength_message,
        )

    def _check_tiers(self, name: str, tiers: Sequence[Tier]) -> None:
        """Warn about gaps, overlaps and a missing open-ended top tier"""
        ordered = sorted(tiers, key=lambda t: (t.min is not None, t.min if t.min is not None else Decimal("0")))
        for lower, upper in zip(ordered, ordered[1:]):
            if lower.max is None:
                self.warnings.append(f"Component {name!r}: tier {lower.label!r} is unbounded above but overlaps {upper.label!r}")
            elif upper.min is None or lower.max > upper.min:
                self.warnings.append(f"Component {name!r}: tiers {lower.label!r} and {upper.label!r} overlap")
            elif lower.max < upper.min:
                self.warnings.append(f"Component {name!r}: gap between {lower.max} and {upper.min}")

        if ordered and ordered[-1].max is not None:
            self.warnings.append(
                f"Component {name!r}: no tier covers values >= {ordered[-1].max}; the last listed tier applies"
            )

    def _risk_bands(self, document: CatalogDocument) -> tuple:
        bands = tuple(
            RiskBand(label=band_label(key), min=doc.min, max=doc.max)
            for key, doc in document.risk_categories.items()
        )
        for band in bands:
            if band.min > band.max:
                self.warnings.append(f"Risk band {band.label}: min {band.min} exceeds max {band.max}")

        ordered = sorted(bands, key=lambda b: b.min)
        for lower, upper in zip(ordered, ordered[1:]):
            if lower.max + 1 < upper.min:
                self.warnings.append(f"Risk bands leave scores {lower.max + 1}-{upper.min - 1} unassigned")
        if ordered and (ordered[0].min > 0 or ordered[-1].max < 100):
            self.warnings.append("Risk bands do not cover the full 0-100 range; defaults apply outside them")
        return bands

    def _check_duplicate_ids(self, kind: str, rules: Sequence[RuleDocument]) -> None:
        seen = set()
        for rule in rules:
            if rule.id in seen:
                self.warnings.append(f"Duplicate {kind} rule id {rule.id!r}")
            seen.add(rule.id)

    def _loan_parameters(self, doc: Optional[LoanParametersDocument]) -> Optional[LoanParameters]:
        if doc is None:
            return None

        multipliers: Dict[str, Decimal] = {}
        min_amount = max_amount = None
        has_limits = False
        if doc.amount is not None:
            multipliers = {band_label(k): v.multiplier for k, v in doc.amount.by_risk_category.items()}
            if doc.amount.limits is not None:
                has_limits = True
                min_amount, max_amount = doc.amount.limits.min, doc.amount.limits.max
                if min_amount is not None and max_amount is not None and min_amount > max_amount:
                    raise ConfigLoadError(
                        f"Loan amount limits are inverted: min {min_amount} > max {max_amount}",
                        self.source,
                    )

        tenure_days: Dict[str, int] = {}
        adjustment = None
        if doc.tenure is not None:
            tenure_days = {band_label(k): v.max_days for k, v in doc.tenure.by_risk_category.items()}
            if doc.tenure.consistency_adjustment is not None:
                adj = doc.tenure.consistency_adjustment
                if adj.enabled and not (Decimal("0") < adj.reduction_factor <= Decimal("1")):
                    self.warnings.append(f"Tenure reduction factor {adj.reduction_factor} is outside (0, 1]")
                adjustment = ConsistencyAdjustment(
                    enabled=adj.enabled,
                    threshold=adj.threshold,
                    reduction_factor=adj.reduction_factor,
                )

        rates: Dict[str, Decimal] = {}
        if doc.interest_rate is not None:
            rates = {band_label(k): v.annual_rate for k, v in doc.interest_rate.by_risk_category.items()}

        return LoanParameters(
            multipliers=MappingProxyType(multipliers),
            min_amount=min_amount,
            max_amount=max_amount,
            tenure_days=MappingProxyType(tenure_days),
            consistency_adjustment=adjustment,
            annual_rates=MappingProxyType(rates),
            has_limits=has_limits,
        )
