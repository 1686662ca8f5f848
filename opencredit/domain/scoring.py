"""Risk scoring engine - applies catalog components to derived metrics"""

import logging
from decimal import Decimal
from typing import List, Sequence

from opencredit.domain.catalog import Calculation, RiskBand, RuleCatalog, ScoringComponent, Tier
from opencredit.domain.models import ComponentScore, DerivedMetrics, ScoreResult
from opencredit.utils.decimal_utils import HUNDRED, ZERO, clamp, quantize

logger = logging.getLogger(__name__)


def evaluate_score(metrics: DerivedMetrics, catalog: RuleCatalog) -> ScoreResult:
    """
    Calculate the composite credit score (0-100) from catalog components.

    Final score = round_half_up(sum(component score * weight)), clamped to
    [0, 100]. The component set, weights and tiers all come from the
    catalog; nothing here knows which components exist.
    """
    components: List[ComponentScore] = []
    warnings: List[str] = []
    strengths: List[str] = []
    total = ZERO

    for component in catalog.components:
        scored = score_component(component, metrics)
        components.append(scored)
        total += scored.weighted_score

        if scored.warning is not None:
            warnings.append(scored.warning)
        if scored.strength is not None:
            strengths.append(scored.strength)

    credit_score = int(quantize(total, 0))
    credit_score = max(0, min(100, credit_score))

    logger.debug(
        "Scored metrics",
        extra={"credit_score": credit_score, "catalog_version": catalog.version},
    )

    return ScoreResult(
        credit_score=credit_score,
        risk_band=determine_risk_band(credit_score, catalog.risk_bands),
        components=tuple(components),
        warnings=tuple(warnings),
        strengths=tuple(strengths),
        catalog_version=catalog.version,
    )


def score_component(component: ScoringComponent, metrics: DerivedMetrics) -> ComponentScore:
    """Score one component by formula or by tier lookup"""
    metric_value = component.metric.read(metrics)

    if component.calculation is Calculation.INVERSE_COEFFICIENT_OF_VARIATION:
        metric_value = metrics.coefficient_of_variation
        score = inverse_cv_score(component, metrics)
        label = consistency_label(score)
    elif component.tiers:
        tier = find_matching_tier(metric_value, component.tiers)
        score = tier.score
        label = tier.label
    else:
        score = ZERO
        label = "Unknown"

    warning = None
    strength = None
    if score <= component.warning_below:
        warning = component.warning_message or f"Weak {_display_name(component.name)}"
    elif score >= component.strength_above:
        strength = component.strength_message or f"Strong {_display_name(component.name)}"

    return ComponentScore(
        name=component.name,
        score=score,
        weight=component.weight,
        metric_value=metric_value,
        label=label,
        description=component.description,
        warning=warning,
        strength=strength,
    )


def inverse_cv_score(component: ScoringComponent, metrics: DerivedMetrics) -> Decimal:
    """100 - CV * 100 plus the optional seasonal bonus, clamped to [0, 100]"""
    cv = metrics.coefficient_of_variation
    score = clamp(HUNDRED - cv * HUNDRED)

    adjustment = component.seasonal_adjustment
    if adjustment is not None and adjustment.enabled:
        if adjustment.threshold_cv is not None:
            seasonal = cv > adjustment.threshold_cv
        else:
            seasonal = metrics.is_seasonal
        if seasonal:
            score = clamp(score + adjustment.bonus)

    return score


def consistency_label(score: Decimal) -> str:
    if score >= 80:
        return "Stable"
    if score >= 60:
        return "Moderate"
    if score >= 40:
        return "Variable"
    return "Volatile"


def find_matching_tier(value: Decimal, tiers: Sequence[Tier]) -> Tier:
    """
    First tier whose [min, max) contains the value, in catalog order.

    Falls back to the last tier when nothing matches. "Lower is better"
    metrics are expressed by the tier scores themselves; no inversion here.
    """
    for tier in tiers:
        if tier.contains(value):
            return tier
    return tiers[-1]


def determine_risk_band(score: int, bands: Sequence[RiskBand]) -> str:
    """
    Map a composite score to a risk band.

    Catalog bands are checked in order (inclusive ranges). Without a match:
    - 80+:   LOW
    - 60-79: MEDIUM
    - <60:   HIGH
    """
    for band in bands:
        if band.contains(score):
            return band.label

    if score >= 80:
        return "LOW"
    if score >= 60:
        return "MEDIUM"
    return "HIGH"


def _display_name(name: str) -> str:
    return name.replace("_", " ")
