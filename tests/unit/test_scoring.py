"""Unit tests for composite scoring"""

import random
from decimal import Decimal, ROUND_HALF_UP

import pytest

from opencredit.domain.catalog import (
    Calculation,
    RiskBand,
    RuleCatalog,
    ScoringComponent,
    SeasonalAdjustment,
    Tier,
    default_catalog,
)
from opencredit.domain.metric_registry import resolve
from opencredit.domain.scoring import (
    determine_risk_band,
    evaluate_score,
    find_matching_tier,
    inverse_cv_score,
)


def test_reference_merchant_scores_70_medium(bundled_catalog, make_metrics):
    """
    Test the worked example from the rules catalog.

    volume 150k -> 60, CV 0.25 -> 75, growth 15% -> 85, bounce 7% -> 70,
    concentration 35% -> 65: 18 + 18.75 + 12.75 + 10.5 + 9.75 = 69.75 -> 70
    """
    result = evaluate_score(make_metrics(), bundled_catalog)

    assert result.credit_score == 70
    assert result.risk_band == "MEDIUM"
    assert result.catalog_version == "2.0.0"

    scores = {c.name: c.score for c in result.components}
    assert scores == {
        "volume": Decimal("60"),
        "consistency": Decimal("75.00"),
        "growth": Decimal("85"),
        "bounce_rate": Decimal("70"),
        "concentration": Decimal("65"),
    }
    assert sum(c.weighted_score for c in result.components) == Decimal("69.75")
    assert result.component("consistency").label == "Moderate"
    assert result.warnings == ()
    assert result.strengths == ("Strong growth trajectory",)


def test_warnings_and_strengths(bundled_catalog, make_metrics):
    metrics = make_metrics(
        average_monthly_volume=Decimal("600000"),
        growth_rate=Decimal("-12"),
        customer_concentration=Decimal("75"),
    )

    result = evaluate_score(metrics, bundled_catalog)

    assert "Strong transaction volume" in result.strengths
    assert "Business volume is declining" in result.warnings
    assert "High customer concentration risk" in result.warnings


def test_first_matching_tier_wins():
    tiers = (
        Tier(min=Decimal("0"), max=Decimal("100"), score=Decimal("10"), label="first"),
        Tier(min=Decimal("50"), max=Decimal("200"), score=Decimal("90"), label="overlapping"),
    )

    assert find_matching_tier(Decimal("75"), tiers).label == "first"
    assert find_matching_tier(Decimal("150"), tiers).label == "overlapping"


def test_unmatched_value_falls_back_to_last_tier():
    tiers = (
        Tier(min=Decimal("100"), score=Decimal("100"), label="high"),
        Tier(min=Decimal("0"), max=Decimal("100"), score=Decimal("20"), label="low"),
    )

    assert find_matching_tier(Decimal("-5"), tiers).label == "low"


def test_tier_upper_bound_is_exclusive():
    tiers = (
        Tier(min=Decimal("0"), max=Decimal("3"), score=Decimal("100"), label="excellent"),
        Tier(min=Decimal("3"), max=Decimal("5"), score=Decimal("85"), label="good"),
    )

    assert find_matching_tier(Decimal("3"), tiers).label == "good"
    assert find_matching_tier(Decimal("2.99"), tiers).label == "excellent"


@pytest.mark.parametrize(
    "cv, seasonal, expected",
    [
        (Decimal("0.25"), False, Decimal("75")),
        (Decimal("0"), False, Decimal("100")),
        (Decimal("1.5"), False, Decimal("0")),
        (Decimal("0.6"), True, Decimal("50")),
        (Decimal("0.05"), True, Decimal("100")),
    ],
)
def test_inverse_cv_score(make_metrics, cv, seasonal, expected):
    """Test 100 - CV * 100 with seasonal bonus, clamped to [0, 100]"""
    component = ScoringComponent(
        name="consistency",
        weight=Decimal("1"),
        metric=resolve("coefficient_of_variation"),
        calculation=Calculation.INVERSE_COEFFICIENT_OF_VARIATION,
        seasonal_adjustment=SeasonalAdjustment(enabled=True, bonus=Decimal("10")),
    )
    metrics = make_metrics(coefficient_of_variation=cv, is_seasonal=seasonal)

    assert inverse_cv_score(component, metrics) == expected


def test_seasonal_threshold_overrides_flag(make_metrics):
    component = ScoringComponent(
        name="consistency",
        weight=Decimal("1"),
        metric=resolve("coefficient_of_variation"),
        calculation=Calculation.INVERSE_COEFFICIENT_OF_VARIATION,
        seasonal_adjustment=SeasonalAdjustment(enabled=True, bonus=Decimal("10"), threshold_cv=Decimal("0.3")),
    )
    metrics = make_metrics(coefficient_of_variation=Decimal("0.4"), is_seasonal=False)

    assert inverse_cv_score(component, metrics) == Decimal("70")


def test_risk_band_from_catalog_is_inclusive(bundled_catalog):
    assert determine_risk_band(80, bundled_catalog.risk_bands) == "LOW"
    assert determine_risk_band(79, bundled_catalog.risk_bands) == "MEDIUM"
    assert determine_risk_band(60, bundled_catalog.risk_bands) == "MEDIUM"
    assert determine_risk_band(59, bundled_catalog.risk_bands) == "HIGH"
    assert determine_risk_band(0, bundled_catalog.risk_bands) == "HIGH"


def test_risk_band_defaults_without_table():
    assert determine_risk_band(85, ()) == "LOW"
    assert determine_risk_band(65, ()) == "MEDIUM"
    assert determine_risk_band(10, ()) == "HIGH"


def test_risk_band_gap_uses_defaults():
    bands = (RiskBand(label="PRIME", min=90, max=100),)

    assert determine_risk_band(95, bands) == "PRIME"
    assert determine_risk_band(82, bands) == "LOW"


def test_default_catalog_scores_volume_only(make_metrics):
    result = evaluate_score(make_metrics(average_monthly_volume=Decimal("250000")), default_catalog())

    assert result.credit_score == 80
    assert result.risk_band == "LOW"
    assert len(result.components) == 1


def _single_tier_catalog(scores_and_weights) -> RuleCatalog:
    components = tuple(
        ScoringComponent(
            name=f"c{i}",
            weight=weight,
            metric=resolve("average_monthly_volume"),
            tiers=(Tier(score=score, label="any"),),
        )
        for i, (score, weight) in enumerate(scores_and_weights)
    )
    return RuleCatalog(version="random", components=components)


def test_composite_is_rounded_weighted_sum(make_metrics):
    """Test score = clamp(round_half_up(sum(score * weight))) over random catalogs"""
    rng = random.Random(20260618)
    metrics = make_metrics()

    for _ in range(200):
        pairs = [
            (Decimal(rng.randint(0, 100)), Decimal(rng.randint(0, 60)) / Decimal(100))
            for _ in range(rng.randint(1, 6))
        ]
        expected = sum((s * w for s, w in pairs), Decimal("0")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        expected = max(0, min(100, int(expected)))

        result = evaluate_score(metrics, _single_tier_catalog(pairs))

        assert result.credit_score == expected
        assert 0 <= result.credit_score <= 100


def test_score_is_monotonic_in_volume(bundled_catalog, make_metrics):
    previous = -1
    for volume in (0, 25000, 60000, 150000, 300000, 750000):
        score = evaluate_score(make_metrics(average_monthly_volume=Decimal(volume)), bundled_catalog).credit_score
        assert score >= previous
        previous = score


@pytest.mark.parametrize(
    "component, field, values",
    [
        ("bounce_rate", "bounce_rate", ("0", "2.99", "3", "4.5", "5", "9.99", "10", "15", "19.99", "20", "100")),
        ("concentration", "customer_concentration", ("0", "19.99", "20", "30", "49.99", "50", "70", "85", "100")),
    ],
)
def test_lower_is_better_components_never_rise(bundled_catalog, make_metrics, component, field, values):
    """Test walking a lower-is-better metric upward through its tiers never raises the component score"""
    scores = [
        evaluate_score(make_metrics(**{field: Decimal(value)}), bundled_catalog).component(component).score
        for value in values
    ]

    assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))
    assert scores[0] == Decimal("100")
    assert scores[-1] < scores[0]


def test_scoring_is_deterministic(bundled_catalog, make_metrics):
    metrics = make_metrics()

    assert evaluate_score(metrics, bundled_catalog) == evaluate_score(metrics, bundled_catalog)


def test_unknown_metric_reads_zero(make_metrics):
    component = ScoringComponent(
        name="mystery",
        weight=Decimal("1"),
        metric=resolve("not_a_metric"),
        tiers=(
            Tier(min=Decimal("1"), score=Decimal("100"), label="some"),
            Tier(max=Decimal("1"), score=Decimal("5"), label="none"),
        ),
    )
    result = evaluate_score(make_metrics(), RuleCatalog(version="x", components=(component,)))

    assert result.components[0].metric_value == Decimal("0")
    assert result.credit_score == 5
