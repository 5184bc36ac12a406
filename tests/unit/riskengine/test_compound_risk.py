"""Tests for the compound risk analyzer in `riskengine/services/compound_risk.py`."""

from datetime import UTC, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from riskengine.config import ScoringTables
from riskengine.domain.models import (
    DomainRiskAssessment,
    RiskDomain,
    RiskLevel,
    SocioeconomicFactor,
)
from riskengine.services.compound_risk import CompoundRiskAnalyzer

TS = datetime(2024, 3, 1, tzinfo=UTC)
TABLES = ScoringTables()


def _domains(**scores: float) -> list[DomainRiskAssessment]:
    assessments = []
    for domain in RiskDomain:
        score = scores.get(domain.value, 0.0)
        level = TABLES.thresholds_for(domain).level_for(score)
        assessments.append(
            DomainRiskAssessment(domain=domain, overall_score=score, risk_level=level)
        )
    return assessments


@pytest.fixture
def analyzer() -> CompoundRiskAnalyzer:
    return CompoundRiskAnalyzer(TABLES)


def _combine(analyzer: CompoundRiskAnalyzer, domains, factors=()):
    return analyzer.combine(
        domains,
        assessment_id="a-1",
        user_id="user-1",
        timestamp=TS,
        socioeconomic_factors=factors,
    )


class TestCombine:
    def test_no_risk_is_zero(self, analyzer) -> None:
        composite = _combine(analyzer, _domains())
        assert composite.raw_score == 0.0
        assert composite.composite_level is RiskLevel.LOW
        assert composite.synergy_contributions == []
        assert composite.exponential_factor == 1.0

    def test_single_domain_anchors_composite(self, analyzer) -> None:
        composite = _combine(analyzer, _domains(diabetes=60.0))
        assert composite.raw_score == 60.0
        assert composite.composite_level is RiskLevel.HIGH
        assert composite.exponential_factor == 1.0

    def test_two_elevated_domains_scale_and_synergize(self, analyzer) -> None:
        composite = _combine(analyzer, _domains(diabetes=60.0, cardiovascular=30.0))

        assert composite.exponential_factor == pytest.approx(1.3)
        # 60 * 30 * 0.85 * 2.5 / 100
        assert composite.synergy_bonus == pytest.approx(38.25)
        assert composite.raw_score == pytest.approx(60 * 1.3 + 38.25)
        assert composite.composite_score == 116
        assert composite.composite_level is RiskLevel.CRITICAL

        [contribution] = composite.synergy_contributions
        assert set(contribution.pair) == {RiskDomain.DIABETES, RiskDomain.CARDIOVASCULAR}
        assert contribution.multiplier == 2.5
        assert contribution.correlation == 0.85

    def test_synergy_sums_over_every_pair(self, analyzer) -> None:
        composite = _combine(
            analyzer, _domains(diabetes=10.0, cardiovascular=10.0, mental_health=10.0, respiratory=10.0)
        )
        expected = sum(100 * r.correlation * r.synergy_factor / 100 for r in TABLES.synergy_rules)
        assert len(composite.synergy_contributions) == 6
        assert composite.synergy_bonus == pytest.approx(expected)

    def test_three_elevated_domains_square_the_factor(self, analyzer) -> None:
        composite = _combine(
            analyzer, _domains(diabetes=40.0, cardiovascular=30.0, respiratory=25.0)
        )
        assert composite.exponential_factor == pytest.approx(1.3**2)


class TestSocioeconomicMultiplier:
    def test_no_factors_is_neutral(self, analyzer) -> None:
        assert analyzer.socioeconomic_multiplier([]) == 1.0

    def test_factors_multiply(self, analyzer) -> None:
        multiplier = analyzer.socioeconomic_multiplier(
            [SocioeconomicFactor.LOW_INCOME, SocioeconomicFactor.URBAN_PERIPHERY]
        )
        assert multiplier == pytest.approx(1.3 * 1.15)

    def test_upper_clamp(self, analyzer) -> None:
        multiplier = analyzer.socioeconomic_multiplier(
            [SocioeconomicFactor.DOMESTIC_VIOLENCE, SocioeconomicFactor.SOCIAL_ISOLATION]
        )
        assert multiplier == 2.0

    def test_lower_clamp(self, analyzer) -> None:
        multiplier = analyzer.socioeconomic_multiplier(
            [
                SocioeconomicFactor.STRONG_FAMILY_SUPPORT,
                SocioeconomicFactor.RELIGIOUS_COPING,
                SocioeconomicFactor.PRIVATE_INSURANCE,
            ]
        )
        assert multiplier == 0.75

    def test_multiplier_applies_to_composite(self, analyzer) -> None:
        composite = _combine(
            analyzer, _domains(diabetes=40.0), factors=[SocioeconomicFactor.LIMITED_ACCESS_TO_CARE]
        )
        assert composite.raw_score == pytest.approx(52.0)
        assert composite.socioeconomic_multiplier == pytest.approx(1.3)


class TestFallback:
    def test_fallback_is_degraded_and_anchored_on_max(self, analyzer) -> None:
        composite = analyzer.fallback(
            _domains(diabetes=30.0, cardiovascular=46.0),
            assessment_id="a-1",
            user_id="user-1",
            timestamp=TS,
        )
        assert composite.degraded is True
        assert composite.raw_score == 46.0
        # cardiovascular 46 is critical on its own scale
        assert composite.composite_level is RiskLevel.CRITICAL


score_st = st.floats(min_value=0.0, max_value=120.0, allow_nan=False)


@given(
    scores=st.fixed_dictionaries({d.value: score_st for d in RiskDomain}),
    bump_domain=st.sampled_from([d.value for d in RiskDomain]),
    bump=st.floats(min_value=0.0, max_value=50.0, allow_nan=False),
)
def test_composite_is_monotonic_in_domain_scores(
    scores: dict[str, float], bump_domain: str, bump: float
) -> None:
    analyzer = CompoundRiskAnalyzer(TABLES)
    before = _combine(analyzer, _domains(**scores))
    bumped = scores | {bump_domain: scores[bump_domain] + bump}
    after = _combine(analyzer, _domains(**bumped))
    assert after.raw_score >= before.raw_score
