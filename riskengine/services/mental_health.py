"""
Mental-health scorer: PHQ-9 and GAD-7 style checklists plus suicide stratification.

The suicide stratum, not the summed score, drives the imminent-risk indicator.
"""

from riskengine.config import DomainThresholds, ScoringTables
from riskengine.domain.models import (
    DomainRiskAssessment,
    FactorCategory,
    FactorSeverity,
    MentalHealthSymptoms,
    NormalizedAssessmentInput,
    PlanSpecificity,
    RiskDomain,
    RiskFactor,
    SuicideRiskLevel,
)
from riskengine.services.scoring import FactorSpec, flagged_factors, require_block, total_weight

C = FactorCategory
S = FactorSeverity

PHQ_ITEM = FactorSpec(3, C.SYMPTOM, S.MODERATE, "A")
GAD_ITEM = FactorSpec(3, C.SYMPTOM, S.MODERATE, "A")

PHQ9_ITEMS = (
    "anhedonia",
    "depressed_mood",
    "sleep_disturbance",
    "fatigue",
    "appetite_changes",
    "guilt",
    "concentration_problems",
    "psychomotor_changes",
    "self_harm_thoughts",
)
GAD7_ITEMS = (
    "nervousness",
    "uncontrollable_worry",
    "excessive_worry",
    "trouble_relaxing",
    "restlessness",
    "irritability",
    "fear_of_catastrophe",
)

SUICIDE_POINTS: dict[SuicideRiskLevel, FactorSpec] = {
    SuicideRiskLevel.IMMINENT: FactorSpec(50, C.SYMPTOM, S.CRITICAL, "A"),
    SuicideRiskLevel.HIGH: FactorSpec(30, C.SYMPTOM, S.CRITICAL, "A"),
    SuicideRiskLevel.MODERATE: FactorSpec(15, C.SYMPTOM, S.SEVERE, "A"),
}
PSYCHOTIC_FEATURES = FactorSpec(10, C.SYMPTOM, S.SEVERE, "B")

SEVERE_DEPRESSION_CUT = 20.0
SEVERE_ANXIETY_CUT = 16.0  # GAD-7 above 15


def stratify_suicide_risk(block: MentalHealthSymptoms) -> SuicideRiskLevel:
    """Stratify suicide risk from ideation, plan specificity, means and history.

    A specific plan with access to means is imminent regardless of anything else.
    """
    has_ideation = block.suicidal_ideation or block.plan_specificity is not PlanSpecificity.NONE
    if not has_ideation:
        return SuicideRiskLevel.NONE

    if block.plan_specificity is PlanSpecificity.SPECIFIC and block.access_to_means:
        return SuicideRiskLevel.IMMINENT

    points = {PlanSpecificity.NONE: 0, PlanSpecificity.VAGUE: 1, PlanSpecificity.SPECIFIC: 2}[
        block.plan_specificity
    ]
    points += int(block.access_to_means) + int(block.previous_attempt)

    if points >= 2:
        return SuicideRiskLevel.HIGH
    if points == 1:
        return SuicideRiskLevel.MODERATE
    return SuicideRiskLevel.LOW


_STRATUM_RANK = {
    SuicideRiskLevel.NONE: 0,
    SuicideRiskLevel.LOW: 1,
    SuicideRiskLevel.MODERATE: 2,
    SuicideRiskLevel.HIGH: 3,
    SuicideRiskLevel.IMMINENT: 4,
}


class MentalHealthScorer:
    domain = RiskDomain.MENTAL_HEALTH

    def __init__(self, thresholds: DomainThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringTables().thresholds_for(self.domain)

    def score(self, data: NormalizedAssessmentInput) -> DomainRiskAssessment:
        block = require_block(data, self.domain)
        assert isinstance(block, MentalHealthSymptoms)

        phq = flagged_factors(block, dict.fromkeys(PHQ9_ITEMS, PHQ_ITEM))
        gad = flagged_factors(block, dict.fromkeys(GAD7_ITEMS, GAD_ITEM))
        depression = total_weight(phq)
        anxiety = total_weight(gad)

        factors: list[RiskFactor] = phq + gad
        stratum = stratify_suicide_risk(block)
        if stratum in SUICIDE_POINTS:
            factors.append(SUICIDE_POINTS[stratum].build("suicide_risk", stratum.value))
        if block.psychotic_features:
            factors.append(PSYCHOTIC_FEATURES.build("psychotic_features"))

        score = total_weight(factors)
        return DomainRiskAssessment(
            domain=self.domain,
            overall_score=score,
            risk_level=self.thresholds.level_for(score),
            triggered_factors=factors,
            emergency_indicators=self._emergency_indicators(block, stratum, depression),
            subscores={
                "depression": depression,
                "anxiety": anxiety,
                "suicide_stratum": float(_STRATUM_RANK[stratum]),
            },
        )

    @staticmethod
    def _emergency_indicators(
        block: MentalHealthSymptoms, stratum: SuicideRiskLevel, depression: float
    ) -> list[str]:
        indicators = []
        if stratum is SuicideRiskLevel.IMMINENT:
            indicators.append("imminent_suicide_risk")
        elif stratum is SuicideRiskLevel.HIGH:
            indicators.append("high_suicide_risk")
        if depression >= SEVERE_DEPRESSION_CUT and block.psychotic_features:
            indicators.append("severe_depression_with_psychotic_features")
        return indicators
