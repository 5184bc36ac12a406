"""Diabetes scorer built around the classic polydipsia/polyphagia/polyuria triad."""

from riskengine.config import DomainThresholds, ScoringTables
from riskengine.domain.models import (
    DiabetesSymptoms,
    DomainRiskAssessment,
    FactorCategory,
    FactorSeverity,
    NormalizedAssessmentInput,
    RiskDomain,
    RiskFactor,
)
from riskengine.services.scoring import FactorSpec, flagged_factors, require_block, total_weight

C = FactorCategory
S = FactorSeverity

# Three items at 20 points: a complete triad alone reaches the critical cut (60)
TRIAD_FACTORS: dict[str, FactorSpec] = {
    "polydipsia": FactorSpec(20, C.SYMPTOM, S.SEVERE, "A"),
    "polyphagia": FactorSpec(20, C.SYMPTOM, S.SEVERE, "A"),
    "polyuria": FactorSpec(20, C.SYMPTOM, S.SEVERE, "A"),
}

SUPPORTING_FACTORS: dict[str, FactorSpec] = {
    "fatigue": FactorSpec(10, C.SYMPTOM, S.MILD, "B"),
    "blurred_vision": FactorSpec(10, C.SYMPTOM, S.MODERATE, "B"),
    "slow_healing": FactorSpec(8, C.SYMPTOM, S.MODERATE, "B"),
    "frequent_infections": FactorSpec(8, C.SYMPTOM, S.MODERATE, "B"),
    "family_history": FactorSpec(12, C.HISTORY, S.MODERATE, "A"),
    "gestational_diabetes": FactorSpec(8, C.HISTORY, S.MODERATE, "A"),
    "ketosis_symptoms": FactorSpec(20, C.SYMPTOM, S.CRITICAL, "A"),
}

WEIGHT_LOSS = FactorSpec(15, C.SYMPTOM, S.SEVERE, "A")
OBESITY = FactorSpec(10, C.VITAL, S.MODERATE, "A")
AGE_OVER_45 = FactorSpec(5, C.DEMOGRAPHIC, S.MILD, "A")
AGE_OVER_65 = FactorSpec(10, C.DEMOGRAPHIC, S.MODERATE, "A")

OBESITY_BMI = 30.0


class DiabetesScorer:
    domain = RiskDomain.DIABETES

    def __init__(self, thresholds: DomainThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringTables().thresholds_for(self.domain)

    def score(self, data: NormalizedAssessmentInput) -> DomainRiskAssessment:
        block = require_block(data, self.domain)
        assert isinstance(block, DiabetesSymptoms)

        triad = flagged_factors(block, TRIAD_FACTORS)
        factors: list[RiskFactor] = triad + flagged_factors(block, SUPPORTING_FACTORS)

        if block.weight_loss or block.rapid_weight_loss:
            value = "rapid" if block.rapid_weight_loss else "gradual"
            factors.append(WEIGHT_LOSS.build("weight_loss", value))

        demo = data.demographics
        if demo.bmi is not None and demo.bmi >= OBESITY_BMI:
            factors.append(OBESITY.build("obesity", demo.bmi))
        if demo.age is not None and demo.age > 45:
            factors.append(AGE_OVER_45.build("age_over_45", float(demo.age)))
            if demo.age > 65:
                factors.append(AGE_OVER_65.build("age_over_65", float(demo.age)))

        score = total_weight(factors)
        return DomainRiskAssessment(
            domain=self.domain,
            overall_score=score,
            risk_level=self.thresholds.level_for(score),
            triggered_factors=factors,
            emergency_indicators=self._emergency_indicators(block),
            subscores={
                "triad_count": float(block.triad_count),
                "triad_points": total_weight(triad),
            },
        )

    @staticmethod
    def _emergency_indicators(block: DiabetesSymptoms) -> list[str]:
        indicators = []
        if block.triad_complete and block.rapid_weight_loss:
            indicators.append("diabetic_ketoacidosis_risk")
        if block.ketosis_symptoms:
            indicators.append("ketosis_detected")
        return indicators
