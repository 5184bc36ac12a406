"""Framingham-style cardiovascular scorer with acute-pattern indicators."""

from riskengine.config import DomainThresholds, ScoringTables
from riskengine.domain.models import (
    CardiovascularSymptoms,
    DomainRiskAssessment,
    FactorCategory,
    FactorSeverity,
    Gender,
    NormalizedAssessmentInput,
    RiskDomain,
    RiskFactor,
)
from riskengine.services.scoring import FactorSpec, flagged_factors, require_block, total_weight

C = FactorCategory
S = FactorSeverity

# (lower bound inclusive, points); first match from the top wins
AGE_POINTS: tuple[tuple[int, float], ...] = ((65, 8), (55, 6), (45, 4), (35, 2))

HISTORY_FACTORS: dict[str, FactorSpec] = {
    "known_diabetes": FactorSpec(4, C.HISTORY, S.MODERATE, "A"),
    "hypertension": FactorSpec(3, C.HISTORY, S.MODERATE, "A"),
    "high_cholesterol": FactorSpec(3, C.HISTORY, S.MODERATE, "A"),
    "family_history": FactorSpec(3, C.HISTORY, S.MILD, "A"),
}

SYMPTOM_FACTORS: dict[str, FactorSpec] = {
    "chest_pain": FactorSpec(15, C.SYMPTOM, S.SEVERE, "A"),
    "palpitations": FactorSpec(5, C.SYMPTOM, S.MILD, "B"),
    "syncope": FactorSpec(20, C.SYMPTOM, S.CRITICAL, "B"),
    "severe_headache": FactorSpec(5, C.SYMPTOM, S.MODERATE, "C"),
    "visual_changes": FactorSpec(5, C.SYMPTOM, S.MODERATE, "C"),
    "elevated_blood_pressure": FactorSpec(8, C.VITAL, S.MODERATE, "B"),
}

DYSPNEA = FactorSpec(10, C.SYMPTOM, S.SEVERE, "A")
MALE = FactorSpec(3, C.DEMOGRAPHIC, S.MILD, "A")
SMOKING = FactorSpec(4, C.LIFESTYLE, S.MODERATE, "A")


class CardiovascularScorer:
    """Scores cardiovascular risk from demographics, history and acute symptoms."""

    domain = RiskDomain.CARDIOVASCULAR

    def __init__(self, thresholds: DomainThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringTables().thresholds_for(self.domain)

    def score(self, data: NormalizedAssessmentInput) -> DomainRiskAssessment:
        block = require_block(data, self.domain)
        assert isinstance(block, CardiovascularSymptoms)

        framingham = self._framingham_factors(data, block)
        symptoms = flagged_factors(block, SYMPTOM_FACTORS)
        if block.shortness_of_breath or block.shortness_of_breath_at_rest:
            symptoms.append(DYSPNEA.build("shortness_of_breath"))

        factors = framingham + symptoms
        score = total_weight(factors)
        return DomainRiskAssessment(
            domain=self.domain,
            overall_score=score,
            risk_level=self.thresholds.level_for(score),
            triggered_factors=factors,
            emergency_indicators=self._emergency_indicators(block),
            subscores={
                "framingham_points": total_weight(framingham),
                "symptom_points": total_weight(symptoms),
            },
        )

    def _framingham_factors(
        self, data: NormalizedAssessmentInput, block: CardiovascularSymptoms
    ) -> list[RiskFactor]:
        demo = data.demographics
        factors: list[RiskFactor] = []

        if demo.age is not None:
            for lower, points in AGE_POINTS:
                if demo.age >= lower:
                    spec = FactorSpec(points, C.DEMOGRAPHIC, S.MODERATE if points >= 6 else S.MILD, "A")
                    factors.append(spec.build(f"age_{lower}_plus", float(demo.age)))
                    break
        if demo.gender is Gender.MALE:
            factors.append(MALE.build("male_sex", demo.gender.value))
        if demo.smoking:
            factors.append(SMOKING.build("smoking"))

        factors.extend(flagged_factors(block, HISTORY_FACTORS))
        return factors

    @staticmethod
    def _emergency_indicators(block: CardiovascularSymptoms) -> list[str]:
        indicators = []
        if block.chest_pain and block.shortness_of_breath_at_rest:
            indicators.append("acute_coronary_syndrome_pattern")
        if (
            block.severe_headache
            and block.family_history
            and (block.elevated_blood_pressure or block.hypertension)
        ):
            indicators.append("hypertensive_crisis_pattern")
        if block.syncope and block.chest_pain:
            indicators.append("cardiac_syncope_pattern")
        return indicators
