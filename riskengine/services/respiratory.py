"""Respiratory scorer: STOP-BANG sleep apnea screen with asthma and COPD sub-rules."""

from riskengine.config import DomainThresholds, ScoringTables
from riskengine.domain.models import (
    DomainRiskAssessment,
    FactorCategory,
    FactorSeverity,
    Gender,
    NormalizedAssessmentInput,
    RespiratorySymptoms,
    RiskDomain,
    RiskFactor,
)
from riskengine.services.scoring import FactorSpec, flagged_factors, require_block, total_weight

C = FactorCategory
S = FactorSeverity

STOP_BANG_ITEM = FactorSpec(3, C.SYMPTOM, S.MODERATE, "A")
STOP_BANG_FLAGS = ("snoring", "tiredness", "observed_apnea", "hypertension")

STOP_BANG_BMI = 35.0
STOP_BANG_AGE = 50
STOP_BANG_NECK_CM = 40.0
STOP_BANG_HIGH_RISK = 5

ASTHMA_FACTORS: dict[str, FactorSpec] = {
    "wheezing": FactorSpec(5, C.SYMPTOM, S.MODERATE, "A"),
    "dyspnea": FactorSpec(8, C.SYMPTOM, S.SEVERE, "A"),
    "chest_tightness": FactorSpec(5, C.SYMPTOM, S.MODERATE, "A"),
    "cough": FactorSpec(3, C.SYMPTOM, S.MILD, "B"),
    "nighttime_symptoms": FactorSpec(5, C.SYMPTOM, S.MODERATE, "A"),
    "exercise_triggered": FactorSpec(3, C.SYMPTOM, S.MILD, "B"),
    "peak_flow_reduction": FactorSpec(6, C.VITAL, S.SEVERE, "A"),
    "unable_to_speak_full_sentences": FactorSpec(10, C.SYMPTOM, S.CRITICAL, "A"),
}

COPD_FACTORS: dict[str, FactorSpec] = {
    "chronic_cough": FactorSpec(6, C.SYMPTOM, S.MODERATE, "A"),
    "sputum_production": FactorSpec(6, C.SYMPTOM, S.MODERATE, "A"),
    "occupational_exposure": FactorSpec(5, C.HISTORY, S.MODERATE, "B"),
    "fever": FactorSpec(4, C.SYMPTOM, S.MODERATE, "B"),
}
SMOKING = FactorSpec(6, C.LIFESTYLE, S.MODERATE, "A")
COPD_AGE = FactorSpec(4, C.DEMOGRAPHIC, S.MILD, "A")
COPD_AGE_FROM = 40


class RespiratoryScorer:
    domain = RiskDomain.RESPIRATORY

    def __init__(self, thresholds: DomainThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringTables().thresholds_for(self.domain)

    def score(self, data: NormalizedAssessmentInput) -> DomainRiskAssessment:
        block = require_block(data, self.domain)
        assert isinstance(block, RespiratorySymptoms)

        apnea = self._stop_bang_factors(data, block)
        asthma = flagged_factors(block, ASTHMA_FACTORS)
        copd = self._copd_factors(data, block)

        factors = apnea + asthma + copd
        score = total_weight(factors)
        return DomainRiskAssessment(
            domain=self.domain,
            overall_score=score,
            risk_level=self.thresholds.level_for(score),
            triggered_factors=factors,
            emergency_indicators=self._emergency_indicators(block),
            subscores={
                "stop_bang": float(len(apnea)),
                "sleep_apnea_points": total_weight(apnea),
                "asthma": total_weight(asthma),
                "copd": total_weight(copd),
                "copd_indicator": float(self._copd_profile(data, block)),
            },
        )

    @staticmethod
    def _stop_bang_factors(
        data: NormalizedAssessmentInput, block: RespiratorySymptoms
    ) -> list[RiskFactor]:
        demo = data.demographics
        factors = flagged_factors(block, dict.fromkeys(STOP_BANG_FLAGS, STOP_BANG_ITEM))
        if demo.bmi is not None and demo.bmi > STOP_BANG_BMI:
            factors.append(STOP_BANG_ITEM.build("bmi_over_35", demo.bmi))
        if demo.age is not None and demo.age > STOP_BANG_AGE:
            factors.append(STOP_BANG_ITEM.build("age_over_50", float(demo.age)))
        if block.neck_circumference_cm is not None and block.neck_circumference_cm > STOP_BANG_NECK_CM:
            factors.append(STOP_BANG_ITEM.build("neck_over_40cm", block.neck_circumference_cm))
        if demo.gender is Gender.MALE:
            factors.append(STOP_BANG_ITEM.build("male_sex", demo.gender.value))
        return factors

    @staticmethod
    def _copd_factors(data: NormalizedAssessmentInput, block: RespiratorySymptoms) -> list[RiskFactor]:
        demo = data.demographics
        factors = flagged_factors(block, COPD_FACTORS)
        if demo.smoking:
            factors.append(SMOKING.build("smoking"))
        # Age only weighs in once there is a productive or chronic cough
        has_copd_symptom = block.chronic_cough or block.sputum_production
        if has_copd_symptom and demo.age is not None and demo.age >= COPD_AGE_FROM:
            factors.append(COPD_AGE.build("age_40_plus", float(demo.age)))
        return factors

    @staticmethod
    def _copd_profile(data: NormalizedAssessmentInput, block: RespiratorySymptoms) -> bool:
        demo = data.demographics
        return (
            demo.smoking
            and demo.age is not None
            and demo.age >= COPD_AGE_FROM
            and (block.chronic_cough or block.sputum_production)
        )

    @staticmethod
    def _emergency_indicators(block: RespiratorySymptoms) -> list[str]:
        indicators = []
        if block.dyspnea and block.unable_to_speak_full_sentences:
            indicators.append("severe_asthma_pattern")
        if block.dyspnea and block.sputum_production and block.fever:
            indicators.append("copd_exacerbation_pattern")
        return indicators
