"""
Tests for rule-based emergency detection.

The detector is exercised through the real scorers and analyzer so that each
rule sees the same domain assessments it would see in production.
"""

import pytest

from riskengine.domain.models import (
    AlertSeverity,
    PlanSpecificity,
    TemporalRiskProgression,
)
from riskengine.services.emergency_detection import (
    CVV,
    SAMU,
    CoOccurrenceRule,
    EmergencyDetector,
    TemporalVelocityRule,
    default_rules,
)
from riskengine.services.mental_health import GAD7_ITEMS, PHQ9_ITEMS
from riskengine.services.pipeline import AssessmentService


@pytest.fixture
def service(app_config) -> AssessmentService:
    return AssessmentService(app_config)


@pytest.fixture
def detect(service):
    """Score, combine and detect for one input, without history."""

    def _detect(data, temporal: TemporalRiskProgression | None = None):
        domain_scores, _ = service.score_domains(data)
        composite = service.analyzer.combine(
            domain_scores, assessment_id="a-1", user_id=data.user_id, timestamp=data.assessed_at
        )
        return service.detector.detect(data, domain_scores, composite, temporal)

    return _detect


class TestImmediateRules:
    def test_acute_coronary_syndrome(self, detect, make_input) -> None:
        alerts = detect(
            make_input(cardiovascular={"chest_pain": True, "shortness_of_breath_at_rest": True})
        )
        assert len(alerts) == 1
        [alert] = alerts
        assert alert.condition == "acute_coronary_syndrome_pattern"
        assert alert.severity is AlertSeverity.IMMEDIATE
        assert alert.time_to_action_minutes == 15
        assert alert.triggering_symptoms == [
            "cardiovascular.chest_pain",
            "cardiovascular.shortness_of_breath_at_rest",
        ]
        assert SAMU in alert.contact_numbers
        assert alert.recommended_actions

    def test_chest_pain_with_exertional_dyspnea_is_not_acs(self, detect, make_input) -> None:
        alerts = detect(make_input(cardiovascular={"chest_pain": True, "shortness_of_breath": True}))
        assert alerts == []

    def test_ketoacidosis_is_deduplicated_by_condition(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                diabetes={
                    "polydipsia": True,
                    "polyphagia": True,
                    "polyuria": True,
                    "rapid_weight_loss": True,
                    "ketosis_symptoms": True,
                }
            )
        )
        conditions = [a.condition for a in alerts]
        assert conditions.count("diabetic_ketoacidosis_pattern") == 1

    def test_ketosis_alone_triggers_ketoacidosis_alert(self, detect, make_input) -> None:
        alerts = detect(make_input(diabetes={"ketosis_symptoms": True}))
        assert [a.condition for a in alerts] == ["diabetic_ketoacidosis_pattern"]

    def test_imminent_suicide_risk(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                mental_health={
                    "plan_specificity": PlanSpecificity.SPECIFIC,
                    "access_to_means": True,
                }
            )
        )
        [alert] = alerts
        assert alert.condition == "imminent_suicide_risk"
        assert alert.time_to_action_minutes == 0
        assert alert.contact_numbers == [CVV, SAMU]

    def test_diabetic_cardiac_emergency(self, detect, make_input) -> None:
        # diabetes 60 (critical), cardiovascular 33 (high)
        alerts = detect(
            make_input(
                diabetes={"polydipsia": True, "polyphagia": True, "polyuria": True},
                cardiovascular={
                    "chest_pain": True,
                    "palpitations": True,
                    "hypertension": True,
                    "high_cholesterol": True,
                    "family_history": True,
                    "known_diabetes": True,
                },
            )
        )
        [alert] = alerts
        assert alert.condition == "diabetic_cardiac_emergency"
        assert alert.severity is AlertSeverity.IMMEDIATE
        assert alert.time_to_action_minutes == 20
        assert alert.triggering_symptoms == ["diabetes:critical", "cardiovascular:high"]

    def test_diabetic_cardiac_needs_high_cardiovascular_level(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                diabetes={"polydipsia": True, "polyphagia": True, "polyuria": True},
                cardiovascular={"chest_pain": True, "palpitations": True, "hypertension": True},
            )
        )
        assert alerts == []

    def test_severe_asthma(self, detect, make_input) -> None:
        alerts = detect(
            make_input(respiratory={"dyspnea": True, "unable_to_speak_full_sentences": True})
        )
        assert [a.condition for a in alerts] == ["severe_asthma_pattern"]


class TestCriticalRules:
    def test_hypertensive_crisis_needs_a_pressure_symptom(self, detect, make_input) -> None:
        without = detect(
            make_input(cardiovascular={"severe_headache": True, "family_history": True})
        )
        with_pressure = detect(
            make_input(
                cardiovascular={
                    "severe_headache": True,
                    "family_history": True,
                    "hypertension": True,
                }
            )
        )
        assert without == []
        [alert] = with_pressure
        assert alert.condition == "hypertensive_crisis_pattern"
        assert alert.severity is AlertSeverity.CRITICAL
        assert "cardiovascular.hypertension" in alert.triggering_symptoms

    def test_high_suicide_risk(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                mental_health={"plan_specificity": PlanSpecificity.VAGUE, "previous_attempt": True}
            )
        )
        assert [a.condition for a in alerts] == ["high_suicide_risk"]
        assert alerts[0].time_to_action_minutes == 60

    def test_severe_depression_with_psychotic_features(self, detect, make_input) -> None:
        fields = dict.fromkeys(PHQ9_ITEMS[:7], True) | {"psychotic_features": True}
        alerts = detect(make_input(mental_health=fields))
        assert [a.condition for a in alerts] == ["severe_depression_with_psychotic_features"]

    def test_copd_exacerbation(self, detect, make_input) -> None:
        alerts = detect(
            make_input(respiratory={"dyspnea": True, "sputum_production": True, "fever": True})
        )
        assert [a.condition for a in alerts] == ["copd_exacerbation_pattern"]
        assert alerts[0].severity is AlertSeverity.CRITICAL


class TestHighRules:
    def test_multiple_critical_domains(self, detect, make_input) -> None:
        # 27 depression points + 15 for moderate suicide risk = 42, critical
        mental = dict.fromkeys(PHQ9_ITEMS, True)
        mental.update(suicidal_ideation=True, previous_attempt=True)
        alerts = detect(
            make_input(
                diabetes={"polydipsia": True, "polyphagia": True, "polyuria": True},
                mental_health=mental,
            )
        )
        multiple = next(a for a in alerts if a.condition == "multiple_critical_domains")
        assert multiple.severity is AlertSeverity.HIGH
        assert multiple.triggering_symptoms == ["diabetes:critical", "mental_health:critical"]

    def test_severe_anxiety(self, detect, make_input) -> None:
        alerts = detect(make_input(mental_health=dict.fromkeys(GAD7_ITEMS, True)))
        assert [a.condition for a in alerts] == ["severe_anxiety"]

    def test_anxiety_at_fifteen_is_not_severe(self, detect, make_input) -> None:
        alerts = detect(make_input(mental_health=dict.fromkeys(GAD7_ITEMS[:5], True)))
        assert alerts == []

    def test_anxiety_above_fifteen_is_severe(self, detect, make_input) -> None:
        alerts = detect(make_input(mental_health=dict.fromkeys(GAD7_ITEMS[:6], True)))
        assert [a.condition for a in alerts] == ["severe_anxiety"]

    def test_sleep_apnea_with_cardiovascular_risk(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                respiratory={"snoring": True, "tiredness": True, "observed_apnea": True},
                cardiovascular={"hypertension": True},
                demographics={"gender": "M", "age": 60},
            )
        )
        [alert] = alerts
        assert alert.condition == "sleep_apnea_with_cardiovascular_risk"
        assert "cardiovascular.hypertension" in alert.triggering_symptoms

    def test_rapid_progression_from_temporal_velocity(self, detect, make_input, make_composite) -> None:
        latest = make_composite(61.0, 5)
        temporal = TemporalRiskProgression(
            user_id="user-1", ordered_assessments=[latest], velocity=9.5
        )
        alerts = detect(make_input(), temporal)
        [alert] = alerts
        assert alert.condition == "rapid_risk_progression"
        assert alert.time_to_action_minutes == 240

    def test_velocity_at_threshold_does_not_trigger(self, detect, make_input, make_composite) -> None:
        temporal = TemporalRiskProgression(
            user_id="user-1", ordered_assessments=[make_composite(10.0)], velocity=5.0
        )
        assert detect(make_input(), temporal) == []


class TestDetectorBehavior:
    def test_alerts_are_ordered_by_severity_then_time(self, detect, make_input) -> None:
        alerts = detect(
            make_input(
                cardiovascular={
                    "chest_pain": True,
                    "shortness_of_breath_at_rest": True,
                    "syncope": True,
                },
                mental_health=dict.fromkeys(GAD7_ITEMS, True),
            )
        )
        assert [a.condition for a in alerts] == [
            "acute_coronary_syndrome_pattern",
            "cardiac_syncope_pattern",
            "severe_anxiety",
        ]

    def test_empty_input_yields_no_alerts(self, detect, make_input) -> None:
        assert detect(make_input()) == []

    def test_alert_ids_are_deterministic(self, detect, make_input) -> None:
        data = make_input(respiratory={"dyspnea": True, "unable_to_speak_full_sentences": True})
        assert detect(data)[0].id == detect(data)[0].id

    def test_custom_rule_set(self, service, make_input) -> None:
        detector = EmergencyDetector(
            [
                CoOccurrenceRule(
                    condition="palpitations_reported",
                    severity=AlertSeverity.HIGH,
                    time_to_action_minutes=180,
                    all_of=("cardiovascular.palpitations",),
                )
            ]
        )
        data = make_input(cardiovascular={"palpitations": True})
        domain_scores, _ = service.score_domains(data)
        composite = service.analyzer.combine(
            domain_scores, assessment_id="x", user_id="user-1", timestamp=data.assessed_at
        )
        [alert] = detector.detect(data, domain_scores, composite)
        assert alert.condition == "palpitations_reported"

    def test_velocity_threshold_is_configurable(self) -> None:
        rule = next(r for r in default_rules(7.5) if isinstance(r, TemporalVelocityRule))
        assert rule.threshold == 7.5
