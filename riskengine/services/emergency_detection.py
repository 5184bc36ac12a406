"""
Rule-based emergency detection.

Rules are predicates over raw symptoms, not over the cumulative score, so a single
pathognomonic combination is caught even when the composite stays low. The rule set
is a closed union of tagged variants; adding a variant without handling it in
``_evaluate`` is a type error.
"""

import uuid
from typing import Annotated, Literal, assert_never

from pydantic import BaseModel, ConfigDict, Field

from riskengine.domain.models import (
    AlertSeverity,
    CompositeRiskAssessment,
    DomainRiskAssessment,
    DomainStatus,
    EmergencyAlert,
    MentalHealthSymptoms,
    NormalizedAssessmentInput,
    RiskDomain,
    RiskLevel,
    SuicideRiskLevel,
    TemporalRiskProgression,
)
from riskengine.services.mental_health import (
    SEVERE_ANXIETY_CUT,
    SEVERE_DEPRESSION_CUT,
    stratify_suicide_risk,
)

SAMU = "192"  # mobile emergency medical service
CVV = "188"  # suicide prevention hotline

ALERT_NAMESPACE = uuid.UUID("6f1d8a52-3c1e-5b7a-9d2f-0e4c8b1a7d35")


class _RuleBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: str
    severity: AlertSeverity
    time_to_action_minutes: int = Field(ge=0)
    recommended_actions: tuple[str, ...] = ()
    contact_numbers: tuple[str, ...] = (SAMU,)


class CoOccurrenceRule(_RuleBase):
    """Every ``all_of`` flag set, and at least one ``any_of`` flag when given."""

    kind: Literal["co_occurrence"] = "co_occurrence"
    all_of: tuple[str, ...]
    any_of: tuple[str, ...] = ()


class TriadRule(_RuleBase):
    """Three cardinal symptoms together, plus every ``accompanied_by`` flag."""

    kind: Literal["triad"] = "triad"
    members: tuple[str, str, str]
    accompanied_by: tuple[str, ...] = ()


class StratifiedSeverityRule(_RuleBase):
    """Suicide stratification lands exactly on ``stratum``."""

    kind: Literal["stratified_severity"] = "stratified_severity"
    stratum: SuicideRiskLevel


class SubscaleThresholdRule(_RuleBase):
    """A domain subscore at or above ``minimum`` with supporting flags."""

    kind: Literal["subscale_threshold"] = "subscale_threshold"
    domain: RiskDomain
    subscale: str
    minimum: float
    all_of: tuple[str, ...] = ()
    any_of: tuple[str, ...] = ()


class DomainLevelCountRule(_RuleBase):
    """At least ``minimum_domains`` domains independently at ``level``."""

    kind: Literal["domain_level_count"] = "domain_level_count"
    level: RiskLevel = RiskLevel.CRITICAL
    minimum_domains: int = Field(default=2, ge=1)


class DomainLevelPairRule(_RuleBase):
    """``domain`` at or above ``level`` while ``companion`` is at or above ``companion_level``."""

    kind: Literal["domain_level_pair"] = "domain_level_pair"
    domain: RiskDomain
    level: RiskLevel
    companion: RiskDomain
    companion_level: RiskLevel


class TemporalVelocityRule(_RuleBase):
    """Composite velocity above ``threshold`` points per day."""

    kind: Literal["temporal_velocity"] = "temporal_velocity"
    threshold: float = Field(gt=0.0)


EmergencyRule = Annotated[
    CoOccurrenceRule
    | TriadRule
    | StratifiedSeverityRule
    | SubscaleThresholdRule
    | DomainLevelCountRule
    | DomainLevelPairRule
    | TemporalVelocityRule,
    Field(discriminator="kind"),
]


def default_rules(velocity_threshold: float = 5.0) -> list[EmergencyRule]:
    """The built-in rule set, grouped by severity tier."""
    immediate, critical, high = AlertSeverity.IMMEDIATE, AlertSeverity.CRITICAL, AlertSeverity.HIGH
    return [
        # Immediate: 0-20 minutes
        CoOccurrenceRule(
            condition="acute_coronary_syndrome_pattern",
            severity=immediate,
            time_to_action_minutes=15,
            all_of=("cardiovascular.chest_pain", "cardiovascular.shortness_of_breath_at_rest"),
            recommended_actions=(
                "Call SAMU 192 immediately",
                "Chew 300 mg aspirin if not allergic",
                "Keep the patient at rest, do not drive to hospital",
            ),
        ),
        TriadRule(
            condition="diabetic_ketoacidosis_pattern",
            severity=immediate,
            time_to_action_minutes=15,
            members=("diabetes.polydipsia", "diabetes.polyphagia", "diabetes.polyuria"),
            accompanied_by=("diabetes.rapid_weight_loss",),
            recommended_actions=(
                "Go to the nearest emergency department",
                "Measure capillary glucose and ketones if available",
            ),
        ),
        CoOccurrenceRule(
            condition="diabetic_ketoacidosis_pattern",
            severity=immediate,
            time_to_action_minutes=15,
            all_of=("diabetes.ketosis_symptoms",),
            recommended_actions=(
                "Go to the nearest emergency department",
                "Measure capillary glucose and ketones if available",
            ),
        ),
        StratifiedSeverityRule(
            condition="imminent_suicide_risk",
            severity=immediate,
            time_to_action_minutes=0,
            stratum=SuicideRiskLevel.IMMINENT,
            recommended_actions=(
                "Do not leave the person alone",
                "Remove access to means",
                "Call CVV 188 or SAMU 192 now",
            ),
            contact_numbers=(CVV, SAMU),
        ),
        DomainLevelPairRule(
            condition="diabetic_cardiac_emergency",
            severity=immediate,
            time_to_action_minutes=20,
            domain=RiskDomain.DIABETES,
            level=RiskLevel.CRITICAL,
            companion=RiskDomain.CARDIOVASCULAR,
            companion_level=RiskLevel.HIGH,
            recommended_actions=(
                "Call SAMU 192 immediately",
                "Report both the diabetic and the cardiac symptoms on arrival",
                "Bring the list of current medications",
            ),
        ),
        CoOccurrenceRule(
            condition="severe_asthma_pattern",
            severity=immediate,
            time_to_action_minutes=15,
            all_of=("respiratory.dyspnea", "respiratory.unable_to_speak_full_sentences"),
            recommended_actions=(
                "Use rescue inhaler now",
                "Call SAMU 192 if no improvement within minutes",
            ),
        ),
        # Critical: 15-60 minutes
        CoOccurrenceRule(
            condition="hypertensive_crisis_pattern",
            severity=critical,
            time_to_action_minutes=30,
            all_of=("cardiovascular.severe_headache", "cardiovascular.family_history"),
            any_of=("cardiovascular.elevated_blood_pressure", "cardiovascular.hypertension"),
            recommended_actions=(
                "Measure blood pressure now",
                "Seek urgent care if above 180/120 mmHg",
            ),
        ),
        CoOccurrenceRule(
            condition="cardiac_syncope_pattern",
            severity=critical,
            time_to_action_minutes=20,
            all_of=("cardiovascular.syncope", "cardiovascular.chest_pain"),
            recommended_actions=("Urgent cardiology evaluation", "Avoid driving or exertion"),
        ),
        StratifiedSeverityRule(
            condition="high_suicide_risk",
            severity=critical,
            time_to_action_minutes=60,
            stratum=SuicideRiskLevel.HIGH,
            recommended_actions=(
                "Same-day mental health evaluation",
                "Agree a safety plan with a trusted contact",
            ),
            contact_numbers=(CVV, SAMU),
        ),
        SubscaleThresholdRule(
            condition="severe_depression_with_psychotic_features",
            severity=critical,
            time_to_action_minutes=60,
            domain=RiskDomain.MENTAL_HEALTH,
            subscale="depression",
            minimum=SEVERE_DEPRESSION_CUT,
            all_of=("mental_health.psychotic_features",),
            recommended_actions=("Urgent psychiatric evaluation",),
            contact_numbers=(CVV, SAMU),
        ),
        CoOccurrenceRule(
            condition="copd_exacerbation_pattern",
            severity=critical,
            time_to_action_minutes=30,
            all_of=("respiratory.dyspnea", "respiratory.sputum_production", "respiratory.fever"),
            recommended_actions=("Urgent medical evaluation", "Check oxygen saturation if possible"),
        ),
        # High: 1-4 hours
        DomainLevelCountRule(
            condition="multiple_critical_domains",
            severity=high,
            time_to_action_minutes=120,
            recommended_actions=("Physician review of all critical domains",),
        ),
        TemporalVelocityRule(
            condition="rapid_risk_progression",
            severity=high,
            time_to_action_minutes=240,
            threshold=velocity_threshold,
            recommended_actions=("Physician review of recent risk trend",),
        ),
        SubscaleThresholdRule(
            condition="severe_anxiety",
            severity=high,
            time_to_action_minutes=120,
            domain=RiskDomain.MENTAL_HEALTH,
            subscale="anxiety",
            minimum=SEVERE_ANXIETY_CUT,
            recommended_actions=("Mental health follow-up within hours",),
            contact_numbers=(CVV,),
        ),
        SubscaleThresholdRule(
            condition="sleep_apnea_with_cardiovascular_risk",
            severity=high,
            time_to_action_minutes=240,
            domain=RiskDomain.RESPIRATORY,
            subscale="stop_bang",
            minimum=5,
            any_of=("respiratory.hypertension", "cardiovascular.hypertension"),
            recommended_actions=("Refer for polysomnography", "Review blood pressure control"),
        ),
    ]


FAILSAFE_CONDITION = "emergency_detection_unavailable"


def failsafe_alert(assessment_id: str) -> EmergencyAlert:
    """Manual-review alert that stands in for the rule set when it cannot be evaluated."""
    return EmergencyAlert(
        id=str(uuid.uuid5(ALERT_NAMESPACE, f"{assessment_id}:{FAILSAFE_CONDITION}")),
        severity=AlertSeverity.HIGH,
        condition=FAILSAFE_CONDITION,
        triggering_symptoms=["manual_review_required"],
        time_to_action_minutes=60,
        recommended_actions=[
            "Review the questionnaire manually",
            "Contact the care team for clinical evaluation",
            "Prioritize scheduling a consultation",
        ],
    )


class EmergencyDetector:
    """Evaluates every rule independently and returns all matches, deduplicated by condition."""

    def __init__(self, rules: list[EmergencyRule] | None = None) -> None:
        self.rules = rules if rules is not None else default_rules()

    def detect(
        self,
        data: NormalizedAssessmentInput,
        domain_scores: list[DomainRiskAssessment],
        composite: CompositeRiskAssessment,
        temporal: TemporalRiskProgression | None = None,
    ) -> list[EmergencyAlert]:
        by_condition: dict[str, EmergencyAlert] = {}
        for rule in self.rules:
            triggering = self._evaluate(rule, data, domain_scores, temporal)
            if triggering is None:
                continue
            alert = EmergencyAlert(
                id=str(uuid.uuid5(ALERT_NAMESPACE, f"{composite.id}:{rule.condition}")),
                severity=rule.severity,
                condition=rule.condition,
                triggering_symptoms=triggering,
                time_to_action_minutes=rule.time_to_action_minutes,
                recommended_actions=list(rule.recommended_actions),
                contact_numbers=list(rule.contact_numbers),
            )
            current = by_condition.get(rule.condition)
            if current is None or _urgency(alert) > _urgency(current):
                by_condition[rule.condition] = alert

        return sorted(
            by_condition.values(),
            key=lambda a: (-a.severity.rank, a.time_to_action_minutes, a.condition),
        )

    @staticmethod
    def _evaluate(
        rule: EmergencyRule,
        data: NormalizedAssessmentInput,
        domain_scores: list[DomainRiskAssessment],
        temporal: TemporalRiskProgression | None,
    ) -> list[str] | None:
        """Return the triggering evidence when ``rule`` matches, else None."""
        match rule:
            case CoOccurrenceRule():
                return _flags_match(data, rule.all_of, rule.any_of)

            case TriadRule():
                return _flags_match(data, rule.members + rule.accompanied_by, ())

            case StratifiedSeverityRule():
                block = data.mental_health
                if not isinstance(block, MentalHealthSymptoms):
                    return None
                if stratify_suicide_risk(block) is not rule.stratum:
                    return None
                return [f"suicide_risk:{rule.stratum.value}"]

            case SubscaleThresholdRule():
                assessment = next((d for d in domain_scores if d.domain == rule.domain), None)
                if assessment is None or assessment.status is not DomainStatus.ASSESSED:
                    return None
                value = assessment.subscores.get(rule.subscale, 0.0)
                if value < rule.minimum:
                    return None
                flags = _flags_match(data, rule.all_of, rule.any_of)
                if flags is None:
                    return None
                return [f"{rule.domain.value}.{rule.subscale}:{value:g}", *flags]

            case DomainLevelCountRule():
                matched = [d.domain.value for d in domain_scores if d.risk_level is rule.level]
                if len(matched) < rule.minimum_domains:
                    return None
                return [f"{domain}:{rule.level.value}" for domain in matched]

            case DomainLevelPairRule():
                levels = {d.domain: d.risk_level for d in domain_scores}
                primary, companion = levels.get(rule.domain), levels.get(rule.companion)
                if primary is None or primary.rank < rule.level.rank:
                    return None
                if companion is None or companion.rank < rule.companion_level.rank:
                    return None
                return [
                    f"{rule.domain.value}:{primary.value}",
                    f"{rule.companion.value}:{companion.value}",
                ]

            case TemporalVelocityRule():
                if temporal is None or temporal.velocity is None:
                    return None
                if temporal.velocity <= rule.threshold:
                    return None
                return [f"velocity:{temporal.velocity:.2f}"]

            case _:
                assert_never(rule)


def _flags_match(
    data: NormalizedAssessmentInput, all_of: tuple[str, ...], any_of: tuple[str, ...]
) -> list[str] | None:
    if not all(data.flag(path) for path in all_of):
        return None
    present_any = [path for path in any_of if data.flag(path)]
    if any_of and not present_any:
        return None
    return list(all_of) + present_any


def _urgency(alert: EmergencyAlert) -> tuple[int, int]:
    return (alert.severity.rank, -alert.time_to_action_minutes)
