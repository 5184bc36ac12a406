"""
Domain models for medical risk assessment.

These models represent the core clinical-decision concepts and are framework-agnostic.
They use Pydantic for validation and are frozen: every assessment is produced once
and superseded by a new one, never updated in place.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

EvidenceLevel = Literal["A", "B", "C", "D"]


class RiskDomain(str, Enum):
    """Independent clinical domains scored by the engine."""

    CARDIOVASCULAR = "cardiovascular"
    DIABETES = "diabetes"
    MENTAL_HEALTH = "mental_health"
    RESPIRATORY = "respiratory"


class RiskLevel(str, Enum):
    """Four-tier risk classification shared by domains and the composite."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_LEVEL_RANK[self]


_RISK_LEVEL_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MODERATE: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class DomainStatus(str, Enum):
    ASSESSED = "assessed"
    INSUFFICIENT_DATA = "insufficient_data"


class FactorCategory(str, Enum):
    SYMPTOM = "symptom"
    HISTORY = "history"
    LIFESTYLE = "lifestyle"
    VITAL = "vital"
    DEMOGRAPHIC = "demographic"


class FactorSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"


class SocioeconomicFactor(str, Enum):
    """Access-to-care and social modifiers applied to the composite score."""

    LIMITED_ACCESS_TO_CARE = "limited_access_to_care"
    PUBLIC_SYSTEM_DEPENDENT = "public_system_dependent"
    PRIVATE_INSURANCE = "private_insurance"
    RURAL_LOCATION = "rural_location"
    URBAN_PERIPHERY = "urban_periphery"
    LOW_EDUCATION = "low_education"
    LOW_INCOME = "low_income"
    STRONG_FAMILY_SUPPORT = "strong_family_support"
    RELIGIOUS_COPING = "religious_coping"
    SOCIAL_ISOLATION = "social_isolation"
    DOMESTIC_VIOLENCE = "domestic_violence"
    FAMILY_SUBSTANCE_ABUSE = "family_substance_abuse"


class PlanSpecificity(str, Enum):
    NONE = "none"
    VAGUE = "vague"
    SPECIFIC = "specific"


class SuicideRiskLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    IMMINENT = "imminent"


class AlertSeverity(str, Enum):
    """Emergency tiers, each with a fixed time-to-action window."""

    HIGH = "high"  # 1-4 hours
    CRITICAL = "critical"  # 15-60 minutes
    IMMEDIATE = "immediate"  # 0-15 minutes

    @property
    def rank(self) -> int:
        return _ALERT_SEVERITY_RANK[self]


_ALERT_SEVERITY_RANK = {
    AlertSeverity.HIGH: 1,
    AlertSeverity.CRITICAL: 2,
    AlertSeverity.IMMEDIATE: 3,
}


class TrendClassification(str, Enum):
    STABLE = "stable"
    IMPROVING = "improving"
    ASCENDING = "ascending"
    ACCELERATING = "accelerating"
    CRITICAL_PROGRESSION = "critical_progression"


class TemporalFlag(str, Enum):
    ESCALATE = "escalate"  # velocity above threshold
    NOTIFY = "notify"  # acceleration above threshold


class EscalationLevel(str, Enum):
    ROUTINE = "routine"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    IMMEDIATE = "immediate"


class EscalationTarget(str, Enum):
    AI = "ai"
    NURSE = "nurse"
    PHYSICIAN = "physician"
    EMERGENCY_SERVICES = "emergency_services"


# ---------------------------------------------------------------------------
# Normalized input
# ---------------------------------------------------------------------------


def as_utc(v: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v.astimezone(UTC)


class _Block(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Demographics(_Block):
    """Demographic modifiers shared by every domain."""

    age: int | None = Field(None, ge=0, le=130)
    gender: Gender | None = None
    bmi: float | None = Field(None, gt=0.0, lt=150.0)
    smoking: bool = False
    socioeconomic_factors: tuple[SocioeconomicFactor, ...] = ()

    @field_validator("socioeconomic_factors")
    @classmethod
    def sort_factors(cls, v: tuple[SocioeconomicFactor, ...]) -> tuple[SocioeconomicFactor, ...]:
        # Sorted and de-duplicated so serialization is stable across processes
        return tuple(sorted(set(v), key=lambda f: f.value))


class CardiovascularSymptoms(_Block):
    chest_pain: bool = False
    shortness_of_breath: bool = False
    shortness_of_breath_at_rest: bool = False
    palpitations: bool = False
    syncope: bool = False
    severe_headache: bool = False
    visual_changes: bool = False
    elevated_blood_pressure: bool = False
    hypertension: bool = False
    high_cholesterol: bool = False
    known_diabetes: bool = False
    family_history: bool = False


class DiabetesSymptoms(_Block):
    polydipsia: bool = False  # excessive thirst
    polyphagia: bool = False  # excessive hunger
    polyuria: bool = False  # frequent urination
    weight_loss: bool = False
    rapid_weight_loss: bool = False
    fatigue: bool = False
    blurred_vision: bool = False
    slow_healing: bool = False
    frequent_infections: bool = False
    family_history: bool = False
    gestational_diabetes: bool = False
    ketosis_symptoms: bool = False

    @property
    def triad_count(self) -> int:
        return sum((self.polydipsia, self.polyphagia, self.polyuria))

    @property
    def triad_complete(self) -> bool:
        return self.triad_count == 3


class MentalHealthSymptoms(_Block):
    # PHQ-9 items
    anhedonia: bool = False
    depressed_mood: bool = False
    sleep_disturbance: bool = False
    fatigue: bool = False
    appetite_changes: bool = False
    guilt: bool = False
    concentration_problems: bool = False
    psychomotor_changes: bool = False
    self_harm_thoughts: bool = False

    # GAD-7 items
    nervousness: bool = False
    uncontrollable_worry: bool = False
    excessive_worry: bool = False
    trouble_relaxing: bool = False
    restlessness: bool = False
    irritability: bool = False
    fear_of_catastrophe: bool = False

    # Suicide risk stratification inputs
    suicidal_ideation: bool = False
    plan_specificity: PlanSpecificity = PlanSpecificity.NONE
    access_to_means: bool = False
    previous_attempt: bool = False

    psychotic_features: bool = False


class RespiratorySymptoms(_Block):
    # STOP-BANG items not covered by demographics
    snoring: bool = False
    tiredness: bool = False
    observed_apnea: bool = False
    hypertension: bool = False
    neck_circumference_cm: float | None = Field(None, gt=0.0, lt=100.0)

    # Asthma
    wheezing: bool = False
    dyspnea: bool = False
    chest_tightness: bool = False
    cough: bool = False
    nighttime_symptoms: bool = False
    exercise_triggered: bool = False
    peak_flow_reduction: bool = False
    unable_to_speak_full_sentences: bool = False

    # COPD
    chronic_cough: bool = False
    sputum_production: bool = False
    occupational_exposure: bool = False
    fever: bool = False


DomainBlock = CardiovascularSymptoms | DiabetesSymptoms | MentalHealthSymptoms | RespiratorySymptoms


class NormalizedAssessmentInput(_Block):
    """Flattened, typed view of one user's questionnaire at one point in time.

    A domain block left as ``None`` means the questionnaire never covered that
    domain; its scorer reports insufficient data instead of guessing.
    """

    user_id: str = Field(min_length=1)
    assessed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    demographics: Demographics = Field(default_factory=Demographics)
    cardiovascular: CardiovascularSymptoms | None = None
    diabetes: DiabetesSymptoms | None = None
    mental_health: MentalHealthSymptoms | None = None
    respiratory: RespiratorySymptoms | None = None
    extracted_entities: tuple[str, ...] = ()

    @field_validator("assessed_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    def block(self, domain: RiskDomain) -> DomainBlock | None:
        return getattr(self, domain.value)

    def flag(self, path: str) -> bool:
        """Resolve a ``"<domain>.<field>"`` (or ``"demographics.<field>"``) symptom flag.

        Missing blocks read as False so emergency rules stay evaluable on partial input.
        """
        section, _, field_name = path.partition(".")
        block = getattr(self, section, None)
        if block is None:
            return False
        return bool(getattr(block, field_name))


# ---------------------------------------------------------------------------
# Scoring outputs
# ---------------------------------------------------------------------------


class RiskFactor(BaseModel):
    """Atomic contribution to a domain score."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: bool | float | str
    weight: float = Field(ge=0.0, description="Points contributed to the domain score")
    category: FactorCategory
    severity: FactorSeverity
    evidence_level: EvidenceLevel


class DomainRiskAssessment(BaseModel):
    """Risk result for a single domain."""

    model_config = ConfigDict(frozen=True)

    domain: RiskDomain
    status: DomainStatus = DomainStatus.ASSESSED
    overall_score: float = Field(ge=0.0)
    risk_level: RiskLevel
    triggered_factors: list[RiskFactor] = Field(default_factory=list)
    emergency_indicators: list[str] = Field(default_factory=list)
    subscores: dict[str, float] = Field(default_factory=dict)
    missing_fields: list[str] = Field(default_factory=list)

    @classmethod
    def insufficient(cls, domain: RiskDomain, missing_fields: list[str]) -> "DomainRiskAssessment":
        return cls(
            domain=domain,
            status=DomainStatus.INSUFFICIENT_DATA,
            overall_score=0.0,
            risk_level=RiskLevel.LOW,
            missing_fields=missing_fields,
        )

    @property
    def is_elevated(self) -> bool:
        return self.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)


class SynergyContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    pair: tuple[RiskDomain, RiskDomain]
    correlation: float
    multiplier: float
    contribution: float = Field(ge=0.0)


class EmergencyAlert(BaseModel):
    """Emergency pattern requiring action within a bounded time."""

    model_config = ConfigDict(frozen=True)

    id: str
    severity: AlertSeverity
    condition: str
    triggering_symptoms: list[str]
    time_to_action_minutes: int = Field(ge=0)
    recommended_actions: list[str] = Field(default_factory=list)
    contact_numbers: list[str] = Field(default_factory=list)


class CompositeRiskAssessment(BaseModel):
    """Combined multi-domain assessment, owned by the caller for persistence."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    timestamp: datetime
    domain_scores: list[DomainRiskAssessment]
    raw_score: float = Field(ge=0.0, description="Unrounded composite score used for trend math")
    composite_level: RiskLevel
    exponential_factor: float = Field(default=1.0, ge=1.0)
    synergy_bonus: float = Field(default=0.0, ge=0.0)
    socioeconomic_multiplier: float = Field(default=1.0, gt=0.0)
    synergy_contributions: list[SynergyContribution] = Field(default_factory=list)
    emergency_alerts: list[EmergencyAlert] = Field(default_factory=list)
    degraded: bool = Field(
        default=False, description="True when built by the fallback path after an analyzer failure"
    )

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def composite_score(self) -> int:
        """Display score, rounded half-up."""
        return int(self.raw_score + 0.5)

    @model_validator(mode="after")
    def one_score_per_domain(self) -> "CompositeRiskAssessment":
        domains = [d.domain for d in self.domain_scores]
        if sorted(domains, key=lambda d: d.value) != sorted(RiskDomain, key=lambda d: d.value):
            raise ValueError("domain_scores must contain exactly one entry per risk domain")
        return self

    def domain(self, domain: RiskDomain) -> DomainRiskAssessment:
        return next(d for d in self.domain_scores if d.domain == domain)


class TemporalRiskProgression(BaseModel):
    """Velocity and trend of a user's composite score across assessments."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    ordered_assessments: list[CompositeRiskAssessment]
    velocity: float | None = Field(None, description="Composite points per day")
    acceleration: float | None = Field(None, description="Composite points per day squared")
    trend: TrendClassification | None = None
    flags: list[TemporalFlag] = Field(default_factory=list)
    domain_velocities: dict[RiskDomain, float | None] = Field(default_factory=dict)
    projected_score_7d: float | None = None
    projected_score_30d: float | None = None
    next_assessment_in_days: int = Field(default=30, gt=0)


class EscalationDecision(BaseModel):
    """Who must act, and within what time bound."""

    model_config = ConfigDict(frozen=True)

    level: EscalationLevel
    time_to_action_minutes: int | None
    escalation_target: EscalationTarget
    reasons: list[str] = Field(min_length=1)


class AssessmentOutcome(BaseModel):
    """Everything one pipeline run hands back to its caller."""

    model_config = ConfigDict(frozen=True)

    composite: CompositeRiskAssessment
    temporal: TemporalRiskProgression
    decision: EscalationDecision
    insufficient_domains: list[RiskDomain] = Field(default_factory=list)
