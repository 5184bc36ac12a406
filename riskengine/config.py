"""
Configuration management with environment variable support and validation.

Design principles:
- Scoring tables are data, validated once at startup (fail fast)
- A broken table is fatal: wrong thresholds are a patient-safety issue
- Type safety with Pydantic
- Environment overrides for operational knobs only
"""

import itertools
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from riskengine.domain.models import EvidenceLevel, RiskDomain, RiskLevel, SocioeconomicFactor
from riskengine.errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)


class DomainThresholds(BaseModel):
    """Score cut-offs for the moderate, high and critical tiers."""

    moderate: float = Field(gt=0.0)
    high: float = Field(gt=0.0)
    critical: float = Field(gt=0.0)

    @model_validator(mode="after")
    def strictly_increasing(self) -> "DomainThresholds":
        if not (self.moderate < self.high < self.critical):
            raise ValueError(
                f"thresholds must be strictly increasing, got "
                f"{self.moderate}/{self.high}/{self.critical}"
            )
        return self

    def level_for(self, score: float) -> RiskLevel:
        if score >= self.critical:
            return RiskLevel.CRITICAL
        if score >= self.high:
            return RiskLevel.HIGH
        if score >= self.moderate:
            return RiskLevel.MODERATE
        return RiskLevel.LOW


class SynergyRule(BaseModel):
    """Evidence-graded amplification for one unordered pair of domains."""

    domains: tuple[RiskDomain, RiskDomain]
    correlation: float = Field(ge=0.0, le=1.0)
    synergy_factor: float = Field(gt=0.0)
    evidence_level: EvidenceLevel = "B"

    @field_validator("domains")
    @classmethod
    def distinct_domains(cls, v: tuple[RiskDomain, RiskDomain]) -> tuple[RiskDomain, RiskDomain]:
        if v[0] == v[1]:
            raise ValueError(f"synergy pair must name two different domains, got {v[0].value} twice")
        return v

    @property
    def key(self) -> frozenset[RiskDomain]:
        return frozenset(self.domains)


def _default_domain_thresholds() -> dict[RiskDomain, DomainThresholds]:
    return {
        RiskDomain.CARDIOVASCULAR: DomainThresholds(moderate=15, high=30, critical=45),
        RiskDomain.DIABETES: DomainThresholds(moderate=25, high=40, critical=60),
        RiskDomain.MENTAL_HEALTH: DomainThresholds(moderate=15, high=25, critical=40),
        RiskDomain.RESPIRATORY: DomainThresholds(moderate=15, high=25, critical=40),
    }


def _default_synergy_rules() -> list[SynergyRule]:
    d = RiskDomain
    return [
        SynergyRule(
            domains=(d.DIABETES, d.CARDIOVASCULAR), correlation=0.85, synergy_factor=2.5, evidence_level="A"
        ),
        SynergyRule(
            domains=(d.DIABETES, d.MENTAL_HEALTH), correlation=0.65, synergy_factor=1.6, evidence_level="A"
        ),
        SynergyRule(
            domains=(d.DIABETES, d.RESPIRATORY), correlation=0.70, synergy_factor=1.6, evidence_level="B"
        ),
        SynergyRule(
            domains=(d.CARDIOVASCULAR, d.MENTAL_HEALTH), correlation=0.55, synergy_factor=1.6, evidence_level="A"
        ),
        SynergyRule(
            domains=(d.CARDIOVASCULAR, d.RESPIRATORY), correlation=0.60, synergy_factor=1.8, evidence_level="A"
        ),
        SynergyRule(
            domains=(d.MENTAL_HEALTH, d.RESPIRATORY), correlation=0.60, synergy_factor=1.2, evidence_level="B"
        ),
    ]


def _default_socioeconomic_multipliers() -> dict[SocioeconomicFactor, float]:
    s = SocioeconomicFactor
    return {
        s.LIMITED_ACCESS_TO_CARE: 1.3,
        s.PUBLIC_SYSTEM_DEPENDENT: 1.2,
        s.PRIVATE_INSURANCE: 0.9,
        s.RURAL_LOCATION: 1.3,
        s.URBAN_PERIPHERY: 1.15,
        s.LOW_EDUCATION: 1.25,
        s.LOW_INCOME: 1.3,
        s.STRONG_FAMILY_SUPPORT: 0.85,
        s.RELIGIOUS_COPING: 0.9,
        s.SOCIAL_ISOLATION: 1.4,
        s.DOMESTIC_VIOLENCE: 1.6,
        s.FAMILY_SUBSTANCE_ABUSE: 1.3,
    }


class ScoringTables(BaseModel):
    """Every numeric table the scorers and the compound analyzer read."""

    domain_thresholds: dict[RiskDomain, DomainThresholds] = Field(
        default_factory=_default_domain_thresholds
    )
    composite_thresholds: DomainThresholds = Field(
        default_factory=lambda: DomainThresholds(moderate=40, high=60, critical=80)
    )
    synergy_rules: list[SynergyRule] = Field(default_factory=_default_synergy_rules)
    socioeconomic_multipliers: dict[SocioeconomicFactor, float] = Field(
        default_factory=_default_socioeconomic_multipliers
    )
    socioeconomic_min: float = Field(default=0.75, gt=0.0)
    socioeconomic_max: float = Field(default=2.0, gt=0.0)
    exponential_base: float = Field(default=1.3, ge=1.0)

    @field_validator("socioeconomic_multipliers")
    @classmethod
    def positive_multipliers(cls, v: dict[SocioeconomicFactor, float]) -> dict[SocioeconomicFactor, float]:
        bad = sorted(f.value for f, m in v.items() if m <= 0)
        if bad:
            raise ValueError(f"socioeconomic multipliers must be positive: {', '.join(bad)}")
        return v

    @model_validator(mode="after")
    def complete_tables(self) -> "ScoringTables":
        missing = sorted(d.value for d in RiskDomain if d not in self.domain_thresholds)
        if missing:
            raise ValueError(f"missing domain thresholds for: {', '.join(missing)}")

        seen: set[frozenset[RiskDomain]] = set()
        for rule in self.synergy_rules:
            if rule.key in seen:
                pair = "+".join(sorted(d.value for d in rule.key))
                raise ValueError(f"duplicate synergy rule for {pair}")
            seen.add(rule.key)
        expected = {frozenset(p) for p in itertools.combinations(RiskDomain, 2)}
        if seen != expected:
            absent = sorted("+".join(sorted(d.value for d in k)) for k in expected - seen)
            raise ValueError(f"synergy table is missing pairs: {', '.join(absent)}")

        if self.socioeconomic_min > self.socioeconomic_max:
            raise ValueError("socioeconomic_min must not exceed socioeconomic_max")
        return self

    def thresholds_for(self, domain: RiskDomain) -> DomainThresholds:
        return self.domain_thresholds[domain]

    def synergy_for(self, a: RiskDomain, b: RiskDomain) -> SynergyRule:
        key = frozenset((a, b))
        return next(rule for rule in self.synergy_rules if rule.key == key)


class TemporalConfig(BaseModel):
    """Trend thresholds for the temporal tracker."""

    velocity_threshold: float = Field(default=5.0, gt=0.0, description="Points per day")
    acceleration_threshold: float = Field(default=2.0, gt=0.0, description="Points per day squared")
    watch_velocity: float = Field(
        default=2.0, gt=0.0, description="Points per day that shortens follow-up to two weeks"
    )
    projection_horizons_days: tuple[int, int] = Field(
        default=(7, 30), description="Short and long projection horizons"
    )


class EscalationConfig(BaseModel):
    """Composite cut-offs and time-to-action bounds for the decision table."""

    critical_score: float = Field(default=80.0, gt=0.0)
    high_score: float = Field(default=60.0, gt=0.0)
    medium_score: float = Field(default=40.0, gt=0.0)
    critical_minutes: int = Field(default=60, gt=0)
    high_minutes: int = Field(default=240, gt=0)
    medium_minutes: int = Field(default=1440, gt=0)

    @model_validator(mode="after")
    def ordered_cutoffs(self) -> "EscalationConfig":
        if not (self.medium_score < self.high_score < self.critical_score):
            raise ValueError("escalation cut-offs must be strictly increasing")
        return self


class PipelineConfig(BaseModel):
    """Execution limits for the assessment pipeline."""

    timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Wall-clock budget for one assessment"
    )
    max_concurrent_assessments: int = Field(
        default=8, gt=0, description="Maximum number of assessments run in parallel"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    tables: ScoringTables = Field(default_factory=ScoringTables)
    temporal: TemporalConfig = Field(default_factory=TemporalConfig)
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_tables(path: str | Path) -> ScoringTables:
    """Load scoring tables from a JSON file, overriding the built-in tables key by key.

    Raises:
        ConfigurationError: the file is unreadable, not JSON, or fails validation.
    """
    try:
        raw: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"cannot read risk tables from {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"risk tables in {path} must be a JSON object")

    merged = {**ScoringTables().model_dump(mode="json"), **raw}
    try:
        return ScoringTables.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(f"invalid risk tables in {path}: {e}") from e


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation.

    Raises:
        ConfigurationError: any value fails to parse or validate.
    """

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    tables_path = os.getenv("RISK_TABLES_PATH")
    tables = load_tables(tables_path) if tables_path else ScoringTables()

    try:
        temporal_config = TemporalConfig(
            velocity_threshold=float(os.getenv("VELOCITY_THRESHOLD", "5.0")),
            acceleration_threshold=float(os.getenv("ACCELERATION_THRESHOLD", "2.0")),
        )
        pipeline_config = PipelineConfig(
            timeout_seconds=float(os.getenv("PIPELINE_TIMEOUT_SECONDS", "5.0")),
            max_concurrent_assessments=int(os.getenv("MAX_CONCURRENT_ASSESSMENTS", "8")),
        )
        logging_config = LoggingConfig(
            level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
            format="console" if debug else "json",
        )
        return AppConfig(
            environment=environment,
            debug=debug,
            tables=tables,
            temporal=temporal_config,
            pipeline=pipeline_config,
            logging=logging_config,
        )
    except ValueError as e:
        # pydantic.ValidationError is a ValueError as well
        raise ConfigurationError(f"invalid configuration: {e}") from e


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> AppConfig:
    """Validate configuration at startup. Raises ConfigurationError on any failure."""
    try:
        config = get_config()
    except ConfigurationError as e:
        logger.critical("configuration_invalid", error=str(e))
        raise

    logger.info(
        "configuration_loaded",
        environment=config.environment,
        tables_path=os.getenv("RISK_TABLES_PATH") or "builtin",
        synergy_rules=len(config.tables.synergy_rules),
    )
    return config


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nSCORING TABLES")
    for domain, t in config.tables.domain_thresholds.items():
        print(f"{domain.value}: {t.moderate}/{t.high}/{t.critical}")
    for rule in config.tables.synergy_rules:
        a, b = rule.domains
        print(f"{a.value}+{b.value}: r={rule.correlation} x{rule.synergy_factor} ({rule.evidence_level})")

    print("\nPIPELINE")
    print(f"Timeout: {config.pipeline.timeout_seconds}s")
    print(f"Velocity threshold: {config.temporal.velocity_threshold} pts/day")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
