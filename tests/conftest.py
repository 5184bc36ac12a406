"""Shared builders for risk engine tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from riskengine.config import AppConfig
from riskengine.domain.models import (
    CardiovascularSymptoms,
    CompositeRiskAssessment,
    Demographics,
    DiabetesSymptoms,
    DomainRiskAssessment,
    MentalHealthSymptoms,
    NormalizedAssessmentInput,
    RespiratorySymptoms,
    RiskDomain,
    RiskLevel,
)

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def app_config() -> AppConfig:
    """Built-in tables and defaults, independent of the process environment."""
    return AppConfig()


@pytest.fixture
def make_input() -> Callable[..., NormalizedAssessmentInput]:
    def _make(
        user_id: str = "user-1",
        *,
        cardiovascular: dict[str, Any] | None = None,
        diabetes: dict[str, Any] | None = None,
        mental_health: dict[str, Any] | None = None,
        respiratory: dict[str, Any] | None = None,
        demographics: dict[str, Any] | None = None,
        assessed_at: datetime = BASE_TIME,
    ) -> NormalizedAssessmentInput:
        return NormalizedAssessmentInput(
            user_id=user_id,
            assessed_at=assessed_at,
            demographics=Demographics(**(demographics or {})),
            cardiovascular=None if cardiovascular is None else CardiovascularSymptoms(**cardiovascular),
            diabetes=None if diabetes is None else DiabetesSymptoms(**diabetes),
            mental_health=None if mental_health is None else MentalHealthSymptoms(**mental_health),
            respiratory=None if respiratory is None else RespiratorySymptoms(**respiratory),
        )

    return _make


@pytest.fixture
def make_composite() -> Callable[..., CompositeRiskAssessment]:
    """Composite with a chosen raw score at ``day`` days after a fixed base time."""

    def _make(
        raw_score: float,
        day: float = 0.0,
        *,
        user_id: str = "user-1",
        domain_scores: dict[RiskDomain, float] | None = None,
        level: RiskLevel = RiskLevel.LOW,
    ) -> CompositeRiskAssessment:
        scores = domain_scores or {}
        domains = [
            DomainRiskAssessment(
                domain=domain, overall_score=scores.get(domain, 0.0), risk_level=RiskLevel.LOW
            )
            for domain in RiskDomain
        ]
        return CompositeRiskAssessment(
            id=f"{user_id}-{day}",
            user_id=user_id,
            timestamp=BASE_TIME + timedelta(days=day),
            domain_scores=domains,
            raw_score=raw_score,
            composite_level=level,
        )

    return _make
