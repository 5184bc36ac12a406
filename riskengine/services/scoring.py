"""
Shared building blocks for the per-domain scorers.

Each scorer is a plain class satisfying ``DomainScorer``: it owns a weight table,
reads one block of ``NormalizedAssessmentInput`` and returns a fresh
``DomainRiskAssessment``. Scorers never log and never touch I/O.
"""

from typing import NamedTuple, Protocol

from pydantic import BaseModel

from riskengine.domain.models import (
    DomainRiskAssessment,
    EvidenceLevel,
    FactorCategory,
    FactorSeverity,
    NormalizedAssessmentInput,
    RiskDomain,
    RiskFactor,
)
from riskengine.errors import InvalidInputError
from riskengine.services.result import Result


class FactorSpec(NamedTuple):
    """Fixed weight and metadata for one boolean symptom flag."""

    weight: float
    category: FactorCategory
    severity: FactorSeverity
    evidence_level: EvidenceLevel = "B"

    def build(self, name: str, value: bool | float | str = True) -> RiskFactor:
        return RiskFactor(
            name=name,
            value=value,
            weight=self.weight,
            category=self.category,
            severity=self.severity,
            evidence_level=self.evidence_level,
        )


class DomainScorer(Protocol):
    """
    Protocol every domain scorer implements.

    ``score`` raises ``InvalidInputError`` when the domain's block is missing;
    callers that prefer a value use ``score_safely``.
    """

    domain: RiskDomain

    def score(self, data: NormalizedAssessmentInput) -> DomainRiskAssessment: ...


def flagged_factors(block: BaseModel, table: dict[str, FactorSpec]) -> list[RiskFactor]:
    """Build a factor for every true flag in ``block`` that ``table`` weighs."""
    return [spec.build(name) for name, spec in table.items() if getattr(block, name)]


def total_weight(factors: list[RiskFactor]) -> float:
    return float(sum(f.weight for f in factors))


def require_block(data: NormalizedAssessmentInput, domain: RiskDomain) -> BaseModel:
    block = data.block(domain)
    if block is None:
        raise InvalidInputError(domain.value, missing_fields=[domain.value])
    return block


def score_safely(
    scorer: DomainScorer, data: NormalizedAssessmentInput
) -> Result[DomainRiskAssessment, InvalidInputError]:
    """Run one scorer, turning missing domain data into an explicit error value."""
    try:
        return Result.ok(scorer.score(data))
    except InvalidInputError as e:
        return Result.err(e)
