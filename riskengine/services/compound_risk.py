"""
Compound risk analysis across the four clinical domains.

composite = (max domain score * base ** (elevated_domains - 1) + synergy) * socioeconomic
where synergy sums score_a * score_b * correlation * factor / 100 over every domain pair.
"""

import itertools
import math
from collections.abc import Iterable
from datetime import datetime

from riskengine.config import ScoringTables
from riskengine.domain.models import (
    CompositeRiskAssessment,
    DomainRiskAssessment,
    RiskLevel,
    SocioeconomicFactor,
    SynergyContribution,
)


class CompoundRiskAnalyzer:
    """Combines per-domain assessments into one composite; pure and stateless."""

    def __init__(self, tables: ScoringTables | None = None) -> None:
        self.tables = tables or ScoringTables()

    def combine(
        self,
        domain_scores: list[DomainRiskAssessment],
        *,
        assessment_id: str,
        user_id: str,
        timestamp: datetime,
        socioeconomic_factors: Iterable[SocioeconomicFactor] = (),
    ) -> CompositeRiskAssessment:
        """Build the composite for one assessment. Emergency alerts are attached later."""
        base_score = max((d.overall_score for d in domain_scores), default=0.0)
        high_risk_count = sum(1 for d in domain_scores if d.is_elevated)
        exponential_factor = self.tables.exponential_base ** max(0, high_risk_count - 1)

        contributions = self.synergy_contributions(domain_scores)
        synergy_bonus = math.fsum(c.contribution for c in contributions)
        multiplier = self.socioeconomic_multiplier(socioeconomic_factors)

        raw_score = (base_score * exponential_factor + synergy_bonus) * multiplier
        return CompositeRiskAssessment(
            id=assessment_id,
            user_id=user_id,
            timestamp=timestamp,
            domain_scores=domain_scores,
            raw_score=raw_score,
            composite_level=self.tables.composite_thresholds.level_for(raw_score),
            exponential_factor=exponential_factor,
            synergy_bonus=synergy_bonus,
            socioeconomic_multiplier=multiplier,
            synergy_contributions=contributions,
        )

    def synergy_contributions(
        self, domain_scores: list[DomainRiskAssessment]
    ) -> list[SynergyContribution]:
        contributions = []
        for a, b in itertools.combinations(domain_scores, 2):
            contribution = a.overall_score * b.overall_score
            if contribution <= 0:
                continue
            rule = self.tables.synergy_for(a.domain, b.domain)
            contributions.append(
                SynergyContribution(
                    pair=(a.domain, b.domain),
                    correlation=rule.correlation,
                    multiplier=rule.synergy_factor,
                    contribution=contribution * rule.correlation * rule.synergy_factor / 100,
                )
            )
        return contributions

    def socioeconomic_multiplier(self, factors: Iterable[SocioeconomicFactor]) -> float:
        product = math.prod(self.tables.socioeconomic_multipliers.get(f, 1.0) for f in factors)
        return min(self.tables.socioeconomic_max, max(self.tables.socioeconomic_min, product))

    def fallback(
        self,
        domain_scores: list[DomainRiskAssessment],
        *,
        assessment_id: str,
        user_id: str,
        timestamp: datetime,
    ) -> CompositeRiskAssessment:
        """Conservative composite used when ``combine`` fails.

        Anchors on the highest domain score and never reports a level below the
        worst individual domain.
        """
        raw_score = max((d.overall_score for d in domain_scores), default=0.0)
        level = self.tables.composite_thresholds.level_for(raw_score)
        worst_domain = max((d.risk_level for d in domain_scores), key=lambda lv: lv.rank, default=RiskLevel.LOW)
        if worst_domain.rank > level.rank:
            level = worst_domain
        return CompositeRiskAssessment(
            id=assessment_id,
            user_id=user_id,
            timestamp=timestamp,
            domain_scores=domain_scores,
            raw_score=raw_score,
            composite_level=level,
            degraded=True,
        )
