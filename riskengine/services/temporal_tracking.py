"""
Temporal risk tracking over a user's assessment history.

Works on the unrounded ``raw_score`` so trend math never compounds display rounding.
History must be supplied oldest to newest; the tracker does no I/O and no sorting.
"""

from riskengine.config import TemporalConfig
from riskengine.domain.models import (
    CompositeRiskAssessment,
    RiskDomain,
    TemporalFlag,
    TemporalRiskProgression,
    TrendClassification,
)

SECONDS_PER_DAY = 86_400.0


def days_between(earlier: CompositeRiskAssessment, later: CompositeRiskAssessment) -> float:
    return (later.timestamp - earlier.timestamp).total_seconds() / SECONDS_PER_DAY


def _rate(earlier_value: float, later_value: float, days: float) -> float | None:
    if days == 0:
        return None
    return (later_value - earlier_value) / days


class TemporalRiskTracker:
    """Computes velocity, acceleration, trend and projections for the newest assessment."""

    def __init__(self, config: TemporalConfig | None = None, critical_score: float = 80.0) -> None:
        self.config = config or TemporalConfig()
        self.critical_score = critical_score

    def track(
        self, history: list[CompositeRiskAssessment], latest: CompositeRiskAssessment
    ) -> TemporalRiskProgression:
        ordered = [*history, latest]
        velocity = self._velocity_at(ordered, len(ordered) - 1)
        acceleration = self._acceleration(ordered, velocity)
        trend = self._classify(latest, velocity, acceleration)

        flags = []
        if velocity is not None and velocity > self.config.velocity_threshold:
            flags.append(TemporalFlag.ESCALATE)
        if acceleration is not None and acceleration > self.config.acceleration_threshold:
            flags.append(TemporalFlag.NOTIFY)

        short_days, long_days = self.config.projection_horizons_days
        return TemporalRiskProgression(
            user_id=latest.user_id,
            ordered_assessments=ordered,
            velocity=velocity,
            acceleration=acceleration,
            trend=trend,
            flags=flags,
            domain_velocities=self._domain_velocities(ordered),
            projected_score_7d=self._project(latest, velocity, acceleration, short_days),
            projected_score_30d=self._project(latest, velocity, acceleration, long_days),
            next_assessment_in_days=self._next_assessment_in_days(velocity),
        )

    @staticmethod
    def _velocity_at(ordered: list[CompositeRiskAssessment], index: int) -> float | None:
        if index < 1:
            return None
        previous, current = ordered[index - 1], ordered[index]
        return _rate(previous.raw_score, current.raw_score, days_between(previous, current))

    def _acceleration(
        self, ordered: list[CompositeRiskAssessment], velocity: float | None
    ) -> float | None:
        if len(ordered) < 3 or velocity is None:
            return None
        previous_velocity = self._velocity_at(ordered, len(ordered) - 2)
        if previous_velocity is None:
            return None
        return _rate(previous_velocity, velocity, days_between(ordered[-2], ordered[-1]))

    def _classify(
        self,
        latest: CompositeRiskAssessment,
        velocity: float | None,
        acceleration: float | None,
    ) -> TrendClassification | None:
        if velocity is None:
            return None

        if acceleration is not None and acceleration > self.config.acceleration_threshold:
            trend = TrendClassification.ACCELERATING
        elif velocity > self.config.velocity_threshold:
            trend = TrendClassification.ASCENDING
        elif velocity < -self.config.velocity_threshold:
            trend = TrendClassification.IMPROVING
        else:
            trend = TrendClassification.STABLE

        rising = trend in (TrendClassification.ASCENDING, TrendClassification.ACCELERATING)
        if rising and latest.raw_score >= self.critical_score:
            return TrendClassification.CRITICAL_PROGRESSION
        return trend

    @staticmethod
    def _domain_velocities(
        ordered: list[CompositeRiskAssessment],
    ) -> dict[RiskDomain, float | None]:
        if len(ordered) < 2:
            return {}
        previous, current = ordered[-2], ordered[-1]
        days = days_between(previous, current)
        return {
            domain: _rate(
                previous.domain(domain).overall_score, current.domain(domain).overall_score, days
            )
            for domain in RiskDomain
        }

    @staticmethod
    def _project(
        latest: CompositeRiskAssessment,
        velocity: float | None,
        acceleration: float | None,
        days: int,
    ) -> float | None:
        if velocity is None:
            return None
        a = acceleration or 0.0
        return max(0.0, latest.raw_score + velocity * days + a * days * days / 2)

    def _next_assessment_in_days(self, velocity: float | None) -> int:
        if velocity is None:
            return 30
        if velocity > self.config.velocity_threshold:
            return 7
        if velocity > self.config.watch_velocity:
            return 14
        if velocity < -self.config.watch_velocity:
            return 60
        return 30
