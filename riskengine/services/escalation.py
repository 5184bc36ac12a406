"""
Escalation decision table.

Evaluated top-down, first match wins for the level; every matching rule is still
listed in ``reasons`` for auditability. Emergency alerts can raise the level above
what the score alone implies, never lower it.
"""

from riskengine.config import EscalationConfig
from riskengine.domain.models import (
    AlertSeverity,
    CompositeRiskAssessment,
    EmergencyAlert,
    EscalationDecision,
    EscalationLevel,
    EscalationTarget,
    TemporalRiskProgression,
    TrendClassification,
)


class EscalationOrchestrator:
    def __init__(self, config: EscalationConfig | None = None) -> None:
        self.config = config or EscalationConfig()

    def decide(
        self,
        composite: CompositeRiskAssessment,
        emergency_alerts: list[EmergencyAlert],
        temporal: TemporalRiskProgression | None = None,
    ) -> EscalationDecision:
        cfg = self.config
        score = composite.raw_score
        by_severity = {
            severity: [a for a in emergency_alerts if a.severity is severity]
            for severity in AlertSeverity
        }
        immediate = by_severity[AlertSeverity.IMMEDIATE]
        critical = by_severity[AlertSeverity.CRITICAL]
        high = by_severity[AlertSeverity.HIGH]
        critical_progression = (
            temporal is not None and temporal.trend is TrendClassification.CRITICAL_PROGRESSION
        )

        reasons: list[str] = []
        decision: tuple[EscalationLevel, EscalationTarget, int | None] | None = None

        if immediate:
            reasons.extend(f"immediate_alert:{a.condition}" for a in immediate)
            decision = (
                EscalationLevel.IMMEDIATE,
                EscalationTarget.EMERGENCY_SERVICES,
                min(a.time_to_action_minutes for a in immediate),
            )

        if critical or score >= cfg.critical_score:
            reasons.extend(f"critical_alert:{a.condition}" for a in critical)
            if score >= cfg.critical_score:
                reasons.append(f"composite_score>={cfg.critical_score:g}")
            decision = decision or (
                EscalationLevel.CRITICAL,
                EscalationTarget.NURSE,
                cfg.critical_minutes,
            )

        in_high_band = cfg.high_score <= score < cfg.critical_score
        if high or in_high_band or critical_progression:
            reasons.extend(f"high_alert:{a.condition}" for a in high)
            if in_high_band:
                reasons.append(f"composite_score>={cfg.high_score:g}")
            if critical_progression:
                reasons.append("trend:critical_progression")
            decision = decision or (
                EscalationLevel.HIGH,
                EscalationTarget.PHYSICIAN,
                cfg.high_minutes,
            )

        if cfg.medium_score <= score < cfg.high_score:
            reasons.append(f"composite_score>={cfg.medium_score:g}")
            decision = decision or (
                EscalationLevel.MEDIUM,
                EscalationTarget.AI,
                cfg.medium_minutes,
            )

        if decision is None:
            reasons.append("no_escalation_criteria_met")
            decision = (EscalationLevel.ROUTINE, EscalationTarget.AI, None)

        level, target, minutes = decision
        return EscalationDecision(
            level=level,
            escalation_target=target,
            time_to_action_minutes=minutes,
            reasons=reasons,
        )
