"""
Assessment pipeline: the single entry point callers use.

Flow: normalized input -> domain scores -> composite -> temporal trend ->
emergency detection -> escalation decision.

This module is the only place in the engine that logs. Every component it wires
together is a pure function of its inputs, so identical input and history always
reproduce an identical outcome.
"""

import asyncio
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from riskengine.config import AppConfig, get_config
from riskengine.domain.models import (
    AssessmentOutcome,
    CompositeRiskAssessment,
    DomainRiskAssessment,
    EmergencyAlert,
    EscalationDecision,
    NormalizedAssessmentInput,
    RiskDomain,
    TemporalRiskProgression,
)
from riskengine.services.cardiovascular import CardiovascularScorer
from riskengine.services.compound_risk import CompoundRiskAnalyzer
from riskengine.services.diabetes import DiabetesScorer
from riskengine.services.emergency_detection import (
    EmergencyDetector,
    default_rules,
    failsafe_alert,
)
from riskengine.services.escalation import EscalationOrchestrator
from riskengine.services.mental_health import MentalHealthScorer
from riskengine.services.respiratory import RespiratoryScorer
from riskengine.services.result import Result
from riskengine.services.scoring import DomainScorer, score_safely
from riskengine.services.temporal_tracking import TemporalRiskTracker

logger = structlog.get_logger(__name__)

ASSESSMENT_NAMESPACE = uuid.UUID("0b6c3f0e-8a43-5d2e-b1f7-4c9a2e61d805")


def assessment_id(data: NormalizedAssessmentInput) -> str:
    """Deterministic id derived from user, timestamp and the full input content."""
    key = f"{data.user_id}|{data.assessed_at.isoformat()}|{data.model_dump_json()}"
    return str(uuid.uuid5(ASSESSMENT_NAMESPACE, key))


@dataclass(frozen=True)
class AssessmentRequest:
    """One unit of work for ``AssessmentService.assess_many``."""

    data: NormalizedAssessmentInput
    history: Sequence[CompositeRiskAssessment] = field(default_factory=tuple)


class AssessmentService:
    """
    Wires the scorers, analyzer, detector, tracker and orchestrator from one AppConfig.

    Holds no mutable state after construction; a single instance can serve
    concurrent requests.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        tables = self.config.tables
        self.scorers: list[DomainScorer] = [
            CardiovascularScorer(tables.thresholds_for(RiskDomain.CARDIOVASCULAR)),
            DiabetesScorer(tables.thresholds_for(RiskDomain.DIABETES)),
            MentalHealthScorer(tables.thresholds_for(RiskDomain.MENTAL_HEALTH)),
            RespiratoryScorer(tables.thresholds_for(RiskDomain.RESPIRATORY)),
        ]
        self.analyzer = CompoundRiskAnalyzer(tables)
        self.detector = EmergencyDetector(default_rules(self.config.temporal.velocity_threshold))
        self.tracker = TemporalRiskTracker(
            self.config.temporal, critical_score=self.config.escalation.critical_score
        )
        self.orchestrator = EscalationOrchestrator(self.config.escalation)
        self.logger = logger.bind(component="assessment_pipeline")

    def score_domains(
        self, data: NormalizedAssessmentInput
    ) -> tuple[list[DomainRiskAssessment], list[RiskDomain]]:
        """Score every domain; a domain without data becomes ``insufficient_data``."""
        scores: list[DomainRiskAssessment] = []
        insufficient: list[RiskDomain] = []
        for scorer in self.scorers:
            result = score_safely(scorer, data)
            if result.is_ok():
                scores.append(result.unwrap())
                continue
            error = result.unwrap_err()
            self.logger.info(
                "domain_insufficient_data",
                user_id=data.user_id,
                domain=scorer.domain.value,
                missing_fields=error.missing_fields,
            )
            scores.append(DomainRiskAssessment.insufficient(scorer.domain, error.missing_fields))
            insufficient.append(scorer.domain)
        return scores, insufficient

    def _composite(
        self, data: NormalizedAssessmentInput, domain_scores: list[DomainRiskAssessment]
    ) -> CompositeRiskAssessment:
        ident = assessment_id(data)
        try:
            return self.analyzer.combine(
                domain_scores,
                assessment_id=ident,
                user_id=data.user_id,
                timestamp=data.assessed_at,
                socioeconomic_factors=data.demographics.socioeconomic_factors,
            )
        except Exception as e:
            # Emergency detection still runs on the fallback composite
            self.logger.exception("compound_analysis_failed", user_id=data.user_id, error=str(e))
            return self.analyzer.fallback(
                domain_scores, assessment_id=ident, user_id=data.user_id, timestamp=data.assessed_at
            )

    def _detect(
        self,
        data: NormalizedAssessmentInput,
        domain_scores: list[DomainRiskAssessment],
        composite: CompositeRiskAssessment,
        temporal: TemporalRiskProgression | None = None,
    ) -> list[EmergencyAlert]:
        try:
            alerts = self.detector.detect(data, domain_scores, composite, temporal)
        except Exception as e:
            # A rule set that cannot run still forces manual review
            self.logger.exception("emergency_detection_failed", user_id=data.user_id, error=str(e))
            alerts = [failsafe_alert(composite.id)]
        if alerts:
            self.logger.warning(
                "emergency_alerts_detected",
                user_id=data.user_id,
                conditions=[a.condition for a in alerts],
                most_severe=alerts[0].severity.value,
            )
        return alerts

    def assess(
        self,
        data: NormalizedAssessmentInput,
        history: Sequence[CompositeRiskAssessment] = (),
    ) -> AssessmentOutcome:
        """Run the full pipeline for one user.

        Args:
            data: Normalized questionnaire input for this assessment.
            history: Prior composites for the same user, oldest first.

        Returns:
            AssessmentOutcome: composite (with alerts attached), temporal
            progression, escalation decision and the domains lacking data.
        """
        start_time = time.perf_counter()
        self.logger.info("assessment_started", user_id=data.user_id, history_length=len(history))

        domain_scores, insufficient = self.score_domains(data)
        composite = self._composite(data, domain_scores)

        temporal = self.tracker.track(list(history), composite)
        if temporal.velocity is None:
            self.logger.info(
                "temporal_velocity_undefined", user_id=data.user_id, history_length=len(history)
            )

        alerts = self._detect(data, domain_scores, composite, temporal)

        composite = composite.model_copy(update={"emergency_alerts": alerts})
        temporal = temporal.model_copy(
            update={"ordered_assessments": [*temporal.ordered_assessments[:-1], composite]}
        )
        decision = self.orchestrator.decide(composite, alerts, temporal)

        self.logger.info(
            "assessment_completed",
            user_id=data.user_id,
            assessment_id=composite.id,
            composite_score=composite.composite_score,
            composite_level=composite.composite_level.value,
            escalation_level=decision.level.value,
            degraded=composite.degraded,
            duration_seconds=round(time.perf_counter() - start_time, 4),
        )
        return AssessmentOutcome(
            composite=composite,
            temporal=temporal,
            decision=decision,
            insufficient_domains=insufficient,
        )

    def emergency_screen(
        self, data: NormalizedAssessmentInput
    ) -> tuple[list[EmergencyAlert], EscalationDecision]:
        """Fast-path emergency re-check without history."""
        domain_scores, _ = self.score_domains(data)
        composite = self._composite(data, domain_scores)
        alerts = self._detect(data, domain_scores, composite)
        return alerts, self.orchestrator.decide(composite, alerts)

    async def assess_many(
        self, requests: Sequence[AssessmentRequest]
    ) -> list[Result[AssessmentOutcome, Exception]]:
        """
        Assess independent requests concurrently.

        Each request runs in a worker thread under the pipeline's wall-clock budget.
        Failures come back as ``Result.err`` in request order, so one slow or
        broken request never cancels its siblings.
        """
        semaphore = asyncio.Semaphore(self.config.pipeline.max_concurrent_assessments)

        async def run_one(request: AssessmentRequest) -> Result[AssessmentOutcome, Exception]:
            async with semaphore:
                try:
                    outcome = await asyncio.wait_for(
                        asyncio.to_thread(self.assess, request.data, request.history),
                        timeout=self.config.pipeline.timeout_seconds,
                    )
                    return Result.ok(outcome)
                except TimeoutError as e:
                    self.logger.error(
                        "assessment_timeout",
                        user_id=request.data.user_id,
                        timeout_seconds=self.config.pipeline.timeout_seconds,
                    )
                    return Result.err(e)
                except Exception as e:
                    self.logger.exception(
                        "assessment_failed", user_id=request.data.user_id, error=str(e)
                    )
                    return Result.err(e)

        async with asyncio.TaskGroup() as task_group:
            tasks = [task_group.create_task(run_one(request)) for request in requests]

        return [task.result() for task in tasks]


def assess(
    data: NormalizedAssessmentInput,
    history: Sequence[CompositeRiskAssessment] = (),
    config: AppConfig | None = None,
) -> AssessmentOutcome:
    """Synchronous boundary: assess one input against the caller-supplied history."""
    return AssessmentService(config).assess(data, history)
