"""
End-to-end demonstration of the assessment pipeline on canned scenarios.

Scenarios:
1. Acute coronary syndrome reported through OCR entities
2. Complete diabetic triad from questionnaire answers
3. Rising composite risk across three assessments
4. Concurrent batch with one incomplete questionnaire

Run with: uv run python run_assessment.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.questionnaire import QuestionnaireNormalizer
from riskengine.config import get_config, validate_config
from riskengine.domain.models import AssessmentOutcome, CompositeRiskAssessment
from riskengine.observability import configure_logging
from riskengine.services import AssessmentRequest, AssessmentService

console = Console()
normalizer = QuestionnaireNormalizer()

LEVEL_STYLES = {
    "routine": "green",
    "medium": "yellow",
    "high": "dark_orange",
    "critical": "red",
    "immediate": "bold red",
}


def render_outcome(title: str, outcome: AssessmentOutcome) -> None:
    composite = outcome.composite
    decision = outcome.decision

    table = Table(title=title)
    table.add_column("Domain", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Score", style="green")
    table.add_column("Level", style="magenta")
    table.add_column("Indicators", style="red")
    for domain in composite.domain_scores:
        table.add_row(
            domain.domain.value,
            domain.status.value,
            f"{domain.overall_score:.0f}",
            domain.risk_level.value,
            ", ".join(domain.emergency_indicators) or "-",
        )
    console.print(table)

    console.print(
        f"Composite: [bold]{composite.composite_score}[/bold] ({composite.composite_level.value}), "
        f"exp x{composite.exponential_factor:.2f}, synergy +{composite.synergy_bonus:.1f}, "
        f"socioeconomic x{composite.socioeconomic_multiplier:.2f}"
    )
    for alert in composite.emergency_alerts:
        console.print(
            f"  ALERT {alert.severity.value.upper()} {alert.condition} "
            f"within {alert.time_to_action_minutes} min, call {'/'.join(alert.contact_numbers)}",
            style="red",
        )

    style = LEVEL_STYLES[decision.level.value]
    deadline = (
        "no deadline"
        if decision.time_to_action_minutes is None
        else f"{decision.time_to_action_minutes} min"
    )
    console.print(
        Panel(
            f"{decision.level.value.upper()} -> {decision.escalation_target.value} ({deadline})\n"
            f"Reasons: {', '.join(decision.reasons)}",
            title="Escalation",
            style=style,
        )
    )


def scenario_acute_coronary(service: AssessmentService) -> None:
    console.print(Panel("Scenario 1: acute coronary syndrome", style="blue"))
    data = normalizer.normalize(
        "demo-acs",
        answers={"cardiovascular.family_history": "sim"},
        entities=["dor_peito", "falta_ar_repouso"],
        demographics={"idade": 58, "sexo": "masculino", "fumante": "sim"},
    )
    render_outcome("Acute coronary syndrome", service.assess(data))


def scenario_diabetic_triad(service: AssessmentService) -> None:
    console.print(Panel("Scenario 2: diabetic triad", style="blue"))
    data = normalizer.normalize(
        "demo-triad",
        answers={
            "diabetes.polydipsia": "sim",
            "diabetes.polyphagia": "sim",
            "diabetes.polyuria": "sim",
            "diabetes.fatigue": "sim",
        },
        demographics={"age": 47, "gender": "F", "bmi": 31.5},
    )
    render_outcome("Diabetic triad", service.assess(data))


def scenario_rising_trend(service: AssessmentService) -> None:
    console.print(Panel("Scenario 3: rising trend over five days", style="blue"))
    start = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)
    visits = [
        (0, {"mental_health.depressed_mood": "sim", "mental_health.anhedonia": "sim"}),
        (3, {"mental_health.depressed_mood": "sim", "mental_health.anhedonia": "sim",
             "mental_health.sleep_disturbance": "sim", "mental_health.guilt": "sim"}),
        (5, {"mental_health.depressed_mood": "sim", "mental_health.anhedonia": "sim",
             "mental_health.sleep_disturbance": "sim", "mental_health.guilt": "sim",
             "mental_health.fatigue": "sim", "mental_health.suicidal_ideation": "sim",
             "mental_health.previous_attempt": "sim"}),
    ]

    history: list[CompositeRiskAssessment] = []
    outcome: AssessmentOutcome | None = None
    for day, answers in visits:
        data = normalizer.normalize(
            "demo-trend", answers=answers, assessed_at=start + timedelta(days=day)
        )
        outcome = service.assess(data, history)
        history.append(outcome.composite)

    assert outcome is not None
    temporal = outcome.temporal
    trend_table = Table(title="Temporal progression")
    trend_table.add_column("Metric", style="cyan")
    trend_table.add_column("Value", style="green")
    trend_table.add_row("Scores", " -> ".join(str(c.composite_score) for c in history))
    trend_table.add_row("Velocity", f"{temporal.velocity:.2f} pts/day" if temporal.velocity is not None else "-")
    trend_table.add_row(
        "Acceleration", f"{temporal.acceleration:.2f} pts/day²" if temporal.acceleration is not None else "-"
    )
    trend_table.add_row("Trend", temporal.trend.value if temporal.trend else "-")
    trend_table.add_row("Flags", ", ".join(f.value for f in temporal.flags) or "-")
    trend_table.add_row("Projected 7d", f"{temporal.projected_score_7d or 0:.0f}")
    trend_table.add_row("Next assessment", f"{temporal.next_assessment_in_days} days")
    console.print(trend_table)
    render_outcome("Latest assessment", outcome)


async def scenario_batch(service: AssessmentService) -> None:
    console.print(Panel("Scenario 4: concurrent batch", style="blue"))
    requests = [
        AssessmentRequest(
            normalizer.normalize(
                f"demo-batch-{i}",
                answers={"respiratory.snoring": "sim", "respiratory.observed_apnea": "sim"},
                demographics={"age": 40 + i * 5, "gender": "M", "bmi": 33 + i},
            )
        )
        for i in range(3)
    ]
    requests.append(AssessmentRequest(normalizer.normalize("demo-batch-empty", answers={})))

    results = await service.assess_many(requests)

    table = Table(title="Batch results")
    table.add_column("User", style="cyan")
    table.add_column("Result", style="white")
    table.add_column("Insufficient domains", style="yellow")
    for request, result in zip(requests, results, strict=True):
        if result.is_ok():
            outcome = result.unwrap()
            table.add_row(
                request.data.user_id,
                f"{outcome.composite.composite_score} / {outcome.decision.level.value}",
                ", ".join(d.value for d in outcome.insufficient_domains) or "-",
            )
        else:
            table.add_row(request.data.user_id, f"failed: {result.unwrap_err()!r}", "-")
    console.print(table)


async def main() -> None:
    console.print(Panel("Medical Risk Engine - Scenario Walkthrough", style="bold blue"))
    config = validate_config()
    configure_logging(config.logging.model_copy(update={"level": "WARNING"}))

    service = AssessmentService(get_config())
    scenario_acute_coronary(service)
    scenario_diabetic_triad(service)
    scenario_rising_trend(service)
    await scenario_batch(service)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("\nStopped by user", style="yellow")
