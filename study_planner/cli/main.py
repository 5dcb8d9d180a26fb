"""
Typer CLI for the study planner engine.

Commands:
    study-planner decay <snapshot>      - Show status changes from decay
    study-planner reviews <snapshot>    - FSRS review queue for today
    study-planner plan <snapshot>       - Today's prioritized study plan
    study-planner predict <snapshot>    - Predicted exam grade per subject
    study-planner simulate <snapshot>   - Monte Carlo exam outcome for a subject
    study-planner status <snapshot>     - Alerts, workload and progress overview

Usage:
    study-planner --help
    study-planner plan data/snapshot.json --today 2026-01-15
    study-planner predict data/snapshot.json --subject anatomy --idealized
    STUDY_PLANNER_SIMULATION_SEED=7 study-planner simulate data/snapshot.json -s anatomy
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config import get_settings
from study_planner.cli.snapshot import SnapshotError, StudySnapshot, load_snapshot
from study_planner.core.dates import days_since
from study_planner.core.models import TaskBucket
from study_planner.prediction.grade_predictor import predict_grade
from study_planner.prediction.simulation import simulate_exam_outcome
from study_planner.study.decay import apply_decay_to_all
from study_planner.study.mastery_calculator import subject_progress, topic_priority, weighted_mastery_score
from study_planner.study.planner import (
    PlanConfig,
    daily_workload,
    effective_minutes,
    generate_daily_plan,
    get_alerts,
)
from study_planner.study.retention_engine import FSRS_PARAMS, FSRSScheduler, review_queue

console = Console()

app = typer.Typer(
    name="study-planner",
    help="Spaced-repetition study planner: decay, reviews, daily plan and grade prediction",
    no_args_is_help=True,
)

BUCKET_STYLES = {
    TaskBucket.CRITICAL: "bold red",
    TaskBucket.HIGH: "yellow",
    TaskBucket.MEDIUM: "cyan",
    TaskBucket.NORMAL: "green",
}

IMPACT_STYLES = {
    "positive": "green",
    "neutral": "yellow",
    "negative": "red",
}

SnapshotArg = typer.Argument(..., help="Path to a JSON study snapshot")
TodayOption = typer.Option(None, "--today", help="Reference day (YYYY-MM-DD), default: snapshot or system date")


# ========================================
# Helpers
# ========================================


def _parse_day(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


def _load(path: Path, today: Optional[str]) -> tuple[StudySnapshot, date]:
    """Load a snapshot and resolve the reference day, exiting with code 1 on bad input."""
    settings = get_settings()
    scheduler = FSRSScheduler({**FSRS_PARAMS, "maximumInterval": settings.fsrs_max_interval})
    day = _parse_day(today)

    try:
        snapshot = load_snapshot(path, scheduler)
    except SnapshotError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    return snapshot, day or snapshot.today or date.today()


def _subject_or_exit(snapshot: StudySnapshot, subject_id: str):
    try:
        return snapshot.subject(subject_id)
    except SnapshotError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _topics_on_exam(subject, default: int) -> int:
    """Topics per exam from the exam format, else the configured default."""
    fmt = subject.exam_format
    if fmt is not None and fmt.topics_on_exam > 0:
        return fmt.topics_on_exam
    return default


def _format_progress_bar(pct: float, width: int = 10) -> str:
    filled = int(pct / 100 * width)
    return "#" * filled + "-" * (width - filled)


# ========================================
# Commands
# ========================================


@app.command("decay")
def decay_command(
    snapshot_path: Path = SnapshotArg,
    today: Optional[str] = TodayOption,
) -> None:
    """
    Show which topics decay today.

    Topics are aged by the time since their last review; only downgrades are listed.
    """
    snapshot, day = _load(snapshot_path, today)
    decayed = apply_decay_to_all(snapshot.subjects, day)

    table = Table(title=f"Decay on {day.isoformat()}")
    table.add_column("Subject", style="cyan")
    table.add_column("Topic")
    table.add_column("Days", justify="right")
    table.add_column("Before")
    table.add_column("After")

    changes = 0
    for before, after in zip(snapshot.subjects, decayed):
        for old, new in zip(before.topics, after.topics):
            if old.status is new.status:
                continue
            changes += 1
            days = days_since(old.last_reviewed, day)
            table.add_row(
                before.name,
                old.name or old.id,
                "never" if days == float("inf") else f"{days:.0f}",
                f"[{old.status.color}]{old.status.display_name}[/{old.status.color}]",
                f"[{new.status.color}]{new.status.display_name}[/{new.status.color}]",
            )

    if changes == 0:
        console.print("[green]No topics decayed.[/green]")
        return
    console.print(table)


@app.command("reviews")
def reviews_command(
    snapshot_path: Path = SnapshotArg,
    today: Optional[str] = TodayOption,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max reviews (default from settings)"),
) -> None:
    """Show topics whose recall probability fell below the target retention."""
    settings = get_settings()
    snapshot, day = _load(snapshot_path, today)

    due = review_queue(
        snapshot.subjects,
        day,
        target_retention=settings.fsrs_target_retention,
        max_reviews=limit or settings.fsrs_max_reviews_per_day,
    )
    if not due:
        console.print("[green]No reviews due - all caught up![/green]")
        return

    table = Table(title=f"Reviews due ({len(due)})")
    table.add_column("Subject", style="cyan")
    table.add_column("Topic")
    table.add_column("Recall", justify="right")
    table.add_column("Stability", justify="right")
    table.add_column("Overdue", justify="right")
    table.add_column("Mastery", justify="right")

    for item in due:
        overdue = "never reviewed" if item.days_overdue == float("inf") else f"{item.days_overdue:.1f}d"
        table.add_row(
            item.subject_id,
            item.topic.name or item.topic.id,
            f"{item.retrievability:.0%}",
            f"{item.stability:.1f}d",
            overdue,
            str(weighted_mastery_score(item.topic)),
        )
    console.print(table)


@app.command("plan")
def plan_command(
    snapshot_path: Path = SnapshotArg,
    today: Optional[str] = TodayOption,
    minutes: Optional[float] = typer.Option(
        None, "--minutes", "-m", help="Override the effective study minutes"
    ),
) -> None:
    """Build today's prioritized study plan."""
    settings = get_settings()
    snapshot, day = _load(snapshot_path, today)
    subjects = apply_decay_to_all(snapshot.subjects, day)

    budget = minutes if minutes is not None else effective_minutes(snapshot.daily_status)
    config = PlanConfig(min_normal_minutes=settings.plan_min_normal_minutes)
    tasks = generate_daily_plan(subjects, snapshot.schedule, budget, today=day, config=config)

    if not tasks:
        console.print(f"[yellow]Nothing to plan for {day.isoformat()} ({budget:.0f} min available).[/yellow]")
        return

    table = Table(title=f"Plan for {day.isoformat()} ({budget:.0f} min)")
    table.add_column("Bucket")
    table.add_column("Subject", style="cyan")
    table.add_column("Task")
    table.add_column("Topics")
    table.add_column("Min", justify="right")

    for task in tasks:
        style = BUCKET_STYLES[task.bucket]
        topics = ", ".join(
            f"{t.name or t.id} ({task.topic_minutes.get(t.id, 0)}m)" for t in task.topics
        )
        table.add_row(
            f"[{style}]{task.bucket.value.upper()}[/{style}]",
            task.subject_id,
            f"{task.label}\n[dim]{task.description}[/dim]",
            topics,
            str(task.estimated_minutes),
        )
    console.print(table)
    console.print(f"[dim]Allocated {sum(t.estimated_minutes for t in tasks)} of {budget:.0f} minutes[/dim]")


@app.command("predict")
def predict_command(
    snapshot_path: Path = SnapshotArg,
    today: Optional[str] = TodayOption,
    subject_id: Optional[str] = typer.Option(None, "--subject", "-s", help="Only this subject"),
    idealized: bool = typer.Option(False, "--idealized", help="Show the idealized-effort grade"),
    no_simulation: bool = typer.Option(False, "--no-simulation", help="Skip the Monte Carlo tips"),
) -> None:
    """Predict the exam grade per subject."""
    settings = get_settings()
    snapshot, day = _load(snapshot_path, today)
    subjects = apply_decay_to_all(snapshot.subjects, day)
    if subject_id:
        subjects = [s for s in subjects if s.id == subject_id]
        if not subjects:
            console.print(f"[red]Error: Unknown subject: {subject_id}[/red]")
            raise typer.Exit(1)

    for subject in subjects:
        prediction = predict_grade(
            subject,
            idealized,
            snapshot.question_bank.get(subject.id),
            today=day,
            simulate=not no_simulation,
            iterations=settings.simulation_iterations,
            topics_on_exam=_topics_on_exam(subject, settings.default_topics_on_exam),
            seed=settings.simulation_seed,
            workers=settings.simulation_workers,
        )

        content = Text()
        content.append("Predicted grade: ", style="bold")
        content.append(f"{prediction.current:.2f}", style="bold cyan")
        content.append(f"   idealized {prediction.idealized:.2f} (+{prediction.improvement:.2f})\n\n")
        for factor in prediction.factors:
            content.append(f"  {factor.label}: ", style=IMPACT_STYLES[factor.impact])
            content.append(f"{factor.value:g}/{factor.max_value}\n")
        if prediction.simulation:
            sim = prediction.simulation
            content.append(
                f"\n  Simulated exam: {sim.worst_case:.2f} - {sim.expected:.2f} - {sim.best_case:.2f}\n",
                style="dim",
            )
        content.append("\n")
        for tip in prediction.tips:
            content.append(f"  > {tip}\n")
        content.append(f"\n{prediction.message}", style="italic")

        console.print(Panel(content, title=f"[bold]{subject.name}[/bold]", border_style="blue"))


@app.command("simulate")
def simulate_command(
    snapshot_path: Path = SnapshotArg,
    subject_id: str = typer.Option(..., "--subject", "-s", help="Subject to simulate"),
    today: Optional[str] = TodayOption,
    topics_on_exam: Optional[int] = typer.Option(None, "--topics", "-k", help="Topics drawn per exam"),
    iterations: Optional[int] = typer.Option(None, "--iterations", "-i", help="Simulated exams"),
    seed: Optional[int] = typer.Option(None, "--seed", help="PRNG seed for reproducible output"),
) -> None:
    """Run a Monte Carlo exam simulation for one subject."""
    settings = get_settings()
    snapshot, day = _load(snapshot_path, today)
    subject = _subject_or_exit(snapshot, subject_id)
    subject = apply_decay_to_all([subject], day)[0]

    if topics_on_exam is None:
        topics_on_exam = _topics_on_exam(subject, settings.default_topics_on_exam)

    result = simulate_exam_outcome(
        subject.topics,
        topics_on_exam,
        iterations or settings.simulation_iterations,
        seed=seed if seed is not None else settings.simulation_seed,
        workers=settings.simulation_workers,
    )

    table = Table(title=f"{subject.name}: {topics_on_exam} topic(s) per exam")
    table.add_column("Worst (p5)", justify="right", style="red")
    table.add_column("Expected", justify="right", style="bold")
    table.add_column("Best (p95)", justify="right", style="green")
    table.add_column("Std dev", justify="right")
    table.add_row(
        f"{result.worst_case:.2f}",
        f"{result.expected:.2f}",
        f"{result.best_case:.2f}",
        f"{result.variance:.2f}",
    )
    console.print(table)

    if result.impact_topics:
        console.print("\n[bold]Biggest gains:[/bold]")
        for item in result.impact_topics:
            console.print(f"  {item.topic_name or item.topic_id}: [green]+{item.impact:.2f}[/green]")


@app.command("status")
def status_command(
    snapshot_path: Path = SnapshotArg,
    today: Optional[str] = TodayOption,
) -> None:
    """Show alerts, today's topic workload and per-subject progress."""
    snapshot, day = _load(snapshot_path, today)
    subjects = apply_decay_to_all(snapshot.subjects, day)

    for alert in get_alerts(subjects, snapshot.schedule, day):
        style = "red" if alert.level.value == "critical" else "yellow"
        console.print(f"[{style}][!][/{style}] {alert.message}")

    workload = daily_workload(subjects, snapshot.daily_status, day)
    budget = effective_minutes(snapshot.daily_status)
    console.print(
        f"\n[bold]Today:[/bold] {workload.total_topics} topic(s), {budget} effective minutes\n"
    )

    table = Table(title="Progress")
    table.add_column("Subject", style="cyan")
    table.add_column("Progress")
    table.add_column("Solid", justify="right", style="green")
    table.add_column("Learned", justify="right", style="yellow")
    table.add_column("Weak", justify="right", style="red")
    table.add_column("New", justify="right", style="dim")
    table.add_column("Most urgent")

    for subject in subjects:
        pct, counts = subject_progress(subject)
        urgent = min(subject.topics, key=lambda t: topic_priority(t, day), default=None)
        table.add_row(
            subject.name,
            f"{_format_progress_bar(pct)} {pct}%",
            *(str(counts[status]) for status in reversed(list(counts))),
            (urgent.name or urgent.id) if urgent else "-",
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        )

    app()


if __name__ == "__main__":
    main()
