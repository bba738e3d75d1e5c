"""CLI entry point for adaptivetutor."""

import logging
import math
from pathlib import Path

import click

from adaptivetutor.engine.adaptive import DifficultyTier

TIER_CHOICES = [t.value for t in DifficultyTier]


def _session(ctx: click.Context):
    from adaptivetutor.engine.session import TutorSession

    return TutorSession(settings=ctx.obj["settings"])


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the learner database.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """adaptivetutor: adaptive difficulty and mastery tracking."""
    from pydantic import ValidationError

    from adaptivetutor.config.settings import Settings

    try:
        settings = Settings.load(data_dir=data_dir)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@main.command("next")
@click.argument("learner")
@click.pass_context
def next_difficulty(ctx: click.Context, learner: str) -> None:
    """Show the difficulty tier for the learner's next exercise."""
    tier = _session(ctx).next_difficulty(learner)
    click.echo(f"{tier.value} ({tier.bloom_level}, x{tier.multiplier})")


@main.command()
@click.argument("learner")
@click.argument("exercise")
@click.argument("outcome", type=click.Choice(["correct", "wrong"]))
@click.option("--time", "time_spent", type=float, required=True, help="Seconds spent answering.")
@click.option("--difficulty", type=click.Choice(TIER_CHOICES), default=None,
              help="Tier the exercise was served at (defaults to the current pick).")
@click.pass_context
def record(
    ctx: click.Context,
    learner: str,
    exercise: str,
    outcome: str,
    time_spent: float,
    difficulty: str | None,
) -> None:
    """Record one answered exercise."""
    if not math.isfinite(time_spent) or time_spent < 0:
        raise click.BadParameter("must be finite and not negative", param_hint="--time")

    session = _session(ctx)
    rec = session.submit_attempt(learner, exercise, outcome == "correct", time_spent, difficulty)
    stats = session.get_or_create(learner)
    click.echo(
        f"Recorded {rec.exercise_id} ({'correct' if rec.is_correct else 'wrong'}, "
        f"{rec.difficulty.value})"
    )
    click.echo(
        f"  attempts: {stats.total_attempts}  score: {stats.average_score:.0f}%  "
        f"mastery: {stats.mastery_percentage}%  speed: {stats.learning_speed:.1f}x"
    )


@main.command()
@click.argument("learner")
@click.option("--name", default="", help="Display name for the report.")
@click.pass_context
def report(ctx: click.Context, learner: str, name: str) -> None:
    """Print a progress report for a learner."""
    r = _session(ctx).report(learner, name=name)
    click.echo(f"{r.name} ({r.level.value})")
    click.echo(f"  performance:  {r.performance_score}%")
    click.echo(f"  mastery:      {r.mastery_percentage}%")
    click.echo(f"  attempts:     {r.total_attempts}")
    click.echo(f"  engagement:   {r.engagement_score}")
    click.echo(f"  speed:        {r.learning_speed}")
    if r.strengths:
        click.echo(f"  strengths:    {', '.join(r.strengths)}")
    if r.weak_topics:
        click.echo(f"  improve:      {', '.join(r.weak_topics)}")
    if r.recommendations:
        click.echo(f"  next ({r.recommendations.estimated_minutes} min):")
        for step in r.recommendations.next_steps:
            click.echo(f"    - {step}")
        for tip in r.recommendations.tips:
            click.echo(f"    * {tip}")


@main.command()
@click.argument("learner")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def history(ctx: click.Context, learner: str, limit: int) -> None:
    """List the learner's most recent attempts."""
    records = _session(ctx).history(learner, limit=limit)
    if not records:
        click.echo("No attempts recorded.")
        return
    for rec in records:
        mark = "+" if rec.is_correct else "-"
        click.echo(
            f"  {mark} {rec.exercise_id:<16} {rec.difficulty.value:<12} "
            f"{rec.time_spent:>6.1f}s  {rec.timestamp:%Y-%m-%d %H:%M}"
        )


@main.command()
@click.argument("learner")
@click.pass_context
def compare(ctx: click.Context, learner: str) -> None:
    """Compare a learner's score with the class average."""
    c = _session(ctx).compare_with_class(learner)
    click.echo(
        f"{learner}: {c.student_score:.0f}% vs class {c.class_average:.0f}% "
        f"({c.difference:+.0f}), {c.status}"
    )
    if c.percentile is not None:
        click.echo(f"  percentile: {c.percentile:.0f}")


@main.command()
@click.argument("lesson_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("learner")
@click.pass_context
def lesson(ctx: click.Context, lesson_dir: Path, learner: str) -> None:
    """Assemble a lesson's exercises for the learner's level."""
    from adaptivetutor.engine.lesson_loader import load_lesson

    try:
        loaded = load_lesson(lesson_dir)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not load lesson: {e}") from e

    plan = _session(ctx).plan_lesson(loaded, learner)
    click.echo(f"{plan.title} [{plan.level.value}]")
    click.echo(f"  video: {plan.video.quality}, speeds {plan.video.playback_speeds}")
    for quiz in plan.video.quizzes:
        click.echo(f"    check at {quiz.at_seconds}s: {quiz.question}")
    click.echo(
        f"  {plan.exercises.total_exercises} exercises, "
        f"~{plan.exercises.estimated_seconds}s"
    )
    for item in plan.exercises.exercises:
        click.echo(
            f"  {item.sequence}. {item.exercise.id} ({item.difficulty.value}, "
            f"{item.time_limit}s, {item.reward_points} pts)"
        )


@main.command()
def lessons() -> None:
    """List bundled lessons."""
    from adaptivetutor.engine.lesson_loader import list_lessons, load_lesson

    for path in list_lessons():
        loaded = load_lesson(path)
        click.echo(f"  {path}: {loaded.title} ({len(loaded.exercises)} exercises)")


@main.command()
@click.pass_context
def learners(ctx: click.Context) -> None:
    """List known learners."""
    session = _session(ctx)
    for learner_id in session.store.list_learners():
        stats = session.get_or_create(learner_id)
        click.echo(f"  {learner_id}: {stats.level.value}, mastery {stats.mastery_percentage}%")


@main.command()
@click.argument("learner")
@click.confirmation_option(prompt="Delete all recorded progress for this learner?")
@click.pass_context
def reset(ctx: click.Context, learner: str) -> None:
    """Delete a learner's record and attempt history."""
    _session(ctx).reset(learner)
    click.echo(f"Reset {learner}.")
