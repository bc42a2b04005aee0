#!/usr/bin/env python3
"""
bodycoach CLI - SKYCOACH

Internal Codename: SKYCOACH
Command-line coaching interface for bodycoach.

Usage:
    bodycoach plan [--goal GOAL] [--experience LEVEL] [--equipment ITEM ...] [--days N] [--pain AREA ...]
    bodycoach status
    bodycoach log EXERCISE_ID [--weight W] [--reps N | --reps-by-set N,N,N] [--sets N] [--felt RATING]
    bodycoach next EXERCISE_ID
    bodycoach swap ORIGINAL_ID REPLACEMENT_ID
    bodycoach history [--exercise EXERCISE_ID]
    bodycoach assess [--goal GOAL] [--pain AREA ...] [--front FILE] [--side FILE] [--back FILE]
    bodycoach export PATH
    bodycoach import PATH
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import click

from bodycoach.assessment import KeypointFileEstimator, analyze_views, build_report
from bodycoach.backup import export_bundle, import_bundle, read_bundle, write_bundle
from bodycoach.catalog import ExerciseCatalog
from bodycoach.coaching import CoachPlanner, format_program_text
from bodycoach.config import load_config
from bodycoach.errors import CoachError
from bodycoach.history import personal_records, top_exercises, volume_by_date
from bodycoach.models import Felt, PainLocation, Questionnaire
from bodycoach.store import LocalStore

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

GOALS = ['Improve posture', 'Reduce pain', 'Build strength', 'General fitness']
EXPERIENCE = ['Beginner', 'Intermediate', 'Advanced']


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    raise SystemExit(1)


def _planner(ctx) -> CoachPlanner:
    return ctx.obj['planner']


def _questionnaire(goal, experience, equipment, days, pain) -> Questionnaire:
    return Questionnaire(
        goals=goal,
        pain_areas=list(pain),
        experience=experience,
        equipment=list(equipment) or ['none'],
        days_per_week=days,
    )


def _parse_reps_by_set(value: Optional[str]) -> Optional[List[int]]:
    if not value:
        return None
    try:
        return [int(part) for part in value.split(',') if part.strip()]
    except ValueError:
        raise click.BadParameter("use comma-separated integers, e.g. 12,10,8", param_hint='--reps-by-set')


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='YAML config file')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """
    bodycoach - Posture & Strength Coach

    JUDGMENT-DAY: Your workout, decided.
    """
    config = load_config(config_path)
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING),
        format=LOG_FORMAT,
    )

    try:
        catalog = ExerciseCatalog.from_yaml(config.catalog_path)
    except CoachError as e:
        _fail(str(e))

    store = LocalStore(config.data_dir)
    ctx.obj = {
        'config': config,
        'catalog': catalog,
        'store': store,
        'planner': CoachPlanner(store, catalog, config),
    }


@cli.command()
@click.option('--goal', type=click.Choice(GOALS), default='Improve posture', show_default=True)
@click.option('--experience', type=click.Choice(EXPERIENCE), default='Beginner', show_default=True)
@click.option('--equipment', multiple=True, help='Available equipment (repeatable): none, bands, dumbbells, gym, ...')
@click.option('--days', type=click.Choice(['3', '4', '5']), default='3', show_default=True, help='Days per week')
@click.option('--pain', multiple=True, help='Pain area (repeatable), e.g. "Lower back"')
@click.pass_context
def plan(ctx, goal: str, experience: str, equipment: Tuple[str, ...], days: str, pain: Tuple[str, ...]):
    """Build (or reuse) a weekly program and print it."""
    planner = _planner(ctx)
    questionnaire = _questionnaire(goal, experience, equipment, int(days), pain)

    program, created = planner.ensure_program(questionnaire)
    if not created:
        program, _ = planner.refresh_phase(program)

    click.echo(format_program_text(program, ctx.obj['catalog']))
    click.echo("New program saved." if created else "Reusing your current program.")


@cli.command()
@click.pass_context
def status(ctx):
    """Show current phase, next-week plan, progress and weekly signals."""
    planner = _planner(ctx)
    try:
        program = planner.require_program()
    except CoachError as e:
        _fail(str(e))

    program, signals = planner.refresh_phase(program)
    progress = planner.progress(program)
    next_day = planner.next_day(program)

    click.echo("=" * 60)
    click.echo("BODYCOACH TRAINING STATUS")
    click.echo("=" * 60)

    if program.phase:
        click.echo(f"\nCurrent Phase: {program.phase.name} (Week {program.phase.week_index})")
        click.echo(f"Phase Focus: {program.phase.goal}")

    click.echo(f"\n{'─' * 60}")
    click.echo("PROGRESS")
    click.echo('─' * 60)
    done = ", ".join(str(i + 1) for i in progress.completed_day_indices) or "none yet"
    click.echo(f"Completed days: {done}")
    click.echo(f"Next: Day {next_day.day_index + 1} of {program.days_per_week} ({next_day.title})")

    click.echo(f"\n{'─' * 60}")
    click.echo("LAST 7 DAYS")
    click.echo('─' * 60)
    click.echo(f"Sessions: {signals.completed_sessions}/{program.days_per_week}")
    click.echo(f"Compliance: {signals.compliance_rate*100:.0f}%")
    if signals.signals:
        click.echo("\nSignals:")
        for signal in signals.signals:
            click.echo(f"  ⚠  {signal}")

    if program.next_week_plan:
        click.echo(f"\n{program.next_week_plan.summary}")
        click.echo(f"  Change: {program.next_week_plan.change}")
        click.echo(f"  Why: {program.next_week_plan.reason}")

    click.echo("\n" + "=" * 60)


def _echo_recommendation(result, unit: str):
    click.echo(f"Next time: {result.recommended_next.describe(unit)}")
    click.echo(f"  Why: {result.reason}")
    if result.safety_flag:
        click.secho("  Pain was reported. Stop if it hurts and consider professional advice.", fg='yellow')


@cli.command()
@click.argument('exercise_id')
@click.option('--weight', type=float, help='Load used (weighted exercises)')
@click.option('--reps', type=int, help='Reps per set')
@click.option('--reps-by-set', help='Reps for each set, comma-separated')
@click.option('--sets', 'sets_completed', type=int, help='Sets completed')
@click.option('--felt', type=click.Choice([f.value for f in Felt]), help='How it felt')
@click.option('--pain-location', type=click.Choice([p.value for p in PainLocation]))
@click.option('--notes', help='Notes')
@click.option('--day', type=int, help='Program day (1-based), default: from the program')
@click.pass_context
def log(ctx, exercise_id: str, weight: Optional[float], reps: Optional[int], reps_by_set: Optional[str],
        sets_completed: Optional[int], felt: Optional[str], pain_location: Optional[str],
        notes: Optional[str], day: Optional[int]):
    """Log a completed exercise and show the next recommendation."""
    planner = _planner(ctx)
    try:
        saved, result = planner.log_exercise(
            exercise_id,
            weight=weight,
            reps=reps,
            reps_by_set=_parse_reps_by_set(reps_by_set),
            sets_completed=sets_completed,
            felt=Felt(felt) if felt else None,
            pain_location=PainLocation(pain_location) if pain_location else None,
            notes=notes,
            day_index=day - 1 if day else None,
        )
    except CoachError as e:
        _fail(str(e))

    click.echo(f"✓ Logged {exercise_id} (day {saved.day_index + 1 if saved.day_index is not None else '?'})")
    _echo_recommendation(result, ctx.obj['config'].default_unit)


@cli.command(name='next')
@click.argument('exercise_id')
@click.pass_context
def next_target(ctx, exercise_id: str):
    """Show the progression recommendation for an exercise."""
    try:
        result = _planner(ctx).recommend(exercise_id)
    except CoachError as e:
        _fail(str(e))
    _echo_recommendation(result, ctx.obj['config'].default_unit)


@cli.command()
@click.argument('original_id')
@click.argument('replacement_id')
@click.pass_context
def swap(ctx, original_id: str, replacement_id: str):
    """Remember an exercise substitution."""
    try:
        _planner(ctx).set_substitution(original_id, replacement_id)
    except CoachError as e:
        _fail(str(e))
    click.echo(f"✓ {original_id} -> {replacement_id}")


@cli.command()
@click.option('--exercise', 'exercise_id', help='Limit the volume trend to one exercise')
@click.option('--limit', default=5, help='Number of top exercises')
@click.pass_context
def history(ctx, exercise_id: Optional[str], limit: int):
    """Show personal records, most-logged exercises and volume by day."""
    logs = ctx.obj['store'].list_all_exercise_logs()
    catalog = ctx.obj['catalog']
    unit = ctx.obj['config'].default_unit

    if not logs:
        click.echo("No exercise logs yet.")
        return

    click.echo("=" * 60)
    click.echo("TRAINING HISTORY")
    click.echo("=" * 60)

    click.echo("\nMost logged:")
    for entry in top_exercises(logs, limit=limit):
        exercise = catalog.by_id(entry['exercise_id'])
        name = exercise.name if exercise else entry['exercise_id']
        click.echo(f"  {name}: {entry['count']}")

    records = personal_records(logs)
    weighted = {k: v for k, v in records.items() if v.max_weight is not None}
    if weighted:
        click.echo("\nPersonal records:")
        for ex_id, record in sorted(weighted.items()):
            click.echo(f"  {ex_id}: {record.max_weight:g} {unit} (best volume {record.max_volume:,.0f})")

    trend = volume_by_date(logs, exercise_id=exercise_id)
    if not trend.empty:
        click.echo(f"\nDate       | Volume ({unit})")
        click.echo("─" * 60)
        for day, volume in trend.items():
            click.echo(f"{day} | {volume:>10,.0f}")

    click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--goal', type=click.Choice(GOALS), default='Improve posture', show_default=True)
@click.option('--experience', type=click.Choice(EXPERIENCE), default='Beginner', show_default=True)
@click.option('--pain', multiple=True, help='Pain area (repeatable)')
@click.option('--notes', help='Anything else we should know')
@click.option('--front', type=click.Path(exists=True, dir_okay=False), help='Front-view keypoints JSON')
@click.option('--side', type=click.Path(exists=True, dir_okay=False), help='Side-view keypoints JSON')
@click.option('--back', type=click.Path(exists=True, dir_okay=False), help='Back-view keypoints JSON')
@click.pass_context
def assess(ctx, goal: str, experience: str, pain: Tuple[str, ...], notes: Optional[str],
           front: Optional[str], side: Optional[str], back: Optional[str]):
    """Print a posture assessment from self-report and optional pose keypoints."""
    questionnaire = _questionnaire(goal, experience, (), 3, pain)
    pose_analysis = analyze_views(
        KeypointFileEstimator(),
        {'front': front, 'side': side, 'back': back},
    )
    report = build_report(questionnaire, pose_analysis=pose_analysis, user_notes=notes)

    click.echo("=" * 60)
    click.echo("POSTURE ASSESSMENT")
    click.echo("=" * 60)
    click.echo(f"\n{report.summary}")

    if pose_analysis is not None:
        click.echo(f"\nScan confidence: {pose_analysis.confidence_score:.2f}")
        for line in pose_analysis.observations:
            click.echo(f"  • {line}")

    by_id = {obs.id: obs for obs in report.observations}
    for i, obs_id in enumerate(report.priorities, 1):
        obs = by_id[obs_id]
        click.echo(f"\n{i}. {obs.title} [{obs.confidence.value}]")
        click.echo(f"   {obs.description}")
        for intervention in obs.recommended_interventions:
            click.echo(f"   - {intervention.target}: {intervention.suggestion}")

    click.echo(f"\n{'─' * 60}")
    for disclaimer in report.disclaimers:
        click.echo(disclaimer)


@cli.command(name='export')
@click.argument('path', type=click.Path(dir_okay=False))
@click.pass_context
def export_cmd(ctx, path: str):
    """Export all local data to a JSON bundle."""
    bundle = export_bundle(ctx.obj['store'], now=datetime.now(timezone.utc))
    written = write_bundle(path, bundle)
    click.echo(
        f"✓ Exported {len(bundle['sessions'])} sessions, {len(bundle['exerciseLogs'])} logs, "
        f"{len(bundle['programs'])} programs to {written}"
    )


@cli.command(name='import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cmd(ctx, path: str):
    """Merge a JSON bundle into local data (newer records win)."""
    try:
        result = import_bundle(ctx.obj['store'], read_bundle(path))
    except CoachError as e:
        _fail(str(e))

    click.echo("✓ Restore complete. Your data has been merged.")
    click.echo(
        f"  Sessions: {result.sessions}, logs: {result.exercise_logs}, "
        f"programs: {result.programs}, skipped: {result.skipped}"
    )


if __name__ == '__main__':
    cli()
