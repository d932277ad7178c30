"""
Spreads league management commands

Run through manage.py, which creates the app and pushes its context.
"""

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import PointAdjustment
from league.services import league_data
from league.utils.cache_utils import get_cache_stats, invalidate_league_cache
from league.utils.logging_config import get_logger

logger = get_logger(__name__)


@click.group()
def cli():
    """Spreads League Management CLI"""
    pass


# Database Commands
@cli.group(name="db")
def database():
    """Database commands"""
    pass


@database.command(name="init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")
        logger.error(f"Database init failed: {e}")


# Scoring Commands
@cli.command()
@click.option("--limit", type=int, default=0, help="Only show the top N entries")
@with_appcontext
def leaderboard(limit):
    """Show the league leaderboard"""
    entries = league_data.get_leaderboard()
    if limit:
        entries = entries[:limit]

    if not entries:
        click.echo("No players found.")
        return

    click.echo(f"{'Rank':>4}  {'Username':<24} {'Correct':>7} {'Points':>7}")
    for entry in entries:
        click.echo(
            f"{entry['rank']:>4}  {entry['username']:<24} "
            f"{entry['total_correct']:>7} {entry['total_points']:>7}"
        )


@cli.command(name="weekly-score")
@click.argument("email")
@click.argument("week", type=int)
@with_appcontext
def weekly_score(email, week):
    """Show one user's score for a week"""
    breakdown = league_data.get_weekly_breakdown(email, week)
    if breakdown is None:
        click.echo(f"No picks found for {email} in week {week}.")
        return

    click.echo(f"Week {week} - {breakdown['email']}")
    click.echo(f"  Correct:        {breakdown['correct']} / {breakdown['total']}")
    click.echo(f"  Locks won:      {breakdown['lock_correct']}")
    click.echo(f"  Locks lost:     {breakdown['lock_incorrect']}")
    click.echo(f"  Perfect bonus:  {breakdown['perfect_bonus']}")
    click.echo(f"  Weekly points:  {breakdown['weekly_points']}")


@cli.command(name="league-picks")
@click.argument("week", type=int)
@with_appcontext
def league_picks(week):
    """Show every user's picks for a week (locks marked with *)"""

    def render(item):
        if not item:
            return "-"
        return f"{item['team']}*" if item["is_lock"] else item["team"]

    for entry in league_data.get_league_picks(week):
        best = ", ".join(render(item) for item in entry["best"]) or "-"
        flag = " (extra picks dropped)" if entry["truncated"] else ""
        click.echo(
            f"{entry['username']}: Thu {render(entry['thursday'])} | Best {best} | "
            f"Mon {render(entry['monday'])}{flag}"
        )


@cli.command()
@with_appcontext
def diagnose():
    """Report data problems the scoring engine had to work around"""
    report = league_data.get_diagnostics()

    click.echo("=== Scoring Diagnostics ===")
    click.echo(f"Missing references: {len(report['missing_references'])}")
    for item in report["missing_references"]:
        click.echo(
            f"  Pick {item['pick_id']} ({item['user_email']}, game {item['game_id']}): {item['reason']}"
        )

    click.echo(f"Unrecognized team names: {len(report['unrecognized_teams'])}")
    for item in report["unrecognized_teams"]:
        click.echo(f"  {item['name']} ({item['occurrences']}x)")

    click.echo(f"Malformed spreads: {len(report['malformed_spreads'])}")
    for item in report["malformed_spreads"]:
        click.echo(f"  Game {item['game_id']}: {item['spread']}")

    if report["total"] == 0:
        click.echo("✅ No data problems found")


# Point Adjustment Commands
@cli.group()
def adjust():
    """Manual point adjustments"""
    pass


@adjust.command(name="add")
@click.argument("email")
@click.option("--points", type=int, default=0, help="Points to add (negative to remove)")
@click.option("--correct", type=int, default=0, help="Correct picks to add")
@click.option("--reason", required=True, help="Why the adjustment is needed")
@click.option("--by", "created_by", help="Who made the adjustment")
@with_appcontext
def add_adjustment(email, points, correct, reason, created_by):
    """Record a manual adjustment for a user"""
    if points == 0 and correct == 0:
        click.echo("❌ Nothing to adjust: give --points and/or --correct")
        return

    try:
        adjustment = PointAdjustment.log_adjustment(
            email,
            points_delta=points,
            correct_delta=correct,
            reason=reason,
            created_by=created_by,
        )
        db.session.commit()
    except ValueError as e:
        click.echo(f"❌ {str(e)}")
        return
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error saving adjustment: {str(e)}")
        logger.error(f"Adjustment failed - SQL error: {e}")
        return

    invalidate_league_cache()
    click.echo(
        f"✅ Adjusted {adjustment.user_email}: points {points:+d}, correct {correct:+d} ({reason})"
    )


@adjust.command(name="list")
@click.option("--email", help="Only show adjustments for this user")
@with_appcontext
def list_adjustments(email):
    """List manual adjustments"""
    query = PointAdjustment.query
    if email:
        query = query.filter(PointAdjustment.user_email == email.strip().lower())
    adjustments = query.order_by(PointAdjustment.created_at).all()

    if not adjustments:
        click.echo("No adjustments found.")
        return

    for a in adjustments:
        by = f" by {a.created_by}" if a.created_by else ""
        click.echo(
            f"  #{a.id} {a.user_email}: points {a.points_delta:+d}, "
            f"correct {a.correct_delta:+d} - {a.reason}{by}"
        )


# Cache Commands
@cli.group(name="cache")
def cache_cmd():
    """Cache commands"""
    pass


@cache_cmd.command(name="clear")
@with_appcontext
def clear_cache():
    """Clear cached leaderboards and boards"""
    invalidate_league_cache()
    stats = get_cache_stats()
    click.echo(f"✅ Cache cleared ({stats['type']})")
