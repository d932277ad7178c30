"""
Read-only data access for the scoring engine

Loads snapshots of the league tables as plain rows and hands them to the
scoring engine and board builders. This is the only module that queries the
database on behalf of the API and the CLI.
"""

import logging

from flask import current_app

from league import db
from league.models import Game, Pick, PointAdjustment, Profile, Result
from league.services.boards import build_league_picks, build_scoreboard
from league.utils.cache_utils import cached_query
from league.utils.scoring import (
    ScoringIssues,
    ScoringRules,
    compute_leaderboard,
    compute_weekly_breakdown,
)
from league.utils.timezone_utils import get_app_timezone

logger = logging.getLogger(__name__)


class LeagueSnapshot:
    """Rows from every league table, read once per computation"""

    def __init__(self, profiles=None, games=None, results=None, picks=None, adjustments=None):
        self.profiles = profiles or []
        self.games = games or []
        self.results = results or []
        self.picks = picks or []
        self.adjustments = adjustments or []

    def __repr__(self):
        return (
            f"<LeagueSnapshot profiles={len(self.profiles)} games={len(self.games)} "
            f"results={len(self.results)} picks={len(self.picks)}>"
        )


def current_rules():
    return ScoringRules.from_config(current_app.config)


def load_snapshot():
    """Read every league table"""
    snapshot = LeagueSnapshot(
        profiles=[p.to_dict() for p in Profile.query.order_by(Profile.id).all()],
        games=[g.to_dict() for g in Game.query.order_by(Game.kickoff_time, Game.id).all()],
        results=[r.to_dict() for r in Result.query.order_by(Result.id).all()],
        picks=[p.to_dict() for p in Pick.query.order_by(Pick.id).all()],
        adjustments=[
            a.to_dict() for a in PointAdjustment.query.order_by(PointAdjustment.id).all()
        ],
    )
    logger.debug(f"Loaded {snapshot}")
    return snapshot


@cached_query("leaderboard")
def get_leaderboard():
    """Ranked leaderboard rows for the whole league"""
    snapshot = load_snapshot()
    leaderboard = compute_leaderboard(
        snapshot.profiles,
        snapshot.games,
        snapshot.results,
        snapshot.picks,
        adjustments=snapshot.adjustments,
        rules=current_rules(),
    )
    return [entry.to_dict() for entry in leaderboard]


def get_weekly_breakdown(email, week):
    """Weekly score for one user, or None when they made no picks that week"""
    games = [g.to_dict() for g in Game.query.all()]
    results = [r.to_dict() for r in Result.query.filter(Result.week == week).all()]
    picks = [p.to_dict() for p in Pick.get_for_user(email)]

    quiet = ScoringIssues(log_level=logging.DEBUG)
    breakdown = compute_weekly_breakdown(
        email, week, games, results, picks, rules=current_rules(), issues=quiet
    )
    return breakdown.to_dict() if breakdown is not None else None


@cached_query("league_picks")
def get_league_picks(week):
    """League picks grid for a week"""
    games = [g.to_dict() for g in Game.get_games_for_week(week)]
    game_ids = [g["id"] for g in games]
    picks = Pick.query.filter(
        db.or_(Pick.game_id.in_(game_ids), db.and_(Pick.game_id.is_(None), Pick.week == week))
    ).all()
    profiles = [p.to_dict() for p in Profile.query.order_by(Profile.id).all()]

    return build_league_picks(
        week, profiles, games, [p.to_dict() for p in picks], tz=get_app_timezone()
    )


@cached_query("scoreboard")
def get_scoreboard(week):
    """Scores and spreads for a week"""
    games = [g.to_dict() for g in Game.get_games_for_week(week)]
    results = [r.to_dict() for r in Result.query.filter(Result.week == week).all()]
    return build_scoreboard(week, games, results, rules=current_rules(), tz=get_app_timezone())


def get_diagnostics():
    """Rescore the league and report every recovered data problem"""
    snapshot = load_snapshot()
    issues = ScoringIssues()
    compute_leaderboard(
        snapshot.profiles,
        snapshot.games,
        snapshot.results,
        snapshot.picks,
        adjustments=snapshot.adjustments,
        rules=current_rules(),
        issues=issues,
    )
    return issues.to_dict()
