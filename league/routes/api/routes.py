from functools import wraps

from flask import current_app, jsonify, request

from league.routes.api import bp
from league.services import league_data
from league.session import session_required


def add_security_headers(f):
    """Add no-store cache headers to per-user API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def _valid_week(week):
    return week is not None and 1 <= week <= current_app.config.get("SEASON_WEEKS", 18)


def _weekly_score_response(email, week):
    breakdown = league_data.get_weekly_breakdown(email, week)
    if breakdown is None:
        return jsonify({"error": "No picks found for that email & week."}), 404
    return jsonify(breakdown)


@bp.route("/leaderboard")
def leaderboard():
    """Ranked league leaderboard"""
    return jsonify({"leaderboard": league_data.get_leaderboard()})


@bp.route("/weekly-score")
@add_security_headers
def weekly_score():
    """Weekly score breakdown for any user"""
    email = request.args.get("email", "").strip()
    week = request.args.get("week", type=int)

    if not email:
        return jsonify({"error": "No email provided"}), 400
    if not _valid_week(week):
        return jsonify({"error": "Invalid week"}), 400

    return _weekly_score_response(email, week)


@bp.route("/me/weekly-score")
@session_required
@add_security_headers
def my_weekly_score(user_session):
    """Weekly score breakdown for the caller"""
    week = request.args.get("week", type=int)
    if not _valid_week(week):
        return jsonify({"error": "Invalid week"}), 400

    return _weekly_score_response(user_session.email, week)


@bp.route("/weeks/<int:week>/league-picks")
def league_picks(week):
    """Every user's picks for a week, grouped into Thursday, best and Monday slots"""
    if not _valid_week(week):
        return jsonify({"error": "Invalid week"}), 400

    return jsonify({"week": week, "league_picks": league_data.get_league_picks(week)})


@bp.route("/weeks/<int:week>/scoreboard")
def scoreboard(week):
    """Final scores and spreads for a week"""
    if not _valid_week(week):
        return jsonify({"error": "Invalid week"}), 400

    return jsonify({"week": week, "games": league_data.get_scoreboard(week)})


@bp.route("/diagnostics")
@add_security_headers
def diagnostics():
    """Data problems the scoring engine recovered from"""
    return jsonify(league_data.get_diagnostics())
