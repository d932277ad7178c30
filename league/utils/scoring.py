"""
Scoring Engine for the spreads league

Reconciles picks against the schedule and final results and produces the
leaderboard. Every function here works on plain snapshot rows (dicts as
returned by the models' to_dict() or by any other source) and never touches
the database. Bad rows are recovered locally and reported through
ScoringIssues, so a stray pick degrades one user's week instead of the whole
computation.

Scoring rules:
    correct pick            +1
    correct lock pick       +1 and the lock bonus (+2)
    incorrect lock pick     minus the lock penalty (-2)
    incorrect pick           0
    perfect week            +3 (every pick made that week correct)
"""

import logging
import math
from collections import namedtuple
from datetime import datetime, timezone

from league.utils.teams import canonicalize, is_known_team

logger = logging.getLogger(__name__)

PUSH_AWAY = "away"
PUSH_VOID = "void"

_NO_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

FinalScore = namedtuple("FinalScore", ["home_score", "away_score"])
PickScore = namedtuple("PickScore", ["correct", "point_delta"])


class ScoringRules:
    """Point values and the spread push rule"""

    def __init__(
        self, lock_bonus=2, lock_penalty=2, perfect_week_bonus=3, push_rule=PUSH_AWAY
    ):
        self.lock_bonus = lock_bonus
        self.lock_penalty = lock_penalty
        self.perfect_week_bonus = perfect_week_bonus
        self.push_rule = push_rule if push_rule in (PUSH_AWAY, PUSH_VOID) else PUSH_AWAY

    @classmethod
    def from_config(cls, config):
        return cls(
            lock_bonus=config.get("LOCK_BONUS", 2),
            lock_penalty=config.get("LOCK_PENALTY", 2),
            perfect_week_bonus=config.get("PERFECT_WEEK_BONUS", 3),
            push_rule=config.get("SPREAD_PUSH_RULE", PUSH_AWAY),
        )


DEFAULT_RULES = ScoringRules()


class ScoringIssues:
    """
    Data problems recovered during a computation, for operator review.

    Problems are logged at log_level as they are found; per-request paths
    that rescore the same data pass logging.DEBUG.
    """

    def __init__(self, log_level=logging.WARNING):
        self.log_level = log_level
        self.missing_references = []
        self.unrecognized_teams = {}
        self.malformed_spreads = {}

    def missing_reference(self, pick, reason):
        self.missing_references.append(
            {
                "pick_id": pick.get("id"),
                "user_email": pick.get("user_email"),
                "game_id": pick.get("game_id"),
                "reason": reason,
            }
        )
        logger.log(self.log_level, f"Pick {pick.get('id')} not scored: {reason}")

    def check_team(self, raw):
        if not raw or is_known_team(raw):
            return
        name = canonicalize(raw)
        if name not in self.unrecognized_teams:
            logger.log(self.log_level, f"Unrecognized team name {raw!r}, using {name!r}")
            self.unrecognized_teams[name] = 0
        self.unrecognized_teams[name] += 1

    def malformed_spread(self, game_id, value):
        if game_id in self.malformed_spreads:
            return
        self.malformed_spreads[game_id] = {"game_id": game_id, "spread": repr(value)}
        logger.log(self.log_level, f"Game {game_id} has malformed spread {value!r}, using 0")

    @property
    def count(self):
        return (
            len(self.missing_references)
            + len(self.unrecognized_teams)
            + len(self.malformed_spreads)
        )

    def to_dict(self):
        return {
            "missing_references": list(self.missing_references),
            "unrecognized_teams": [
                {"name": name, "occurrences": count}
                for name, count in sorted(self.unrecognized_teams.items())
            ],
            "malformed_spreads": list(self.malformed_spreads.values()),
            "total": self.count,
        }


# Row helpers


def email_key(value):
    return (value or "").strip().lower()


def as_int(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_score(value):
    """Scores are ints; numeric strings and whole floats are accepted"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return int(number) if number.is_integer() else number


def as_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes")
    return bool(value)


def parse_timestamp(value):
    """Return an aware datetime, or None. Naive values are treated as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_spread(value, issues=None, game_id=None):
    """Spread as a float; missing is 0 and malformed is 0 with an issue logged"""
    if value is None or value == "":
        return 0.0
    try:
        spread = float(value)
    except (TypeError, ValueError):
        spread = math.nan
    if math.isnan(spread) or math.isinf(spread) or isinstance(value, bool):
        if issues is not None:
            issues.malformed_spread(game_id, value)
        return 0.0
    return spread


# De-duplication


def _pick_group_key(pick, game_index=None):
    email = email_key(pick.get("user_email"))
    game = game_index.resolve(pick) if game_index is not None else None
    if game is not None and game.get("id") is not None:
        return (email, str(game["id"]))

    game_id = pick.get("game_id")
    if game_id is not None and game_id != "":
        return (email, str(game_id))
    return (
        email,
        as_int(pick.get("week")),
        canonicalize(pick.get("home_team")),
        canonicalize(pick.get("away_team")),
    )


def _pick_recency(pick):
    created_at = parse_timestamp(pick.get("created_at"))
    pick_id = as_int(pick.get("id"))
    return (
        created_at is not None,
        created_at or _NO_TIMESTAMP,
        pick_id if pick_id is not None else -1,
    )


def dedupe(picks, game_index=None):
    """
    Keep one effective pick per (user, game).

    The latest created_at wins; equal or missing timestamps fall back to the
    highest id. With a game_index, picks are grouped by the game they resolve
    to, so a re-submission by matchup replaces an earlier pick by game_id.
    Otherwise, and for picks that resolve to no game, picks without a game_id
    are grouped by week and matchup.
    """
    latest = {}
    for pick in picks or []:
        key = _pick_group_key(pick, game_index)
        current = latest.get(key)
        if current is None or _pick_recency(pick) > _pick_recency(current):
            latest[key] = pick
    return list(latest.values())


# Schedule and result lookups


class GameIndex:
    """Resolve picks to games by id, or by week and matchup"""

    def __init__(self, games, issues=None):
        self.by_id = {}
        self.by_matchup = {}
        for game in games or []:
            if game.get("id") is not None:
                self.by_id[str(game["id"])] = game

            week = as_int(game.get("week"))
            home = canonicalize(game.get("home_team"))
            away = canonicalize(game.get("away_team"))
            if issues is not None:
                issues.check_team(game.get("home_team"))
                issues.check_team(game.get("away_team"))
            self.by_matchup.setdefault((week, home, away), game)
            self.by_matchup.setdefault((week, away, home), game)

    def __len__(self):
        return len(self.by_id)

    def resolve(self, pick):
        game_id = pick.get("game_id")
        if game_id is not None and game_id != "":
            return self.by_id.get(str(game_id))
        return self.by_matchup.get(
            (
                as_int(pick.get("week")),
                canonicalize(pick.get("home_team")),
                canonicalize(pick.get("away_team")),
            )
        )


class ResultIndex:
    """
    Final scores keyed by week and canonical matchup.

    Each result is stored under its own orientation and, unless that key is
    already taken, under the swapped one with the scores swapped too, so a
    lookup always answers in the orientation it was asked in.
    """

    def __init__(self, results, issues=None):
        self._lookup = {}
        for result in results or []:
            week = as_int(result.get("week"))
            home_score = as_score(result.get("home_score"))
            away_score = as_score(result.get("away_score"))
            if week is None or home_score is None or away_score is None:
                continue

            if issues is not None:
                issues.check_team(result.get("home_team"))
                issues.check_team(result.get("away_team"))
            home = canonicalize(result.get("home_team"))
            away = canonicalize(result.get("away_team"))

            self._lookup[(week, home, away)] = FinalScore(home_score, away_score)
            self._lookup.setdefault((week, away, home), FinalScore(away_score, home_score))

    def __len__(self):
        return len(self._lookup)

    def find(self, week, home, away):
        return self._lookup.get((as_int(week), canonicalize(home), canonicalize(away)))

    def find_for_game(self, game):
        return self.find(game.get("week"), game.get("home_team"), game.get("away_team"))


def find_result(results, week, home, away):
    """One-shot lookup; returns FinalScore aligned to (home, away) or None"""
    return ResultIndex(results).find(week, home, away)


# Scoring


def spread_winner(game, result, rules=None, issues=None):
    """
    Canonical name of the team that covered, or None for a voided push.

    The home team covers when home_score + spread > away_score. With the
    default push rule an exact push fails that test and goes to the away side.
    """
    rules = rules or DEFAULT_RULES
    spread = parse_spread(game.get("spread"), issues, game.get("id"))
    adjusted_home = result.home_score + spread

    if adjusted_home == result.away_score and rules.push_rule == PUSH_VOID:
        return None

    home_cover = adjusted_home > result.away_score
    return canonicalize(game.get("home_team") if home_cover else game.get("away_team"))


def score_pick(pick, game, result, rules=None, issues=None):
    """
    Score one pick against a final result.

    Returns PickScore(correct, point_delta), or None when the push rule voids
    the game. Must only be called with a resolved result.
    """
    rules = rules or DEFAULT_RULES
    winner = spread_winner(game, result, rules, issues)
    if winner is None:
        return None

    correct = canonicalize(pick.get("selected_team")) == winner
    is_lock = as_bool(pick.get("is_lock"))

    if correct:
        point_delta = 1 + (rules.lock_bonus if is_lock else 0)
    else:
        point_delta = -rules.lock_penalty if is_lock else 0

    return PickScore(correct, point_delta)


# Aggregation


class WeekTally:
    def __init__(self, week):
        self.week = week
        self.total = 0
        self.correct = 0
        self.lock_correct = 0
        self.lock_incorrect = 0
        self.points = 0
        self.perfect_bonus = 0

    @property
    def is_perfect(self):
        return self.total > 0 and self.correct == self.total

    @property
    def weekly_points(self):
        return self.points + self.perfect_bonus

    def record(self, score, is_lock):
        self.points += score.point_delta
        if score.correct:
            self.correct += 1
            if is_lock:
                self.lock_correct += 1
        elif is_lock:
            self.lock_incorrect += 1

    def to_dict(self):
        return {
            "week": self.week,
            "total": self.total,
            "correct": self.correct,
            "lock_correct": self.lock_correct,
            "lock_incorrect": self.lock_incorrect,
            "perfect_bonus": self.perfect_bonus,
            "weekly_points": self.weekly_points,
        }


class UserStats:
    def __init__(self, email, username=None):
        self.email = email
        self.username = username or email
        self.total_correct = 0
        self.total_points = 0
        self.weekly = {}
        self.adjustments = []

    def __repr__(self):
        return f"<UserStats {self.email} points={self.total_points} correct={self.total_correct}>"

    def week(self, week):
        tally = self.weekly.get(week)
        if tally is None:
            tally = self.weekly[week] = WeekTally(week)
        return tally

    def to_dict(self):
        return {
            "email": self.email,
            "username": self.username,
            "total_correct": self.total_correct,
            "total_points": self.total_points,
            "weekly": [self.weekly[week].to_dict() for week in sorted(self.weekly)],
            "adjustments": list(self.adjustments),
        }


def username_lookup(profiles):
    """Map lowercased email to username, falling back to the email"""
    names = {}
    for profile in profiles or []:
        email = email_key(profile.get("email"))
        if not email:
            continue
        names[email] = (profile.get("username") or "").strip() or email
    return names


def aggregate(picks, games, results, profiles=None, rules=None, issues=None):
    """
    Build per-user totals and weekly tallies.

    Every profile gets a row, even without picks. Each effective pick counts
    toward its week's total; picks whose game has a final result are scored.
    A week where every pick made was correct earns the perfect-week bonus.

    Returns a dict keyed by lowercased email.
    """
    rules = rules or DEFAULT_RULES
    issues = issues if issues is not None else ScoringIssues()

    usernames = username_lookup(profiles)
    stats = {email: UserStats(email, name) for email, name in usernames.items()}

    game_index = GameIndex(games, issues)
    result_index = ResultIndex(results, issues)

    for pick in dedupe(picks, game_index):
        email = email_key(pick.get("user_email"))
        if not email:
            issues.missing_reference(pick, "pick has no user email")
            continue

        user = stats.get(email)
        if user is None:
            user = stats[email] = UserStats(email, usernames.get(email))

        game = game_index.resolve(pick)
        if game is None:
            issues.missing_reference(pick, "game not found in schedule")
            week = as_int(pick.get("week"))
        else:
            week = as_int(game.get("week"))
        if week is None:
            continue

        tally = user.week(week)
        tally.total += 1
        issues.check_team(pick.get("selected_team"))

        if game is None:
            continue

        result = result_index.find_for_game(game)
        if result is None:
            continue

        score = score_pick(pick, game, result, rules, issues)
        if score is None:
            continue

        tally.record(score, as_bool(pick.get("is_lock")))
        user.total_points += score.point_delta
        if score.correct:
            user.total_correct += 1

    for user in stats.values():
        for tally in user.weekly.values():
            if tally.is_perfect:
                tally.perfect_bonus = rules.perfect_week_bonus
                user.total_points += rules.perfect_week_bonus

    return stats


def apply_adjustments(stats, adjustments):
    """
    Apply manual point adjustments after aggregation.

    Each adjustment is recorded on the user's stats so the override stays
    visible next to the totals it changed.
    """
    for adjustment in adjustments or []:
        email = email_key(adjustment.get("user_email"))
        if not email:
            logger.warning(f"Skipping adjustment without user email: {adjustment!r}")
            continue

        points_delta = as_score(adjustment.get("points_delta")) or 0
        correct_delta = as_int(adjustment.get("correct_delta")) or 0

        user = stats.get(email)
        if user is None:
            user = stats[email] = UserStats(email)

        user.total_points += points_delta
        user.total_correct += correct_delta
        user.adjustments.append(
            {
                "points_delta": points_delta,
                "correct_delta": correct_delta,
                "reason": adjustment.get("reason") or "",
            }
        )
        logger.info(
            f"Adjustment for {email}: points {points_delta:+}, correct {correct_delta:+} "
            f"({adjustment.get('reason')})"
        )
    return stats


# Ranking


class RankedEntry:
    def __init__(self, rank, email, username, total_correct, total_points):
        self.rank = rank
        self.email = email
        self.username = username
        self.total_correct = total_correct
        self.total_points = total_points

    def __repr__(self):
        return f"<RankedEntry #{self.rank} {self.username} {self.total_points}>"

    def to_dict(self):
        return {
            "rank": self.rank,
            "email": self.email,
            "username": self.username,
            "total_correct": self.total_correct,
            "total_points": self.total_points,
        }


def rank(stats):
    """
    Order by total points, then total correct, both descending.

    Remaining ties keep their input order and the rank is the 1-based
    position, so tied users do not share a rank number.
    """
    if isinstance(stats, dict):
        stats = stats.values()
    ordered = sorted(stats, key=lambda s: (-s.total_points, -s.total_correct))
    return [
        RankedEntry(position, s.email, s.username, s.total_correct, s.total_points)
        for position, s in enumerate(ordered, start=1)
    ]


# Entry points


class WeeklyBreakdown:
    def __init__(self, email, tally):
        self.email = email
        self.week = tally.week
        self.total = tally.total
        self.correct = tally.correct
        self.lock_correct = tally.lock_correct
        self.lock_incorrect = tally.lock_incorrect
        self.perfect_bonus = tally.perfect_bonus
        self.weekly_points = tally.weekly_points

    def to_dict(self):
        return {
            "email": self.email,
            "week": self.week,
            "total": self.total,
            "correct": self.correct,
            "lock_correct": self.lock_correct,
            "lock_incorrect": self.lock_incorrect,
            "perfect_bonus": self.perfect_bonus,
            "weekly_points": self.weekly_points,
        }


def compute_leaderboard(
    profiles, games, results, picks, adjustments=None, rules=None, issues=None
):
    """Score every pick and return the ranked leaderboard"""
    issues = issues if issues is not None else ScoringIssues()
    stats = aggregate(picks, games, results, profiles, rules, issues)
    apply_adjustments(stats, adjustments)
    leaderboard = rank(stats)

    logger.debug(
        f"Leaderboard computed: {len(leaderboard)} users, {len(picks or [])} pick rows, "
        f"{issues.count} data issues"
    )
    return leaderboard


def compute_weekly_breakdown(email, week, games, results, picks, rules=None, issues=None):
    """
    Score one user's week.

    Returns a WeeklyBreakdown, or None when the user made no picks that week.
    """
    key = email_key(email)
    week = as_int(week)
    if not key or week is None:
        return None

    user_picks = [p for p in picks or [] if email_key(p.get("user_email")) == key]
    stats = aggregate(user_picks, games, results, rules=rules, issues=issues)

    user = stats.get(key)
    if user is None:
        return None
    tally = user.weekly.get(week)
    if tally is None or tally.total == 0:
        return None
    return WeeklyBreakdown(key, tally)
