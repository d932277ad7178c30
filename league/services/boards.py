"""
Weekly boards built from league snapshots: the league picks grid and the
scoreboard of final scores and spreads.
"""

from league.utils.scoring import (
    DEFAULT_RULES,
    GameIndex,
    ResultIndex,
    as_bool,
    as_int,
    dedupe,
    email_key,
    parse_spread,
    parse_timestamp,
    spread_winner,
    username_lookup,
)
from league.utils.timezone_utils import convert_to_timezone, format_kickoff

FINAL_WEEK = 18
BEST_PICKS = 3
FINAL_WEEK_BEST_PICKS = 5

THURSDAY = 3
MONDAY = 0

_LAST = parse_timestamp("9999-12-31T00:00:00+00:00")


def _kickoff_sort_key(game):
    return (parse_timestamp(game.get("kickoff_time")) or _LAST, as_int(game.get("id")) or 0)


def _empty_entry(email, username):
    return {
        "email": email,
        "username": username,
        "thursday": None,
        "monday": None,
        "best": [],
        "truncated": False,
    }


def build_league_picks(week, profiles, games, picks, tz=None):
    """
    Group each user's effective picks for a week into slots.

    Regular weeks hold one Thursday pick, one Monday pick and three best
    picks, chosen by the kickoff weekday in the league timezone. The final
    week has no Thursday or Monday slots and five best picks. Picks beyond the
    slots are dropped and the entry is marked truncated. Users without picks
    are listed with empty slots. Rows are sorted by username.
    """
    week = as_int(week)
    usernames = username_lookup(profiles)
    game_index = GameIndex([g for g in games or [] if as_int(g.get("week")) == week])

    placed = []
    for pick in dedupe(picks, game_index):
        game = game_index.resolve(pick)
        if game is None:
            continue
        placed.append((_kickoff_sort_key(game), as_int(pick.get("id")) or 0, pick, game))
    placed.sort(key=lambda item: (item[0], item[1]))

    final_week = week == FINAL_WEEK
    max_best = FINAL_WEEK_BEST_PICKS if final_week else BEST_PICKS

    entries = {}
    for _, _, pick, game in placed:
        email = email_key(pick.get("user_email"))
        if not email:
            continue
        entry = entries.get(email)
        if entry is None:
            entry = entries[email] = _empty_entry(email, usernames.get(email, email))

        item = {
            "game_id": game.get("id"),
            "team": (pick.get("selected_team") or "").strip(),
            "is_lock": as_bool(pick.get("is_lock")),
        }

        kickoff = parse_timestamp(game.get("kickoff_time"))
        weekday = convert_to_timezone(kickoff, tz).weekday() if kickoff else None

        if not final_week and weekday == THURSDAY and entry["thursday"] is None:
            entry["thursday"] = item
        elif not final_week and weekday == MONDAY and entry["monday"] is None:
            entry["monday"] = item
        elif len(entry["best"]) < max_best:
            entry["best"].append(item)
        else:
            entry["truncated"] = True

    for email, username in usernames.items():
        if email not in entries:
            entries[email] = _empty_entry(email, username)

    return sorted(entries.values(), key=lambda e: (e["username"] or "").lower())


def build_scoreboard(week, games, results, rules=None, tz=None):
    """
    List a week's games by kickoff with spreads and, once final, the score
    aligned to the game's orientation and the team that covered.
    """
    week = as_int(week)
    rules = rules or DEFAULT_RULES
    result_index = ResultIndex(results)

    week_games = sorted(
        (g for g in games or [] if as_int(g.get("week")) == week), key=_kickoff_sort_key
    )

    rows = []
    for game in week_games:
        kickoff = parse_timestamp(game.get("kickoff_time"))
        result = result_index.find_for_game(game)

        row = {
            "game_id": game.get("id"),
            "week": week,
            "home_team": game.get("home_team"),
            "away_team": game.get("away_team"),
            "spread": parse_spread(game.get("spread")),
            "kickoff_time": kickoff.isoformat() if kickoff else None,
            "kickoff_local": format_kickoff(kickoff, tz),
            "final": result is not None,
            "home_score": None,
            "away_score": None,
            "covered": None,
        }
        if result is not None:
            row["home_score"] = result.home_score
            row["away_score"] = result.away_score
            row["covered"] = spread_winner(game, result, rules)
        rows.append(row)

    return rows
