import logging
from datetime import datetime, timezone

import pytest

from league.utils.scoring import (
    FinalScore,
    GameIndex,
    PUSH_VOID,
    ScoringIssues,
    ScoringRules,
    UserStats,
    aggregate,
    apply_adjustments,
    compute_leaderboard,
    compute_weekly_breakdown,
    dedupe,
    find_result,
    parse_spread,
    parse_timestamp,
    rank,
    score_pick,
)
from tests.conftest import make_game, make_pick, make_result

CHIEFS_BILLS = make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread=-3)
CHIEFS_WIN = FinalScore(20, 10)


# Pick scoring


def test_correct_lock_on_home_cover_nets_three():
    pick = make_pick(1, "a@x.com", 1, "Kansas City Chiefs", is_lock=True)

    score = score_pick(pick, CHIEFS_BILLS, CHIEFS_WIN)

    assert score.correct is True
    assert score.point_delta == 3


def test_away_pick_on_home_cover_is_incorrect():
    pick = make_pick(1, "a@x.com", 1, "Buffalo Bills")

    score = score_pick(pick, CHIEFS_BILLS, CHIEFS_WIN)

    assert score.correct is False
    assert score.point_delta == 0


def test_incorrect_lock_costs_two():
    pick = make_pick(1, "a@x.com", 1, "BUF", is_lock=True)

    assert score_pick(pick, CHIEFS_BILLS, CHIEFS_WIN).point_delta == -2


def test_correct_pick_without_lock_is_one_point():
    pick = make_pick(1, "a@x.com", 1, "KC")

    assert score_pick(pick, CHIEFS_BILLS, CHIEFS_WIN) == (True, 1)


def test_favorite_winning_by_less_than_spread_does_not_cover():
    game = make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread=-7.5)
    pick = make_pick(1, "a@x.com", 1, "Bills")

    assert score_pick(pick, game, FinalScore(24, 20)).correct is True


def test_exact_push_goes_to_away_team_by_default():
    game = make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread=-7)
    push = FinalScore(17, 10)

    assert score_pick(make_pick(1, "a@x.com", 1, "Bills"), game, push).correct is True
    assert score_pick(make_pick(2, "b@x.com", 1, "Chiefs"), game, push).correct is False


def test_exact_push_is_unscored_with_void_rule():
    game = make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread=-7)
    rules = ScoringRules(push_rule=PUSH_VOID)

    assert score_pick(make_pick(1, "a@x.com", 1, "Bills"), game, FinalScore(17, 10), rules) is None


def test_void_push_counts_toward_total_but_blocks_perfect_week():
    games = [make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread=-7)]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 17, 10)]
    picks = [make_pick(1, "a@x.com", 1, "Bills")]

    stats = aggregate(picks, games, results, rules=ScoringRules(push_rule=PUSH_VOID))

    tally = stats["a@x.com"].weekly[1]
    assert (tally.total, tally.correct, tally.perfect_bonus) == (1, 0, 0)
    assert stats["a@x.com"].total_points == 0


def test_unknown_push_rule_falls_back_to_away():
    assert ScoringRules(push_rule="coin-flip").push_rule == "away"


# Spreads


@pytest.mark.parametrize("value", ["PK", "n/a", float("nan"), [], True])
def test_malformed_spread_is_zero_and_reported(value):
    issues = ScoringIssues()

    assert parse_spread(value, issues, game_id=7) == 0.0
    assert issues.to_dict()["malformed_spreads"] == [{"game_id": 7, "spread": repr(value)}]


def test_numeric_string_spread_is_accepted():
    assert parse_spread("-3.5") == -3.5
    assert parse_spread(None) == 0.0


def test_malformed_spread_scores_as_straight_up():
    games = [make_game(1, 1, "Kansas City Chiefs", "Buffalo Bills", spread="PK")]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 17)]
    issues = ScoringIssues()

    stats = aggregate([make_pick(1, "a@x.com", 1, "KC")], games, results, issues=issues)

    assert stats["a@x.com"].total_correct == 1
    assert len(issues.malformed_spreads) == 1


# De-duplication


def test_dedupe_keeps_latest_timestamp():
    early = make_pick(5, "a@x.com", 1, "KC", created_at="2025-09-01T10:00:00Z")
    late = make_pick(3, "a@x.com", 1, "BUF", created_at="2025-09-02T10:00:00Z")

    assert dedupe([early, late]) == [late]
    assert dedupe([late, early]) == [late]


def test_dedupe_equal_timestamps_keep_higher_id():
    first = make_pick(1, "a@x.com", 1, "KC", created_at="2025-09-01T10:00:00+00:00")
    second = make_pick(2, "a@x.com", 1, "BUF", created_at="2025-09-01T10:00:00+00:00")

    assert dedupe([second, first]) == [second]


def test_dedupe_missing_timestamps_keep_higher_id():
    first = make_pick(10, "a@x.com", 1, "KC")
    second = make_pick(11, "a@x.com", 1, "BUF")

    assert dedupe([second, first]) == [second]


def test_dedupe_prefers_timestamped_pick_over_missing_one():
    dated = make_pick(1, "a@x.com", 1, "KC", created_at="2025-09-01T10:00:00Z")
    undated = make_pick(2, "a@x.com", 1, "BUF")

    assert dedupe([dated, undated]) == [dated]


def test_dedupe_groups_emails_case_insensitively():
    picks = [
        make_pick(1, "A@X.com", 1, "KC", created_at="2025-09-01T10:00:00Z"),
        make_pick(2, " a@x.com", 1, "BUF", created_at="2025-09-01T11:00:00Z"),
        make_pick(3, "b@x.com", 1, "KC"),
        make_pick(4, "a@x.com", 2, "KC"),
    ]

    assert sorted(p["id"] for p in dedupe(picks)) == [2, 3, 4]


def test_dedupe_without_game_id_groups_by_week_and_matchup():
    picks = [
        make_pick(1, "a@x.com", None, "KC", week=1, home_team="KC", away_team="BUF",
                  created_at="2025-09-01T10:00:00Z"),
        make_pick(2, "a@x.com", None, "BUF", week=1, home_team="Kansas City Chiefs",
                  away_team="Bills", created_at="2025-09-01T11:00:00Z"),
        make_pick(3, "a@x.com", None, "KC", week=2, home_team="KC", away_team="BUF"),
    ]

    assert sorted(p["id"] for p in dedupe(picks)) == [2, 3]


def test_dedupe_groups_by_resolved_game_when_given_an_index():
    by_id = make_pick(1, "a@x.com", 1, "Chiefs", created_at="2025-09-01T10:00:00Z")
    by_matchup = make_pick(2, "a@x.com", None, "Bills", week=1, home_team="KC",
                           away_team="BUF", created_at="2025-09-02T10:00:00Z")

    assert len(dedupe([by_id, by_matchup])) == 2
    assert dedupe([by_id, by_matchup], GameIndex([CHIEFS_BILLS])) == [by_matchup]


def test_resubmission_by_matchup_replaces_pick_by_game_id():
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [
        make_pick(1, "a@x.com", 1, "Chiefs", created_at="2025-09-01T10:00:00Z"),
        make_pick(2, "a@x.com", None, "Bills", week=1, home_team="KC", away_team="BUF",
                  created_at="2025-09-02T10:00:00Z"),
    ]

    user = aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"]

    assert user.weekly[1].total == 1
    assert (user.total_correct, user.total_points) == (0, 0)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2025-09-01 10:00:00+00", datetime(2025, 9, 1, 10, tzinfo=timezone.utc)),
        ("2025-09-01 10:00:00.12345+00",
         datetime(2025, 9, 1, 10, 0, 0, 123450, tzinfo=timezone.utc)),
        ("2025-09-01T10:00:00Z", datetime(2025, 9, 1, 10, tzinfo=timezone.utc)),
        ("2025-09-01T10:00:00", datetime(2025, 9, 1, 10, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_accepts_database_text(text, expected):
    assert parse_timestamp(text) == expected


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None


def test_postgres_timestamps_order_resubmissions():
    early = make_pick(7, "a@x.com", 1, "KC", created_at="2025-09-01 10:00:00.5+00")
    late = make_pick(3, "a@x.com", 1, "BUF", created_at="2025-09-01 10:00:00.75+00")

    assert dedupe([early, late]) == [late]


# Result matching


def test_find_result_in_stored_orientation():
    results = [make_result(1, "Buffalo Bills", "Kansas City Chiefs", 10, 20)]

    assert find_result(results, 1, "Bills", "Chiefs") == FinalScore(10, 20)


def test_find_result_is_orientation_symmetric():
    results = [make_result(1, "Buffalo Bills", "Kansas City Chiefs", 10, 20)]

    assert find_result(results, 1, "Kansas City Chiefs", "Buffalo Bills") == FinalScore(20, 10)


def test_find_result_returns_none_before_game_is_played():
    results = [make_result(1, "Buffalo Bills", "Kansas City Chiefs", 10, 20)]

    assert find_result(results, 2, "Kansas City Chiefs", "Buffalo Bills") is None
    assert find_result([], 1, "KC", "BUF") is None


def test_find_result_skips_incomplete_rows():
    results = [make_result(1, "Buffalo Bills", "Kansas City Chiefs", None, 20)]

    assert find_result(results, 1, "Bills", "Chiefs") is None


def test_own_orientation_wins_over_swapped_copy():
    results = [
        make_result(1, "Bills", "Chiefs", 3, 7),
        make_result(1, "Chiefs", "Bills", 20, 10),
    ]

    assert find_result(results, 1, "Chiefs", "Bills") == FinalScore(20, 10)
    assert find_result(results, 1, "Bills", "Chiefs") == FinalScore(3, 7)


# Aggregation


def test_end_to_end_lock_pick_on_home_cover():
    games = [CHIEFS_BILLS]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "Kansas City Chiefs", is_lock=True)]

    user = aggregate(picks, games, results)["a@x.com"]

    assert user.total_correct == 1
    # +3 for the lock, +3 because one correct pick out of one is a perfect week
    assert user.total_points == 6
    assert user.weekly[1].perfect_bonus == 3


def test_end_to_end_away_pick_scores_nothing():
    games = [CHIEFS_BILLS]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "Buffalo Bills")]

    user = aggregate(picks, games, results)["a@x.com"]

    assert (user.total_points, user.total_correct) == (0, 0)
    assert (user.weekly[1].total, user.weekly[1].correct) == (1, 0)


def test_perfect_week_adds_flat_bonus():
    games = [
        make_game(1, 5, "Dallas Cowboys", "New York Giants", spread=-6.5),
        make_game(2, 5, "Miami Dolphins", "Buffalo Bills", spread=2.5),
        make_game(3, 5, "Seattle Seahawks", "Los Angeles Rams", spread=-1),
    ]
    results = [
        make_result(5, "Dallas Cowboys", "New York Giants", 24, 10),
        make_result(5, "Miami Dolphins", "Buffalo Bills", 14, 28),
        make_result(5, "Seattle Seahawks", "Los Angeles Rams", 20, 20),
    ]
    picks = [
        make_pick(1, "a@x.com", 1, "DAL"),
        make_pick(2, "a@x.com", 2, "Bills"),
        make_pick(3, "a@x.com", 3, "LA Rams"),
    ]

    user = aggregate(picks, games, results)["a@x.com"]

    assert user.total_correct == 3
    assert user.total_points == 3 * 1 + 3


def test_unresolved_game_prevents_perfect_week():
    games = [CHIEFS_BILLS, make_game(2, 1, "Detroit Lions", "Chicago Bears", spread=-4)]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "KC"), make_pick(2, "a@x.com", 2, "Lions")]

    user = aggregate(picks, games, results)["a@x.com"]

    assert (user.weekly[1].total, user.weekly[1].correct) == (2, 1)
    assert user.weekly[1].perfect_bonus == 0
    assert user.total_points == 1


def test_pick_for_unknown_game_counts_toward_week_but_is_reported():
    issues = ScoringIssues()
    picks = [
        make_pick(1, "a@x.com", 1, "KC"),
        make_pick(2, "a@x.com", 99, "Lions", week=1),
        make_pick(3, "b@x.com", 98, "Lions"),
    ]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]

    stats = aggregate(picks, [CHIEFS_BILLS], results, issues=issues)

    assert stats["a@x.com"].weekly[1].total == 2
    assert stats["a@x.com"].weekly[1].perfect_bonus == 0
    assert stats["b@x.com"].weekly == {}
    assert [m["pick_id"] for m in issues.missing_references] == [2, 3]


def test_pick_without_game_id_resolves_by_matchup():
    picks = [
        make_pick(1, "a@x.com", None, "Chiefs", week=1, home_team="Bills", away_team="KC"),
    ]
    results = [make_result(1, "Buffalo Bills", "Kansas City Chiefs", 10, 20)]

    user = aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"]

    assert user.total_correct == 1


def test_unrecognized_team_name_is_reported_once():
    issues = ScoringIssues()
    picks = [
        make_pick(1, "a@x.com", 1, "Birmingham Stallions"),
        make_pick(2, "b@x.com", 1, "birmingham stallions"),
    ]
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]

    aggregate(picks, [CHIEFS_BILLS], results, issues=issues)

    assert issues.to_dict()["unrecognized_teams"] == [
        {"name": "BIRMINGHAM STALLIONS", "occurrences": 2}
    ]


def test_profiles_provide_usernames_and_empty_rows():
    profiles = [
        {"email": "A@X.com", "username": "alice"},
        {"email": "c@x.com", "username": ""},
    ]
    picks = [make_pick(1, "a@x.com", 1, "KC"), make_pick(2, "b@x.com", 1, "KC")]

    stats = aggregate(picks, [CHIEFS_BILLS], [], profiles=profiles)

    assert stats["a@x.com"].username == "alice"
    assert stats["b@x.com"].username == "b@x.com"
    assert stats["c@x.com"].username == "c@x.com"
    assert stats["c@x.com"].total_points == 0


# Regressions for team-name and duplicate handling


def test_nbsp_in_team_names_still_matches():
    games = [make_game(1, 2, "Green Bay Packers", "Chicago Bears", spread=-3)]
    results = [make_result(2, "Green Bay Packers", "Chicago Bears", 27, 13)]
    picks = [make_pick(1, "a@x.com", 1, "green\u00a0bay packers\u00a0")]

    assert aggregate(picks, games, results)["a@x.com"].total_correct == 1


def test_case_and_whitespace_in_picks_still_match():
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "  kansas   city chiefs ")]

    assert aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"].total_correct == 1


def test_abbreviations_in_results_match_full_names_in_games():
    results = [make_result(1, "BUF", "KC", 10, 20)]
    picks = [make_pick(1, "a@x.com", 1, "Chiefs")]

    assert aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"].total_correct == 1


def test_resubmitted_pick_is_scored_once():
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [
        make_pick(1, "a@x.com", 1, "Bills", created_at="2025-09-01T10:00:00Z"),
        make_pick(2, "a@x.com", 1, "Chiefs", is_lock=True, created_at="2025-09-03T10:00:00Z"),
    ]

    user = aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"]

    assert user.weekly[1].total == 1
    assert user.total_points == 3 + 3


def test_string_lock_flags_are_understood():
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "Bills", is_lock="true")]

    assert aggregate(picks, [CHIEFS_BILLS], results)["a@x.com"].total_points == -2


# Ranking


def _stats(email, points, correct):
    user = UserStats(email)
    user.total_points = points
    user.total_correct = correct
    return user


def test_rank_breaks_point_ties_by_total_correct():
    ranked = rank([_stats("a", 5, 2), _stats("b", 5, 4), _stats("c", 9, 1)])

    assert [(e.rank, e.email) for e in ranked] == [(1, "c"), (2, "b"), (3, "a")]


def test_rank_keeps_input_order_for_full_ties():
    ranked = rank([_stats("x", 3, 3), _stats("y", 3, 3), _stats("z", 3, 3)])

    assert [(e.rank, e.email) for e in ranked] == [(1, "x"), (2, "y"), (3, "z")]


def test_rank_accepts_stats_mapping():
    ranked = rank({"a": _stats("a", 1, 1), "b": _stats("b", 2, 0)})

    assert ranked[0].to_dict() == {
        "rank": 1,
        "email": "b",
        "username": "b",
        "total_correct": 0,
        "total_points": 2,
    }


# Adjustments


def test_adjustments_apply_after_scoring_and_are_recorded():
    stats = {"a@x.com": _stats("a@x.com", 4, 2)}
    adjustments = [
        {"user_email": "A@x.com", "points_delta": 2, "correct_delta": 1, "reason": "late result"},
        {"user_email": "new@x.com", "points_delta": -1, "correct_delta": 0, "reason": "penalty"},
        {"user_email": "", "points_delta": 50, "reason": "ignored"},
    ]

    apply_adjustments(stats, adjustments)

    assert (stats["a@x.com"].total_points, stats["a@x.com"].total_correct) == (6, 3)
    assert stats["a@x.com"].adjustments == [
        {"points_delta": 2, "correct_delta": 1, "reason": "late result"}
    ]
    assert stats["new@x.com"].total_points == -1
    assert set(stats) == {"a@x.com", "new@x.com"}


def test_compute_leaderboard_applies_adjustments_before_ranking():
    results = [make_result(1, "Kansas City Chiefs", "Buffalo Bills", 20, 10)]
    picks = [make_pick(1, "a@x.com", 1, "KC"), make_pick(2, "b@x.com", 1, "BUF")]
    profiles = [{"email": "a@x.com", "username": "alice"}, {"email": "b@x.com", "username": "bob"}]
    adjustments = [{"user_email": "b@x.com", "points_delta": 10, "correct_delta": 0, "reason": "x"}]

    leaderboard = compute_leaderboard(profiles, [CHIEFS_BILLS], results, picks, adjustments)

    assert [(e.rank, e.username, e.total_points) for e in leaderboard] == [
        (1, "bob", 10),
        (2, "alice", 4),
    ]


# Weekly breakdown

WEEK_THREE_GAMES = [
    make_game(1, 3, "Dallas Cowboys", "New York Giants", spread=-6.5),
    make_game(2, 3, "Miami Dolphins", "Buffalo Bills", spread=2.5),
    make_game(3, 3, "Seattle Seahawks", "Los Angeles Rams", spread=-1),
]
WEEK_THREE_RESULTS = [
    make_result(3, "Dallas Cowboys", "New York Giants", 24, 10),
    make_result(3, "Buffalo Bills", "Miami Dolphins", 28, 14),
    make_result(3, "Seattle Seahawks", "Los Angeles Rams", 20, 20),
]


def test_weekly_breakdown_with_lost_lock():
    picks = [
        make_pick(1, "a@x.com", 1, "Cowboys"),
        make_pick(2, "a@x.com", 2, "Dolphins", is_lock=True),
        make_pick(3, "a@x.com", 3, "Rams"),
        make_pick(4, "b@x.com", 3, "Seahawks"),
    ]

    breakdown = compute_weekly_breakdown("A@x.com", 3, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks)

    assert breakdown.to_dict() == {
        "email": "a@x.com",
        "week": 3,
        "total": 3,
        "correct": 2,
        "lock_correct": 0,
        "lock_incorrect": 1,
        "perfect_bonus": 0,
        "weekly_points": 0,
    }


def test_weekly_breakdown_perfect_week_with_won_lock():
    picks = [
        make_pick(1, "a@x.com", 1, "Cowboys", is_lock=True),
        make_pick(2, "a@x.com", 2, "Bills"),
        make_pick(3, "a@x.com", 3, "Rams"),
    ]

    breakdown = compute_weekly_breakdown("a@x.com", 3, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks)

    assert (breakdown.correct, breakdown.lock_correct, breakdown.perfect_bonus) == (3, 1, 3)
    assert breakdown.weekly_points == 3 + 1 + 1 + 3


def test_weekly_breakdown_not_found():
    picks = [make_pick(1, "a@x.com", 1, "Cowboys")]

    assert compute_weekly_breakdown("a@x.com", 4, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks) is None
    assert compute_weekly_breakdown("z@x.com", 3, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks) is None
    assert compute_weekly_breakdown("", 3, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks) is None


def test_custom_rules_change_point_values():
    rules = ScoringRules(lock_bonus=4, lock_penalty=1, perfect_week_bonus=0)
    picks = [make_pick(1, "a@x.com", 1, "Cowboys", is_lock=True)]

    breakdown = compute_weekly_breakdown(
        "a@x.com", 3, WEEK_THREE_GAMES, WEEK_THREE_RESULTS, picks, rules=rules
    )

    assert breakdown.weekly_points == 5


# Issue logging


def test_issues_log_warnings_by_default(caplog):
    caplog.set_level(logging.DEBUG, logger="league.utils.scoring")

    ScoringIssues().check_team("Birmingham Stallions")

    assert [r.levelno for r in caplog.records] == [logging.WARNING]


def test_quiet_issues_log_at_debug_but_still_collect(caplog):
    caplog.set_level(logging.DEBUG, logger="league.utils.scoring")
    issues = ScoringIssues(log_level=logging.DEBUG)

    issues.check_team("Birmingham Stallions")
    issues.malformed_spread(3, "PK")
    issues.missing_reference({"id": 9, "user_email": "a@x.com", "game_id": 99}, "gone")

    assert issues.count == 3
    assert {r.levelno for r in caplog.records} == {logging.DEBUG}
