from datetime import datetime

import pytest

from league import create_app, db
from league.models import Game, Pick, Profile, Result


def make_game(game_id, week, home, away, spread=0.0, kickoff=None):
    return {
        "id": game_id,
        "week": week,
        "home_team": home,
        "away_team": away,
        "spread": spread,
        "kickoff_time": kickoff,
    }


def make_result(week, home, away, home_score, away_score):
    return {
        "week": week,
        "home_team": home,
        "away_team": away,
        "home_score": home_score,
        "away_score": away_score,
    }


def make_pick(pick_id, email, game_id, team, is_lock=False, created_at=None, **extra):
    row = {
        "id": pick_id,
        "user_email": email,
        "game_id": game_id,
        "selected_team": team,
        "is_lock": is_lock,
        "created_at": created_at,
    }
    row.update(extra)
    return row


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def seed(app):
    """
    Week 1: Chiefs -3 beat the Bills 20-10 (Chiefs cover), Eagles +2.5
    lose 17-21 at home to the Cowboys, result stored away/home swapped
    (Cowboys cover). Week 2: one game with no result yet.
    """
    db.session.add_all(
        [
            Profile(email="alice@example.com", username="alice"),
            Profile(email="Bob@Example.com", username="bob"),
            Profile(email="carol@example.com", username="carol"),
        ]
    )

    chiefs = Game(
        week=1,
        home_team="Kansas City Chiefs",
        away_team="Buffalo Bills",
        spread=-3.0,
        kickoff_time=datetime(2025, 9, 7, 17, 0),
    )
    eagles = Game(
        week=1,
        home_team="Philadelphia Eagles",
        away_team="Dallas Cowboys",
        spread=2.5,
        kickoff_time=datetime(2025, 9, 5, 0, 20),
    )
    pending = Game(
        week=2,
        home_team="Green Bay Packers",
        away_team="Chicago Bears",
        spread=-6.5,
        kickoff_time=datetime(2025, 9, 14, 17, 0),
    )
    db.session.add_all([chiefs, eagles, pending])
    db.session.flush()

    db.session.add_all(
        [
            Result(week=1, home_team="KC", away_team="BUF", home_score=20, away_score=10),
            Result(
                week=1, home_team="Cowboys", away_team="Eagles", home_score=21, away_score=17
            ),
        ]
    )

    db.session.add_all(
        [
            # alice: both week 1 picks right, Chiefs as lock
            Pick(user_email="alice@example.com", game_id=chiefs.id, selected_team="Chiefs",
                 is_lock=True, created_at=datetime(2025, 9, 1, 12, 0)),
            Pick(user_email="alice@example.com", game_id=eagles.id, selected_team="DAL",
                 created_at=datetime(2025, 9, 1, 12, 0)),
            # bob: first picked the Chiefs, then switched to the Bills as lock
            Pick(user_email="bob@example.com", game_id=chiefs.id, selected_team="Chiefs",
                 created_at=datetime(2025, 9, 1, 9, 0)),
            Pick(user_email="BOB@example.com", game_id=chiefs.id, selected_team="Bills",
                 is_lock=True, created_at=datetime(2025, 9, 2, 9, 0)),
            Pick(user_email="bob@example.com", game_id=eagles.id, selected_team="Dallas Cowboys",
                 created_at=datetime(2025, 9, 1, 9, 0)),
            # alice: pending week 2 pick
            Pick(user_email="alice@example.com", game_id=pending.id, selected_team="Packers",
                 created_at=datetime(2025, 9, 10, 9, 0)),
        ]
    )
    db.session.commit()

    return {"chiefs": chiefs.id, "eagles": eagles.id, "pending": pending.id}
