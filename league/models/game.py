from datetime import datetime, timezone

from league import db


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False)

    # Teams are free text, canonicalized at scoring time
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Home-relative line: home covers when home_score + spread > away_score
    spread = db.Column(db.Float)
    kickoff_time = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    picks = db.relationship("Pick", backref="game", lazy="dynamic")

    # Indexes
    __table_args__ = (
        db.Index("idx_game_week", "week"),
        db.Index("idx_game_kickoff", "kickoff_time"),
    )

    def __repr__(self):
        return f"<Game {self.away_team} @ {self.home_team} Week {self.week}>"

    @staticmethod
    def get_games_for_week(week):
        """Get all games for a week ordered by kickoff"""
        return Game.query.filter_by(week=week).order_by(Game.kickoff_time, Game.id).all()

    def to_dict(self):
        """Convert game to a snapshot row"""
        return {
            "id": self.id,
            "week": self.week,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "spread": self.spread,
            "kickoff_time": self.kickoff_time,
        }
