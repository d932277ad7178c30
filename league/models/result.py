from datetime import datetime, timezone

from league import db


class Result(db.Model):
    __tablename__ = "results"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False)

    # Orientation is not guaranteed to match the games table
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)
    home_score = db.Column(db.Integer, nullable=False)
    away_score = db.Column(db.Integer, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (db.Index("idx_result_week", "week"),)

    def __repr__(self):
        return (
            f"<Result Week {self.week} {self.away_team} {self.away_score} "
            f"@ {self.home_team} {self.home_score}>"
        )

    def to_dict(self):
        """Convert result to a snapshot row"""
        return {
            "id": self.id,
            "week": self.week,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }
