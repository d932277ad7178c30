from datetime import datetime, timezone

from league import db


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification. Re-submitting a pick adds a new row; the latest
    # row per (user_email, game_id) is the effective one.
    user_email = db.Column(db.String(120), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=True)

    # Matchup copy for picks submitted without a game_id
    week = db.Column(db.Integer)
    home_team = db.Column(db.String(100))
    away_team = db.Column(db.String(100))

    # Pick details
    selected_team = db.Column(db.String(100), nullable=False)
    is_lock = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Indexes
    __table_args__ = (
        db.Index("idx_pick_user_email", "user_email"),
        db.Index("idx_pick_game", "game_id"),
        db.Index("idx_pick_week", "week"),
    )

    def __repr__(self):
        lock = " LOCK" if self.is_lock else ""
        return f"<Pick {self.user_email} game_id={self.game_id} team={self.selected_team}{lock}>"

    @staticmethod
    def get_for_user(email):
        """Get every pick row submitted by a user (case-insensitive email)"""
        return Pick.query.filter(
            db.func.lower(Pick.user_email) == email.strip().lower()
        ).all()

    def to_dict(self):
        """Convert pick to a snapshot row"""
        return {
            "id": self.id,
            "user_email": self.user_email,
            "game_id": self.game_id,
            "week": self.week,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "selected_team": self.selected_team,
            "is_lock": self.is_lock,
            "created_at": self.created_at,
        }
