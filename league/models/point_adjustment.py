from datetime import datetime, timezone

from league import db


class PointAdjustment(db.Model):
    """Manual correction applied to a user's totals after scoring"""

    __tablename__ = "point_adjustments"

    id = db.Column(db.Integer, primary_key=True)

    # Target user
    user_email = db.Column(db.String(120), nullable=False, index=True)

    # Adjustment details
    points_delta = db.Column(db.Integer, nullable=False, default=0)
    correct_delta = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(500), nullable=False)
    created_by = db.Column(db.String(120))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (db.Index("idx_adjustment_created", "created_at"),)

    def __repr__(self):
        return (
            f"<PointAdjustment {self.user_email} points={self.points_delta:+d} "
            f"correct={self.correct_delta:+d}>"
        )

    @staticmethod
    def log_adjustment(
        user_email, points_delta=0, correct_delta=0, reason="", created_by=None
    ):
        """Record an adjustment; the caller commits"""
        if not reason or not reason.strip():
            raise ValueError("An adjustment needs a reason")

        adjustment = PointAdjustment(
            user_email=user_email.strip().lower(),
            points_delta=points_delta,
            correct_delta=correct_delta,
            reason=reason.strip(),
            created_by=created_by,
        )

        db.session.add(adjustment)
        return adjustment

    def to_dict(self):
        """Convert adjustment to a snapshot row"""
        return {
            "id": self.id,
            "user_email": self.user_email,
            "points_delta": self.points_delta,
            "correct_delta": self.correct_delta,
            "reason": self.reason,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
