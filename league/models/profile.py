from datetime import datetime, timezone

from league import db


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Profile {self.username or self.email}>"

    @property
    def display_name(self):
        """Return username, falling back to the email"""
        return self.username or self.email

    @staticmethod
    def get_by_email(email):
        """Case-insensitive lookup by email"""
        if not email:
            return None
        return Profile.query.filter(
            db.func.lower(Profile.email) == email.strip().lower()
        ).first()

    def to_dict(self):
        """Convert profile to a snapshot row"""
        return {
            "email": self.email,
            "username": self.username,
        }
