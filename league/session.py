"""
Caller identity for API views

Authentication is handled by the provider in front of the app, which forwards
the verified email in a request header. Views that need the caller receive a
UserSession argument instead of reading global state.
"""

from functools import wraps

from flask import current_app, jsonify, request


class UserSession:
    """The authenticated caller of one request"""

    def __init__(self, email, username=None):
        self.email = email.strip().lower()
        self.username = username or self.email

    def __repr__(self):
        return f"<UserSession {self.email}>"

    @classmethod
    def from_request(cls, req=None):
        """Build a session from the provider header, or None when absent"""
        req = req or request
        header = current_app.config.get("SESSION_EMAIL_HEADER", "X-User-Email")
        email = (req.headers.get(header) or "").strip()
        if not email:
            return None

        from league.models import Profile

        profile = Profile.get_by_email(email)
        return cls(email, profile.display_name if profile else None)


def session_required(f):
    """Pass the caller's UserSession to the view as `user_session`"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_session = UserSession.from_request()
        if user_session is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, user_session=user_session, **kwargs)

    return decorated_function
