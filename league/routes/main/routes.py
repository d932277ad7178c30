from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from league import db, limiter
from league.routes.main import bp


@bp.route("/health")
@limiter.exempt
def health():
    """Liveness check including a database round trip"""
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        db.session.rollback()
        database = "unavailable"

    status = 200 if database == "ok" else 503
    return jsonify({"status": "ok" if status == 200 else "degraded", "database": database}), status
