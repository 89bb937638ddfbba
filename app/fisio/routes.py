from flask import Blueprint, current_app, g, redirect, render_template, url_for
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.fisio.db import db_session

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    # Signed-in clinicians go straight to their dashboard.
    if getattr(g, "current_user", None):
        return redirect(url_for("fichas.dashboard"))
    return render_template("public/index.html")


@bp.get("/health")
def health():
    """Readiness: app is up and the database answers."""
    try:
        db_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("health: database unreachable")
        return {"ok": False, "db": "unreachable"}, 503
    return {"ok": True, "db": "ok"}


@bp.get("/healthz")
def healthz():
    """Liveness probe. No DB access."""
    return "ok", 200
