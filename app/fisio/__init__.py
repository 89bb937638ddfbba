import logging
import time
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, render_template, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from app.fisio.config import load_config
from app.fisio.db import init_db, missing_tables, teardown_db_session
from app.fisio.routes import bp as routes_bp
from app.fisio.auth import api_bp as auth_api_bp, bp as auth_bp, is_api_request, load_current_user
from app.fisio.modules.fichas.admin import bp as fichas_bp
from app.fisio.modules.fichas.api import bp as fichas_api_bp
from app.fisio.modules.orthopedic.api import bp as orthopedic_api_bp

logger = logging.getLogger(__name__)

_UNTRACKED_PREFIXES = ("/static/", "/health", "/healthz")


def _configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    else:
        root.setLevel(level)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_LIFETIME_HOURS"])
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.ensure_ascii = False  # type: ignore[attr-defined]

    _configure_logging(app.config["LOG_LEVEL"])

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    from app.fisio.security import csrf_required, ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {
            "csrf_token": ensure_csrf_token(),
            "registration_enabled": app.config.get("REGISTRATION_ENABLED", True),
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%d/%m/%Y") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        g.request_started = time.perf_counter()
        if request.path.startswith(_UNTRACKED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if csrf_required(request) and is_api_request() and not session.get("user_id"):
            return jsonify(message="Unauthorized"), 401
        if csrf_required(request) and not validate_csrf(request):
            logger.warning("CSRF rejected: %s %s", request.method, request.path)
            if is_api_request():
                return jsonify(message="CSRF token missing or invalid."), 400
            return render_template("errors/error.html", code=400, message="CSRF token missing or invalid."), 400
        return None

    init_db(app)

    try:
        missing = missing_tables(app.extensions["sqlalchemy_engine"])
    except SQLAlchemyError as e:
        logger.error("DB unreachable at startup: %s", e)
    else:
        if missing:
            logger.warning("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(auth_api_bp, url_prefix="/api")
    app.register_blueprint(fichas_bp, url_prefix="/admin")
    app.register_blueprint(fichas_api_bp, url_prefix="/api")
    app.register_blueprint(orthopedic_api_bp, url_prefix="/api")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.after_request
    def _log_api_request(response):
        if is_api_request():
            started = getattr(g, "request_started", None)
            elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
            logger.info(
                "%s %s %s in %.0fms request_id=%s",
                request.method,
                request.path,
                response.status_code,
                elapsed_ms,
                getattr(g, "request_id", None),
            )
        return response

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        code = e.code or 500
        if is_api_request():
            message = "Unauthorized" if code == 401 else (e.description or e.name)
            return jsonify(message=message), code
        return render_template("errors/error.html", code=code, message=e.description or e.name), code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Ensure stack trace shows in logs.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if is_api_request():
            return jsonify(message="Erro interno do servidor"), 500
        return render_template("errors/error.html", code=500, message="Erro interno do servidor"), 500

    logger.info("create_app() complete; app ready to serve")

    return app
