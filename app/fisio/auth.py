from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import wraps
from typing import Any

from flask import Blueprint, abort, current_app, flash, g, jsonify, redirect, render_template, request, session, url_for
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.fisio.audit import record_event
from app.fisio.db import db_session
from app.fisio.models import User
from app.fisio.security import ensure_csrf_token, rotate_csrf_token

bp = Blueprint("auth", __name__)
api_bp = Blueprint("auth_api", __name__)

_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
_MIN_PASSWORD_LENGTH = 6
_MAX_EMAIL_LENGTH = 320
_MAX_NAME_LENGTH = 128


class RegistrationError(ValueError):
    pass


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def is_api_request() -> bool:
    return request.path.startswith("/api/")


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    user = s.get(User, int(user_id))
    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if user and user.is_active:
            return fn(*args, **kwargs)
        if is_api_request():
            abort(401)
        nxt = request.full_path or request.path
        # Avoid trailing '?' from full_path when there is no query string.
        if nxt.endswith("?"):
            nxt = nxt[:-1]
        return redirect(url_for("auth.login_get", next=nxt))

    return wrapped


def authenticate(s: Session, email: str, password: str) -> User | None:
    email = (email or "").strip().lower()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password or ""):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
        )
        return None
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    return user


def _clean_name(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value).strip() or None


def register_user(
    s: Session,
    email: str,
    password: str,
    first_name: Any = None,
    last_name: Any = None,
) -> User:
    email = str(email or "").strip().lower()
    first_name = _clean_name(first_name)
    last_name = _clean_name(last_name)
    if not email or not password:
        raise RegistrationError("Email e senha são obrigatórios")
    if "@" not in email or len(email) > _MAX_EMAIL_LENGTH:
        raise RegistrationError("Email inválido")
    if len(first_name or "") > _MAX_NAME_LENGTH or len(last_name or "") > _MAX_NAME_LENGTH:
        raise RegistrationError(f"O nome deve ter no máximo {_MAX_NAME_LENGTH} caracteres")
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise RegistrationError(f"A senha deve ter pelo menos {_MIN_PASSWORD_LENGTH} caracteres")
    if s.query(User).filter(User.email == email).one_or_none():
        raise RegistrationError("Este email já está cadastrado")

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=str(user.id))
    return user


def _login_session(user: User) -> None:
    session["user_id"] = user.id
    rotate_csrf_token()


def _safe_next(nxt: str) -> str | None:
    # Only allow local paths to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


# ---------- HTML ----------
@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Muitas tentativas de login. Aguarde 5 minutos.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    s = db_session()
    user = authenticate(s, email, password)
    s.commit()
    if not user:
        flash("Credenciais inválidas.", "danger")
        if nxt:
            return redirect(url_for("auth.login_get", next=nxt))
        return redirect(url_for("auth.login_get"))

    _login_attempts[ip].clear()
    _login_session(user)
    current_app.logger.info("login ok user_id=%s request_id=%s", user.id, getattr(g, "request_id", None))
    return redirect(_safe_next(nxt) or url_for("fichas.dashboard"))


@bp.get("/register")
def register_get():
    if not current_app.config.get("REGISTRATION_ENABLED", True):
        abort(404)
    return render_template("auth/register.html")


@bp.post("/register")
def register_post():
    if not current_app.config.get("REGISTRATION_ENABLED", True):
        abort(404)
    s = db_session()
    try:
        user = register_user(
            s,
            request.form.get("email") or "",
            request.form.get("password") or "",
            request.form.get("first_name"),
            request.form.get("last_name"),
        )
    except RegistrationError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("auth.register_get"))
    s.commit()
    _login_session(user)
    flash("Conta criada.", "success")
    return redirect(url_for("fichas.dashboard"))


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))


# ---------- JSON ----------
@api_bp.post("/login")
def api_login():
    data = request.get_json(silent=True) or {}
    ip = request.remote_addr or "unknown"
    if _check_rate_limit(ip):
        return jsonify(message="Muitas tentativas de login. Aguarde 5 minutos."), 429
    _record_attempt(ip)

    s = db_session()
    user = authenticate(s, str(data.get("email") or ""), str(data.get("password") or ""))
    s.commit()
    if not user:
        return jsonify(message="Falha na autenticação"), 401

    _login_attempts[ip].clear()
    _login_session(user)
    return jsonify(user.to_dict())


@api_bp.post("/register")
def api_register():
    if not current_app.config.get("REGISTRATION_ENABLED", True):
        return jsonify(message="Cadastro desativado"), 403
    data = request.get_json(silent=True) or {}
    s = db_session()
    try:
        user = register_user(
            s,
            str(data.get("email") or ""),
            str(data.get("password") or ""),
            data.get("firstName"),
            data.get("lastName"),
        )
    except RegistrationError as e:
        s.rollback()
        return jsonify(message=str(e)), 400
    s.commit()
    _login_session(user)
    return jsonify(user.to_dict()), 201


@api_bp.get("/logout")
def api_logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return jsonify(message="Logout realizado com sucesso")


@api_bp.get("/auth/user")
@login_required
def api_current_user():
    return jsonify(current_user().to_dict())


@api_bp.get("/csrf")
def api_csrf():
    return jsonify(csrf_token=ensure_csrf_token())
