"""
Session-bound CSRF token.

Every mutating request carries the token in the ``csrf_token`` form field, the
``X-CSRF-Token`` header or a ``csrf_token`` key of a JSON body. Login and
registration are exempt: they establish the session the token lives in.
"""
import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
EXEMPT_BLUEPRINTS = ("auth.", "auth_api.")


def ensure_csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def rotate_csrf_token() -> str:
    """Issue a fresh token; called whenever the session identity changes."""
    session.pop(CSRF_SESSION_KEY, None)
    return ensure_csrf_token()


def _submitted_token(req: Request) -> str | None:
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get(CSRF_SESSION_KEY)
    return token


def csrf_required(req: Request) -> bool:
    if req.method not in MUTATING_METHODS:
        return False
    return not (req.endpoint or "").startswith(EXEMPT_BLUEPRINTS)


def validate_csrf(req: Request) -> bool:
    token = _submitted_token(req)
    expected = session.get(CSRF_SESSION_KEY)
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))
