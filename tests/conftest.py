import pytest
from werkzeug.security import generate_password_hash

from app.fisio import auth as auth_module
from app.fisio import create_app
from app.fisio.db import session_scope
from app.fisio.models import Base, User

PASSWORD = "segredo123"


@pytest.fixture(autouse=True)
def _reset_login_attempts():
    auth_module._login_attempts.clear()
    yield
    auth_module._login_attempts.clear()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("REGISTRATION_ENABLED", raising=False)

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add_all(
            [
                User(
                    email="fisio@example.com",
                    password_hash=generate_password_hash(PASSWORD),
                    first_name="Ana",
                    last_name="Souza",
                    is_active=True,
                ),
                User(email="outro@example.com", password_hash=generate_password_hash(PASSWORD), is_active=True),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email="fisio@example.com", password=PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


def csrf_token(client) -> str:
    with client.session_transaction() as sess:
        return sess["csrf_token"]


@pytest.fixture()
def auth_client(client):
    r = login(client)
    assert r.status_code == 302
    return client


@pytest.fixture()
def api_headers(auth_client):
    return {"X-CSRF-Token": csrf_token(auth_client)}
