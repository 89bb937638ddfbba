from werkzeug.security import check_password_hash

from app.fisio.db import create_db_engine
from app.fisio.models import Base, User
from app.fisio.modules.fichas.models import Ficha
from scripts._db_utils import script_session
from scripts.init_db import seed_only


def _fresh_db(tmp_path) -> str:
    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_db_engine(url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    return url


def test_seed_creates_demo_user_and_samples_once(tmp_path, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "Demo@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "demo-pass")
    url = _fresh_db(tmp_path)

    seed_only(database_url=url)
    seed_only(database_url=url)

    with script_session(url) as s:
        user = s.query(User).one()
        assert user.email == "demo@example.com"
        assert check_password_hash(user.password_hash, "demo-pass")
        names = sorted(f.nome_paciente for f in s.query(Ficha))
        assert names == ["João Silva", "Maria Oliveira"]
        assert all(f.fc_max for f in s.query(Ficha))


def test_seed_without_samples(tmp_path, monkeypatch):
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    url = _fresh_db(tmp_path)

    seed_only(database_url=url, with_samples=False)

    with script_session(url) as s:
        assert s.query(User).count() == 1
        assert s.query(Ficha).count() == 0
