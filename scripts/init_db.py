import argparse
import os
import sys
from datetime import date
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.fisio.models import User
from app.fisio.modules.fichas.models import Ficha
from app.fisio.modules.fichas.service import create_ficha
from scripts._db_utils import script_session


def _sample_fichas() -> list[dict]:
    today = date.today().isoformat()
    return [
        {
            "nome_paciente": "João Silva",
            "data_nascimento": "1980-05-15",
            "idade_atual": 44,
            "sexo": "Masculino",
            "profissao": "Engenheiro",
            "diagnostico_clinico": "Lombalgia Crônica",
            "telefone": "11999999999",
            "email": "joao@example.com",
            "data_avaliacao": today,
            "eva": 7,
            "tipo_dor": "Queimação",
            "irradiacao": "Membro Inferior Direito",
            "fatores_melhora": "Repouso",
            "fatores_piora": "Ficar em pé muito tempo",
            "estrategias_curto": "Alívio da dor, mobilidade articular",
            "estrategias_medio": "Fortalecimento do core",
            "estrategias_longo": "Retorno seguro às atividades normais sem dor",
        },
        {
            "nome_paciente": "Maria Oliveira",
            "data_nascimento": "1992-08-22",
            "idade_atual": 31,
            "sexo": "Feminino",
            "profissao": "Professora",
            "diagnostico_clinico": "Tendinopatia do Supraespinhoso",
            "telefone": "11988888888",
            "email": "maria@example.com",
            "data_avaliacao": today,
            "eva": 5,
            "tipo_dor": "Pontada",
            "irradiacao": "Braço",
            "fatores_melhora": "Gelo",
            "fatores_piora": "Elevar o braço",
            "estrategias_curto": "Controle da inflamação",
            "estrategias_medio": "Exercícios isométricos",
            "estrategias_longo": "Fortalecimento e retorno ao esporte",
        },
    ]


def seed_only(*, database_url: str | None = None, with_samples: bool = True) -> None:
    """
    Seed the demo user and, when the fichas table is empty, two sample fichas.
    Does NOT overwrite an existing user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "test@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///fichas.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                first_name="Test",
                last_name="User",
                is_active=True,
            )
            s.add(user)
            s.flush()
            print(f"Created user {admin_email}", flush=True)

        if not with_samples:
            return
        if s.query(Ficha).count() == 0:
            for payload in _sample_fichas():
                create_ficha(s, payload, user)
            print("Sample fichas created.", flush=True)
        else:
            print("Database already has fichas, skipping sample data.", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the demo user and sample fichas.")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    parser.add_argument("--no-samples", action="store_true", help="Create the user only")
    args = parser.parse_args()
    seed_only(database_url=args.database_url, with_samples=not args.no_samples)
    print("init_db done.")


if __name__ == "__main__":
    main()
