"""
Release-phase helper.

- Fail fast if DATABASE_URL is missing (avoid silently using SQLite in prod).
- Run alembic migrations.
- Seed the demo user and sample fichas (idempotent; does NOT overwrite existing passwords).

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def run_release(*, seed: bool = True) -> None:
    db_url = _require_env("DATABASE_URL")
    # Guardrail: prevent accidental prod deploys against SQLite.
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print("=== Fisio release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)
    print("Running Alembic migrations...", flush=True)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    print("Migrations complete.", flush=True)

    if seed:
        print("Seeding demo data (idempotent)...", flush=True)
        from scripts import init_db

        init_db.seed_only(database_url=db_url)
        print("Seed complete.", flush=True)
    else:
        print("Seed skipped.", flush=True)
    print("=== Fisio release done ===", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run migrations and seed demo data.")
    parser.add_argument("--skip-seed", action="store_true", help="Only run migrations")
    args = parser.parse_args()
    run_release(seed=not args.skip_seed)


if __name__ == "__main__":
    main()
