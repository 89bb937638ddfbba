from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from app.fisio.db import create_db_engine


@contextmanager
def script_session(db_url: str) -> Iterator[Session]:
    """Standalone session for scripts run outside the Flask app; commits on success."""
    engine = create_db_engine(db_url)
    s: Session = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
