"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.packages.archive.core.config import get_settings
from app.packages.archive.db import session as db_session
from app.packages.archive.models import Base, Folder

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables if they do not exist and seed baseline data."""
    Base.metadata.create_all(bind=db_session.engine)

    session = db_session.SessionLocal()
    try:
        _seed_default_folder(session)
        session.commit()
    except Exception:  # pragma: no cover - initialization failures should surface
        session.rollback()
        logger.exception("Failed to seed default data during database initialization")
        raise
    finally:
        session.close()


def _seed_default_folder(db: Session) -> None:
    """Ensure at least one active folder exists so pages always have a home."""
    exists = db.query(Folder.id).filter(Folder.is_deleted.is_(False)).first()
    if exists is None:
        db.add(Folder(name=get_settings().default_folder_name))
        db.flush()
