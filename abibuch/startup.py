"""
startup.py — Database Startup Migrations (Idempotent)

Tables, columns, and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file only seeds the rows
the app expects to exist.

Called by: main.py lifespan
Depends on: database.py (engine), models (Base, AppSettings)
"""

import logging
import os

from .database import SessionLocal, engine

log = logging.getLogger(__name__)


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode — skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    _seed_app_settings()
    log.info("Startup migrations complete")


def _seed_app_settings() -> None:
    """Create the AppSettings singleton (no deadline) if missing."""
    from .models import AppSettings

    db = SessionLocal()
    try:
        if not db.query(AppSettings).first():
            db.add(AppSettings())
            db.commit()
            log.info("Seeded AppSettings")
    finally:
        db.close()
