"""Hourly purge of revocation records whose tokens have expired anyway."""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from memberauth.database import SessionLocal
from memberauth.services.stores import RevocationStore

logger = logging.getLogger(__name__)


def run_revocation_sweep_job() -> None:
    """Delete revoked tokens past their expiry. Failures are logged, never raised."""
    db: Session = SessionLocal()
    try:
        deleted = RevocationStore(db).delete_expired()
        db.commit()
        if deleted:
            logger.info("Revocation sweep: deleted %d expired token(s).", deleted)
    except Exception:
        db.rollback()
        logger.exception("Revocation sweep failed")
    finally:
        db.close()


def start_revocation_sweep(interval_minutes: int = 60) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(run_revocation_sweep_job, "interval", minutes=interval_minutes, id="revocation_sweep")
    scheduler.start()
    return scheduler
