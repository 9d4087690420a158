from datetime import timedelta
from unittest import mock

from memberauth.models import RevokedToken
from memberauth.services.clock import utcnow
from memberauth.services.revocation_sweep import run_revocation_sweep_job, start_revocation_sweep
from memberauth.services.stores import RevocationStore


def test_delete_expired_keeps_live_revocations(db):
    store = RevocationStore(db)
    store.insert("old-token", utcnow() - timedelta(minutes=1))
    store.insert("live-token", utcnow() + timedelta(hours=1))
    db.commit()

    assert store.delete_expired() == 1
    db.commit()
    assert not store.exists("old-token")
    assert store.exists("live-token")


def test_sweep_job_purges_expired(db):
    RevocationStore(db).insert("old-token", utcnow() - timedelta(hours=2))
    db.commit()
    run_revocation_sweep_job()
    db.expire_all()
    assert db.query(RevokedToken).count() == 0


def test_sweep_job_logs_and_swallows_failures(caplog):
    session = mock.MagicMock()
    session.query.side_effect = RuntimeError("db down")
    with mock.patch("memberauth.services.revocation_sweep.SessionLocal", return_value=session):
        run_revocation_sweep_job()
    session.rollback.assert_called_once()
    session.close.assert_called_once()
    assert "Revocation sweep failed" in caplog.text


def test_scheduler_registers_hourly_job():
    with mock.patch("memberauth.services.revocation_sweep.BackgroundScheduler") as scheduler_cls:
        scheduler = start_revocation_sweep(60)
    scheduler.add_job.assert_called_once_with(run_revocation_sweep_job, "interval", minutes=60, id="revocation_sweep")
    scheduler.start.assert_called_once()
    assert scheduler is scheduler_cls.return_value
