from datetime import timedelta

import pytest

from anonyworks.core.errors import SessionUnavailable
from anonyworks.core.security import now_utc
from anonyworks.models.otp import OneTimeCode
from anonyworks.models.pit import Pit
from anonyworks.services.connection_broker import ConnectionBroker
from anonyworks.services.message_ingestor import MessageIngestor
from anonyworks.services.otp_service import OTP_TTL
from anonyworks.services.pit_registry import SessionRegistry, PIT_TTL
from anonyworks.services.scheduler_service import ExpirySweeper, SWEEP_INTERVAL_SECONDS

registry = SessionRegistry()


def test_sweep_deactivates_expired_pit_and_blocks_submission(db, session_factory, owner):
    pit = registry.create(db, owner.id, "just expired", now=now_utc() - PIT_TTL - timedelta(seconds=1))
    assert pit.is_active is True

    result = ExpirySweeper(session_factory).run_once()

    assert result.pits_deactivated == 1
    db.expire_all()
    assert db.get(Pit, pit.id).is_active is False
    with pytest.raises(SessionUnavailable):
        MessageIngestor(registry, ConnectionBroker(), refiner=str).submit(db, pit.id, "too late")


def test_sweep_leaves_live_pits_alone(db, session_factory, owner):
    live = registry.create(db, owner.id)

    result = ExpirySweeper(session_factory).run_once()

    assert result.pits_deactivated == 0
    db.expire_all()
    assert db.get(Pit, live.id).is_active is True


def test_sweep_deletes_only_expired_codes(db, session_factory, otp):
    otp.issue(db, "old@x.com", now=now_utc() - OTP_TTL - timedelta(seconds=1))
    otp.issue(db, "new@x.com")

    result = ExpirySweeper(session_factory).run_once()

    assert result.codes_deleted == 1
    assert [c.email for c in db.query(OneTimeCode).all()] == ["new@x.com"]


def test_sweep_is_idempotent(db, session_factory, owner, otp):
    registry.create(db, owner.id, now=now_utc() - PIT_TTL - timedelta(minutes=5))
    otp.issue(db, "old@x.com", now=now_utc() - timedelta(hours=1))
    sweeper = ExpirySweeper(session_factory)

    first = sweeper.run_once()
    second = sweeper.run_once()

    assert (first.codes_deleted, first.pits_deactivated) == (1, 1)
    assert (second.codes_deleted, second.pits_deactivated) == (0, 0)


def test_failed_tick_is_contained(caplog):
    class BrokenSession:
        rolled_back = closed = False

        def execute(self, *args, **kwargs):
            raise RuntimeError("database unreachable")

        def rollback(self):
            self.rolled_back = True

        def close(self):
            self.closed = True

    sessions = []

    def factory():
        sessions.append(BrokenSession())
        return sessions[-1]

    sweeper = ExpirySweeper(factory)

    assert sweeper.run_once() is None
    assert sweeper.run_once() is None  # next tick still runs
    assert len(sessions) == 2
    assert all(s.rolled_back and s.closed for s in sessions)
    assert "Expiry sweep failed" in caplog.text


def test_start_and_stop_lifecycle(session_factory):
    sweeper = ExpirySweeper(session_factory)
    assert sweeper.interval_seconds == SWEEP_INTERVAL_SECONDS == 60

    sweeper.start()
    try:
        assert sweeper.running is True
        sweeper.start()  # second start is a no-op
        assert sweeper.running is True
    finally:
        sweeper.stop()

    assert sweeper.running is False
    sweeper.stop()  # stopping twice is harmless
