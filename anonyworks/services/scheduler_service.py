# anonyworks/services/scheduler_service.py
"""
Expiry sweep for one-time codes and pits.
Uses APScheduler for the recurring tick; ``run_once`` runs a single pass
synchronously so tests don't wait on the clock.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from sqlalchemy import delete, update
from sqlalchemy.orm import Session
import logging

from anonyworks.core.security import now_utc
from anonyworks.models.otp import OneTimeCode
from anonyworks.models.pit import Pit

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60
SWEEP_JOB_ID = "expiry_sweep"


@dataclass
class SweepResult:
    codes_deleted: int = 0
    pits_deactivated: int = 0


class ExpirySweeper:
    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = SWEEP_INTERVAL_SECONDS):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def sweep(self, db: Session, now: Optional[datetime] = None) -> SweepResult:
        """Apply both expiry statements in one transaction. Safe to re-run."""
        now = now or now_utc()
        codes = db.execute(
            delete(OneTimeCode)
            .where(OneTimeCode.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        pits = db.execute(
            update(Pit)
            .where(Pit.expires_at <= now, Pit.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return SweepResult(codes_deleted=codes.rowcount or 0, pits_deactivated=pits.rowcount or 0)

    def run_once(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        """One tick with its own session. Failures are logged, never raised."""
        db = self.session_factory()
        try:
            result = self.sweep(db, now=now)
            if result.codes_deleted or result.pits_deactivated:
                logger.info(
                    "Expiry sweep: %d code(s) deleted, %d pit(s) deactivated",
                    result.codes_deleted, result.pits_deactivated,
                )
            return result
        except Exception:
            db.rollback()
            logger.exception("Expiry sweep failed; will retry next tick")
            return None
        finally:
            db.close()

    def start(self) -> None:
        """
        Start the background scheduler with the sweep job registered.
        """
        if self.running:
            logger.warning("Scheduler is already running")
            return

        executors = {
            'default': ThreadPoolExecutor(1)
        }

        job_defaults = {
            'coalesce': True,  # Combine multiple pending executions into one
            'max_instances': 1,  # A slow tick must not overlap the next one
            'misfire_grace_time': 30  # Seconds after which a missed job is considered expired
        }

        self._scheduler = BackgroundScheduler(
            executors=executors,
            job_defaults=job_defaults,
            timezone='UTC'
        )
        self._scheduler.add_job(
            func=self.run_once,
            trigger='interval',
            seconds=self.interval_seconds,
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Expiry sweeper started (every %ss)", self.interval_seconds)

    def stop(self) -> None:
        """
        Stop the background scheduler gracefully.
        This will shutdown the scheduler and wait for a running sweep to complete.
        """
        if self._scheduler is None:
            return

        if not self._scheduler.running:
            logger.warning("Scheduler is not running")
            self._scheduler = None
            return

        try:
            self._scheduler.shutdown(wait=True)
            logger.info("Expiry sweeper stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")
        finally:
            self._scheduler = None
