import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.clock import utcnow
from app.core.config import settings
from app.core.database import SessionLocal

logger = logging.getLogger(__name__)


class PaymentExpirySweeper:
    """Periodically cancels payments left pending past the expiry window."""

    JOB_ID = "cancel_expired_payments"

    def __init__(self, session_factory: Callable = SessionLocal, service=None, clock: Callable = utcnow,
                 interval_minutes: Optional[int] = None, scheduler: Optional[AsyncIOScheduler] = None):
        if service is None:
            from app.services.payment import payment_service
            service = payment_service
        self.session_factory = session_factory
        self.service = service
        self.clock = clock
        self.interval_minutes = interval_minutes or settings.PAYMENT_SWEEP_INTERVAL_MINUTES
        self.scheduler = scheduler or AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            return self.service.cancel_expired_pending(db, now=self.clock())
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _run_job(self):
        try:
            self.run_once()
        except Exception as e:
            logger.error(f"Error cancelling expired payments: {e}", exc_info=True)

    def start(self):
        if os.getenv("TESTING") == "true":
            logger.info("Scheduler disabled in test environment")
            return

        if not self.scheduler.running:
            self.scheduler.add_job(
                self._run_job,
                'interval',
                minutes=self.interval_minutes,
                id=self.JOB_ID,
                name='Cancel Expired Pending Payments',
                next_run_time=datetime.now(timezone.utc),
                replace_existing=True
            )
            self.scheduler.start()
            logger.info(f"Scheduler started, sweeping pending payments every {self.interval_minutes} minutes")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
