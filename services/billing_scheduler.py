# services/billing_scheduler.py
"""
Background scheduler for the recurring billing check.

Runs the check once when started and then every interval on a daemon
thread. The scheduler object owns its thread and stop event, so several
schedulers (e.g. one per test) never share timer state.
"""
import logging
import threading
from typing import Callable, Optional

import config
from services.recurring_billing_service import check_and_create_new_bills

logger = logging.getLogger(__name__)


class BillingScheduler:
     """Fixed-interval runner for check_and_create_new_bills."""

     def __init__(
          self,
          interval_seconds: float = config.BILLING_CHECK_INTERVAL_SECONDS,
          check: Callable[[], dict] = check_and_create_new_bills,
     ) -> None:
          if interval_seconds <= 0:
               raise ValueError("interval_seconds must be positive")

          self.interval_seconds = interval_seconds
          self.check = check
          self.last_result: Optional[dict] = None
          self.runs = 0

          self._stop_event = threading.Event()
          self._run_lock = threading.Lock()
          self._thread: Optional[threading.Thread] = None

     @property
     def is_running(self) -> bool:
          return self._thread is not None and self._thread.is_alive()

     def start(self) -> None:
          """Start the loop; the first check runs immediately. No-op if already running."""
          if self.is_running:
               logger.debug("[Billing Service] Scheduler already running")
               return

          logger.info("[Billing Service] Starting recurring billing service...")
          self._stop_event.clear()
          self._thread = threading.Thread(
               target=self._run_loop,
               name="billing-scheduler",
               daemon=True,
          )
          self._thread.start()
          logger.info(
               "[Billing Service] Recurring billing service started (checks every %s seconds)",
               self.interval_seconds,
          )

     def stop(self, timeout: Optional[float] = None) -> None:
          """
          Stop the loop.

          A check that is already running is allowed to finish; the call
          waits for it (up to timeout seconds).
          """
          self._stop_event.set()
          thread = self._thread
          if thread is not None and thread is not threading.current_thread():
               thread.join(timeout)
               if thread.is_alive():
                    logger.warning("[Billing Service] Scheduler did not stop within %s seconds", timeout)
                    return
          self._thread = None
          logger.info("[Billing Service] Recurring billing service stopped")

     def run_once(self) -> Optional[dict]:
          """
          Run one check unless another one is still in progress.

          Returns:
               The check's summary, or None if the run was skipped or failed
          """
          if not self._run_lock.acquire(blocking=False):
               logger.warning("[Billing Service] Previous billing check still running, skipping this tick")
               return None
          try:
               result = self.check()
               self.last_result = result
               self.runs += 1
               return result
          except Exception:
               logger.exception("[Billing Service] Error checking bills")
               return None
          finally:
               self._run_lock.release()

     def _run_loop(self) -> None:
          while not self._stop_event.is_set():
               self.run_once()
               if self._stop_event.wait(self.interval_seconds):
                    break
