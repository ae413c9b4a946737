"""Expiry sweeper - reclaims tickets whose hold has lapsed."""

import logging
import threading
from datetime import datetime

from django.db import close_old_connections
from django.utils import timezone

from raffles import conf
from raffles.services.common import store_errors
from raffles.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Scheduled task returning lapsed reservations to the pool."""

    def __init__(self, store: TicketStore) -> None:
        self._store = store

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Release every reserved ticket whose hold is no longer live at ``now``.

        Raises:
            StoreFailureError: If the backing store fails.
        """
        now = now or timezone.now()
        with store_errors("sweep_expired"):
            reclaimed = self._store.sweep_expired(now)
        if reclaimed:
            logger.info(f"Reclaimed {reclaimed} expired reservations")
        else:
            logger.debug("No expired reservations to reclaim")
        return reclaimed

    def run(self, stop_event: threading.Event, interval: float | None = None) -> int:
        """Sweep every ``interval`` seconds until stop_event is set.

        Failures are logged and the loop carries on. Returns the total number
        of tickets reclaimed.
        """
        interval = interval if interval is not None else conf.sweep_interval()
        logger.info(f"Expiry sweeper started (interval {interval}s)")
        total = 0
        while not stop_event.is_set():
            close_old_connections()
            try:
                total += self.sweep_expired()
            except Exception:
                logger.exception("Sweep failed; retrying next interval")
            stop_event.wait(interval)
        logger.info(f"Expiry sweeper stopped after reclaiming {total} tickets")
        return total
