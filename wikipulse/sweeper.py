"""
Eviction sweeps.

A sweep walks every tracked page once and drops the ones that no longer
meet the retention policy. SweepTimer runs sweeps on a fixed period.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from .models import PageRecord, utcnow
from .store import PageStore

logger = logging.getLogger(__name__)


class EvictionReason(str, Enum):
    """Why a page was removed by a sweep."""

    TOO_SLOW = "too_slow"
    EXPIRED = "expired"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class RetentionPolicy:
    """Thresholds for keeping a page. Times in minutes, speed in edits/minute."""

    max_lifespan: float = 60 * 24
    max_inactivity: float = 60
    min_speed: float = 3
    min_purge_time: float = 5

    def evaluate(self, page: PageRecord, now: datetime) -> EvictionReason | None:
        """Return the reason to evict a page, or None to keep it."""
        recency = page.recency(now)
        # Too fresh to judge.
        if recency <= self.min_purge_time:
            return None

        age = page.age(now)
        if page.safe:
            return EvictionReason.EXPIRED if age > self.max_lifespan else None

        if page.edit_velocity(now=now) < self.min_speed:
            return EvictionReason.TOO_SLOW
        if age > self.max_lifespan:
            return EvictionReason.EXPIRED
        # Literal "less than": pages idle longer than max_inactivity are kept.
        if recency < self.max_inactivity:
            return EvictionReason.INACTIVE
        return None


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    live: int = 0
    evicted: dict[str, EvictionReason] = field(default_factory=dict)

    @property
    def purged(self) -> int:
        return len(self.evicted)

    @property
    def remaining(self) -> int:
        return self.live - self.purged


class EvictionSweeper:
    """Applies a RetentionPolicy to every page in a store."""

    def __init__(
        self,
        store: PageStore,
        policy: RetentionPolicy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy
        self._clock = clock

    def sweep(self) -> SweepResult:
        now = self._clock()
        result = SweepResult()

        for page in self.store.list_all():
            result.live += 1
            reason = self.policy.evaluate(page, now)
            if reason is not None:
                self.store.drop_id(page.id)
                result.evicted[page.id] = reason

        logger.info("sweep: live=%d purged=%d", result.live, result.purged)
        return result


class SweepTimer:
    """Calls a function every `interval` seconds on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], object], name: str = "wikipulse-sweep"):
        self.interval = interval
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stopped.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("sweep failed")
