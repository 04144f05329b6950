"""
WikiCollection: the live set of recently edited pages.

Wires the pieces together:
- RawEvent validation at the boundary
- AggregationEngine for edits and log events
- EvictionSweeper on a SweepTimer
- SnapshotStore for restoring and persisting state

Every mutation and read happens under one re-entrant lock; readers get
detached copies of records.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Mapping

from .config import CollectionConfig
from .engine import AggregationEngine
from .events import InvalidEventError, RawEvent
from .models import PageRecord, utcnow
from .snapshot import SnapshotStore, decode_pages, encode_pages
from .store import PageStore
from .sweeper import EvictionSweeper, RetentionPolicy, SweepResult, SweepTimer

logger = logging.getLogger(__name__)

EditListener = Callable[[PageRecord, "WikiCollection"], None]


class WikiCollection:
    """A decaying, in-memory collection of actively edited pages."""

    def __init__(
        self,
        config: CollectionConfig | None = None,
        *,
        snapshots: SnapshotStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the collection and restore its snapshot, if any.

        Args:
            config: Collection options (defaults if None)
            snapshots: Snapshot store (defaults to config.snapshot_dir when
                a collection_id is configured)
            clock: Source of the current time
        """
        self.config = config or CollectionConfig()
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: list[EditListener] = []

        self.store = PageStore(home_wiki=self.config.home_wiki, clock=clock)
        self.engine = AggregationEngine(self.store, project=self.config.project, clock=clock)
        self.sweeper = EvictionSweeper(
            self.store,
            RetentionPolicy(
                max_lifespan=self.config.max_lifespan,
                max_inactivity=self.config.max_inactivity,
                min_speed=self.config.min_speed,
                min_purge_time=self.config.min_purge_time,
            ),
            clock=clock,
        )

        if snapshots is None and self.config.collection_id:
            snapshots = SnapshotStore(self.config.snapshot_dir)
        self.snapshots = snapshots
        self._timer: SweepTimer | None = None

        self._restore()

    # --- Lifecycle ---

    def start(self) -> None:
        """Start periodic sweeps."""
        with self._lock:
            if self._timer is not None:
                return
            self._timer = SweepTimer(self.config.sweep_interval, self.sweep)
            self._timer.start()

    def close(self) -> None:
        """Stop periodic sweeps."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()

    def __enter__(self) -> "WikiCollection":
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- Notifications ---

    def on_edit(self, listener: EditListener) -> Callable[[], None]:
        """
        Register a listener called after every applied edit.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit_edit(self, page: PageRecord) -> None:
        for listener in list(self._listeners):
            listener(page.snapshot(), self)

    # --- Event intake ---

    def handle_event(self, raw: Mapping[str, Any]) -> bool:
        """
        Apply one raw stream event.

        Returns True if the event changed the collection. Malformed
        events are logged and dropped.
        """
        try:
            event = RawEvent.from_dict(raw)
        except InvalidEventError as e:
            logger.warning("dropping malformed event: %s", e)
            return False
        return self.apply(event)

    def apply(self, event: RawEvent) -> bool:
        """Apply an already validated event."""
        with self._lock:
            if not self.engine.accepts(event):
                logger.debug("filtered event on %s (ns=%d)", event.title, event.namespace)
                return False
            if event.is_control:
                return self.engine.apply_control(event)
            outcome = self.engine.apply_edit(event)
            self._emit_edit(outcome.page)
            return True

    # --- Reads ---

    def get_page(self, title: str, wiki: str | None = None) -> PageRecord:
        """Copy of the page's record, created if it is not tracked yet."""
        with self._lock:
            return self.store.get_or_create(title, wiki).snapshot()

    def get_pages(self) -> list[PageRecord]:
        """Copies of every tracked record."""
        with self._lock:
            return [page.snapshot() for page in self.store.list_all()]

    def page_id(self, title: str, wiki: str | None = None) -> str:
        return self.store.page_id(title, wiki)

    def __len__(self) -> int:
        with self._lock:
            return len(self.store)

    # --- Control ---

    def mark_safe(self, page_id: str, unsafe: bool = False) -> None:
        with self._lock:
            self.store.mark_safe(page_id, unsafe)

    def drop(self, title: str, wiki: str | None = None) -> None:
        with self._lock:
            self.store.drop(title, wiki)

    def protect(self, title: str, wiki: str | None = None) -> None:
        with self._lock:
            self.store.protect(title, wiki)

    # --- Eviction and persistence ---

    def sweep(self) -> SweepResult:
        """Run one eviction sweep and persist what remains."""
        with self._lock:
            result = self.sweeper.sweep()
            self.persist()
            return result

    def persist(self) -> None:
        """Write the current pages to the snapshot store (if configured)."""
        if self.snapshots is None or not self.config.collection_id:
            return
        with self._lock:
            blob = encode_pages(self.store.list_all())
        self.snapshots.put(self.config.collection_id, blob)

    def _restore(self) -> None:
        if self.snapshots is None or not self.config.collection_id:
            return
        key = self.config.collection_id
        try:
            blob = self.snapshots.get(key)
            records = decode_pages(blob) if blob else []
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("could not load snapshot %r, starting empty: %s", key, e)
            return
        self.store.load(records)
        logger.info("restored %d pages from snapshot %r", len(records), key)

    def to_json(self) -> str:
        """The current pages in snapshot form, as JSON."""
        with self._lock:
            return json.dumps(encode_pages(self.store.list_all()), sort_keys=True)
