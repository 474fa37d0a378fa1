from __future__ import annotations

import logging
import sqlite3
import threading
import time
from typing import Any, Callable, Optional

from flockbook.domain.errors import ServerError
from flockbook.domain.models import AppSnapshot

log = logging.getLogger("flockbook.sync")

STALE_AFTER_SECONDS = 10 * 60


class DataCache:
    """Shared snapshot of every collection for one signed-in session.

    The snapshot is replaced wholesale by ``refresh()`` and must be treated as
    read-only. Do not keep a snapshot across a write and assume it is current;
    read ``snapshot`` again.

    Overlapping ``refresh()`` calls collapse: a caller that arrives while a
    fetch is running waits for it, then shares the next fetch that starts
    after its arrival.
    """

    def __init__(
        self,
        gateway,
        repo=None,
        user_id: Optional[str] = None,
        ttl_minutes: int = 10,
        clock: Callable[[], float] = time.time,
        resolve_user: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.gateway = gateway
        self.repo = repo
        self.user_id = user_id
        self.resolve_user = resolve_user
        self.ttl_minutes = ttl_minutes
        self.clock = clock

        self.error: Optional[str] = None
        self.last_fetched: Optional[float] = None

        self._snapshot: Optional[AppSnapshot] = None
        self._cond = threading.Condition()
        self._in_flight = False
        self._started = 0
        self._done = 0
        self._last_error: Optional[Exception] = None
        self._visible_waiters = 0
        self._closed = False
        self._persisted_key: Optional[str] = None

    @property
    def snapshot(self) -> Optional[AppSnapshot]:
        return self._snapshot

    @property
    def is_loading(self) -> bool:
        return self._visible_waiters > 0

    @property
    def user_key(self) -> Optional[str]:
        """Owner of the persisted snapshot; None while the user is unknown."""
        if self.user_id:
            return self.user_id
        if self.resolve_user is not None:
            return self.resolve_user() or None
        return None

    def collection(self, name: str) -> Any:
        """Cached value for ``name``, or None when no snapshot has been loaded."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return getattr(snapshot, name)

    def is_stale(self) -> bool:
        if self.last_fetched is None:
            return True
        return self.clock() - self.last_fetched > STALE_AFTER_SECONDS

    def start(self) -> bool:
        """Open the session: serve the persisted snapshot if fresh, then refresh."""
        self._closed = False
        key = self.user_key
        if self.repo is not None and key is None:
            log.info("snapshot_restore_skipped reason=unknown_user")
        elif self.repo is not None and self._snapshot is None:
            cached = self.repo.get_snapshot(key)
            if cached is not None:
                self._snapshot = AppSnapshot.from_wire(cached)
                self.last_fetched = self.clock()
                self._persisted_key = key
                log.info("snapshot_restored user=%s", key)
        return self.silent_refresh()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._snapshot = None
            self.last_fetched = None
            self.error = None
        # sign-out may already have dropped the session user
        key = self._persisted_key or self.user_key
        self._persisted_key = None
        if self.repo is not None and key is not None:
            self.repo.clear_snapshot(key)
        log.info("cache_closed user=%s", key)

    def refresh(self) -> AppSnapshot:
        return self._refresh(visible=True)

    def silent_refresh(self) -> bool:
        try:
            self._refresh(visible=False)
        except Exception as exc:
            log.warning("silent_refresh_failed error=%s", exc)
            return False
        return True

    def _refresh(self, visible: bool) -> AppSnapshot:
        with self._cond:
            if visible:
                self._visible_waiters += 1
            try:
                needed = self._started + 1
                while self._done < needed:
                    if self._in_flight:
                        self._cond.wait()
                        continue
                    self._in_flight = True
                    self._started += 1
                    seq = self._started
                    self._cond.release()
                    snapshot, error = None, None
                    try:
                        snapshot = self._fetch()
                    except Exception as exc:
                        error = exc
                    finally:
                        self._cond.acquire()
                    self._complete(seq, snapshot, error)

                if self._last_error is not None:
                    raise self._last_error
                return self._snapshot
            finally:
                if visible:
                    self._visible_waiters -= 1

    def _fetch(self) -> AppSnapshot:
        response = self.gateway.fetch_all()
        if not response.success:
            raise ServerError(response.message or "Failed to fetch data")
        return AppSnapshot.from_wire(response.data)

    def _complete(self, seq: int, snapshot: Optional[AppSnapshot], error: Optional[Exception]) -> None:
        self._done = seq
        self._in_flight = False
        try:
            self._store(seq, snapshot, error)
        finally:
            self._cond.notify_all()

    def _store(self, seq: int, snapshot: Optional[AppSnapshot], error: Optional[Exception]) -> None:
        if error is not None:
            self._last_error = error
            self.error = str(error) or "Failed to fetch data"
            log.error("refresh_failed seq=%s error=%s", seq, error)
        elif not self._closed:
            self._last_error = None
            self.error = None
            self._snapshot = snapshot
            self.last_fetched = self.clock()
            self._persist(snapshot)
            log.info(
                "refresh_done seq=%s eggs=%s expenses=%s feed=%s",
                seq,
                len(snapshot.egg_entries),
                len(snapshot.expenses),
                len(snapshot.feed_inventory),
            )

    def _persist(self, snapshot: AppSnapshot) -> None:
        key = self.user_key
        if self.repo is None or key is None:
            return
        try:
            self.repo.set_snapshot(key, snapshot.to_wire(), self.ttl_minutes)
        except sqlite3.Error as exc:
            log.error("snapshot_persist_failed user=%s error=%s", key, exc)
            return
        self._persisted_key = key
