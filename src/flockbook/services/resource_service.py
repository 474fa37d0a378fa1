from __future__ import annotations

import itertools
import logging
import time
from dataclasses import fields, replace
from typing import Any, Callable, Optional

from flockbook.domain.errors import AppError, NetworkError, NotFoundError, ServerError, ValidationError
from flockbook.domain.models import TEMP_ID_PREFIX
from flockbook.repositories.contracts import DataGateway

log = logging.getLogger("flockbook.sync")

FALLBACK_CACHE_SECONDS = 5 * 60

# placeholder ids must stay unique within one millisecond tick
_temp_seq = itertools.count(1)


def new_temp_id(clock: Callable[[], float] = time.time) -> str:
    return f"{TEMP_ID_PREFIX}{int(clock() * 1000)}-{next(_temp_seq)}"


def saved_record(model, response, fallback):
    """Record echoed by the server when it carries an id, else ``fallback``."""
    data = getattr(response, "data", None)
    if isinstance(data, dict) and data.get("id"):
        return model.from_wire(data)
    return fallback


class FallbackFetch:
    """Direct fetch used only when no shared snapshot is available.

    Results are kept for ``cache_seconds`` so repeated reads share one request.
    """

    def __init__(self, fetcher: Callable[[], Any], cache_seconds: float = FALLBACK_CACHE_SECONDS, clock: Callable[[], float] = time.time):
        self.fetcher = fetcher
        self.cache_seconds = cache_seconds
        self.clock = clock
        self._value: Any = None
        self._fetched_at: Optional[float] = None

    def get(self) -> Any:
        if self._fetched_at is not None and self.clock() - self._fetched_at < self.cache_seconds:
            return self._value
        value = self.fetcher()
        self._value = value
        self._fetched_at = self.clock()
        return value

    def invalidate(self) -> None:
        self._value = None
        self._fetched_at = None


class ResourceService:
    """CRUD over one collection of the shared snapshot.

    Reads prefer the cache whenever it holds a list, empty or not, and fall
    back to a direct fetch only when there is no snapshot at all. Writes go to
    the gateway and are followed by exactly one cache refresh; nothing is
    patched locally.
    """

    collection = ""   # AppSnapshot attribute
    kind = ""         # wire key / fetch_collection kind
    operation = ""    # /api/crud operation
    model: Any = None
    label = "Record"
    # wire-style keys accepted by update() next to the field names
    aliases: dict[str, str] = {}

    def __init__(self, gateway: DataGateway, cache=None, fallback_cache_seconds: float = FALLBACK_CACHE_SECONDS, clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.cache = cache
        self.clock = clock
        self.state = "idle"
        self.last_error: Optional[AppError] = None
        self._fallback = FallbackFetch(self._fetch_fallback, fallback_cache_seconds, clock)

    # -------- reads --------

    def _fetch_fallback(self) -> list:
        log.info("fallback_fetch kind=%s", self.kind)
        raw = self.gateway.fetch_collection(self.kind)
        return [self.model.from_wire(r) for r in raw or []]

    def _cached(self, name: Optional[str] = None) -> Optional[list]:
        if self.cache is None:
            return None
        value = self.cache.collection(name or self.collection)
        return value if isinstance(value, list) else None

    def all_entries(self) -> list:
        cached = self._cached()
        if cached is not None:
            return cached
        return self._fallback.get()

    @property
    def entries(self) -> list:
        return [e for e in self.all_entries() if self._matches(e)]

    def _matches(self, entry) -> bool:
        return True

    def find(self, record_id: str):
        for entry in self.all_entries():
            if entry.id == record_id:
                return entry
        raise NotFoundError(f"{self.label} {record_id} not found.")

    def new_temp_id(self) -> str:
        return new_temp_id(self.clock)

    # -------- writes --------

    def add(self, entry):
        record = replace(entry, id=self.new_temp_id())
        self._validate(record)
        self._submit(lambda: self.gateway.save(self.operation, [record.to_wire()]))
        return record

    def update(self, record_id: str, changes: dict):
        current = self.find(record_id)
        merged = self._merge(current, changes)
        self._check_update(current, merged)
        self._validate(merged)
        self._submit(lambda: self.gateway.save(self.operation, [merged.to_wire()]))
        return merged

    def delete(self, record_id: str) -> None:
        self.find(record_id)
        self._submit(lambda: self.gateway.delete_record(self.operation, record_id))

    def refetch(self) -> list:
        if self.cache is not None:
            self.cache.refresh()
        else:
            self._fallback.invalidate()
        return self.entries

    def _merge(self, current, changes: dict):
        known = {f.name for f in fields(current)}
        normalized = {}
        for key, value in changes.items():
            name = self.aliases.get(key, key)
            if name not in known:
                raise ValidationError(f"Unknown field for {self.label.lower()}: {key}")
            normalized[name] = value
        if normalized.get("id", current.id) != current.id:
            raise ValidationError("Record id cannot be changed.")
        normalized.pop("id", None)
        return replace(current, **normalized)

    def _check_update(self, current, merged) -> None:
        pass

    def _validate(self, record) -> None:
        pass

    def _submit(self, action: Callable[[], Any]) -> Any:
        self.state = "submitting"
        self.last_error = None
        try:
            result = action()
        except AppError as exc:
            self.last_error = exc
            log.warning("write_failed operation=%s error=%s", self.operation or self.kind, exc)
            raise
        finally:
            self.state = "idle"
        self._after_write()
        return result

    def _after_write(self) -> None:
        if self.cache is None:
            self._fallback.invalidate()
            return
        # the write is already on the server; a failed refresh is surfaced through cache.error
        try:
            self.cache.refresh()
        except (NetworkError, ServerError) as exc:
            log.warning("refresh_after_write_failed operation=%s error=%s", self.operation or self.kind, exc)
