from __future__ import annotations

from dataclasses import fields, replace
from datetime import datetime
from typing import Optional

from flockbook.domain.errors import NotFoundError, ValidationError
from flockbook.domain.models import FLOCK_EVENT_TYPES, DeathRecord, FlockBatch, FlockEvent, FlockProfile
from flockbook.services.resource_service import FallbackFetch, ResourceService, saved_record
from flockbook.services.statistics import FlockStatistics, flock_statistics, parse_day

PROFILE_ALIASES = {
    "breedTypes": "breed_types",
    "flockStartDate": "flock_start_date",
}


class FlockService(ResourceService):
    """Flock profile (one per user) plus its event log.

    ``entries`` and the inherited add/update/delete operate on events; the
    profile is written as a single object.
    """

    collection = "flock_events"
    kind = "flockEvents"
    operation = "flockEvents"
    model = FlockEvent
    label = "Flock event"
    aliases = {"affectedBirds": "affected_birds"}

    def __init__(self, gateway, cache=None, **kwargs):
        super().__init__(gateway, cache, **kwargs)
        self._profile_fallback = FallbackFetch(self._fetch_profile, self._fallback.cache_seconds, self.clock)
        self._batch_fallback = FallbackFetch(self._fetch_batches, self._fallback.cache_seconds, self.clock)
        self._death_fallback = FallbackFetch(self._fetch_deaths, self._fallback.cache_seconds, self.clock)

    def _fetch_profile(self) -> Optional[FlockProfile]:
        raw = self.gateway.fetch_collection("flockProfile")
        return FlockProfile.from_wire(raw) if raw else None

    def _fetch_batches(self) -> list[FlockBatch]:
        return [FlockBatch.from_wire(b) for b in self.gateway.fetch_collection("flockBatches") or []]

    def _fetch_deaths(self) -> list[DeathRecord]:
        return [DeathRecord.from_wire(d) for d in self.gateway.fetch_collection("deathRecords") or []]

    @property
    def profile(self) -> Optional[FlockProfile]:
        snapshot = self.cache.snapshot if self.cache is not None else None
        if snapshot is not None:
            return snapshot.flock_profile
        return self._profile_fallback.get()

    @property
    def events(self) -> list[FlockEvent]:
        return sorted(self.entries, key=lambda e: e.date)

    @property
    def batches(self) -> list[FlockBatch]:
        cached = self._cached("flock_batches")
        if cached is not None:
            return cached
        return self._batch_fallback.get()

    @property
    def active_batches(self) -> list[FlockBatch]:
        return [b for b in self.batches if b.is_active]

    @property
    def death_records(self) -> list[DeathRecord]:
        cached = self._cached("death_records")
        if cached is not None:
            return cached
        return self._death_fallback.get()

    def find_batch(self, batch_id: str) -> FlockBatch:
        for batch in self.batches:
            if batch.id == batch_id:
                return batch
        raise NotFoundError(f"Flock batch {batch_id} not found.")

    def update_profile(self, changes: dict) -> FlockProfile:
        current = self.profile or FlockProfile(id=None)
        known = {f.name for f in fields(FlockProfile)} - {"id", "events", "last_updated"}
        normalized = {}
        for key, value in changes.items():
            name = PROFILE_ALIASES.get(key, key)
            if name not in known:
                raise ValidationError(f"Unknown field for flock profile: {key}")
            normalized[name] = tuple(value) if name == "breed_types" else value

        merged = replace(current, **normalized, last_updated=datetime.now().replace(microsecond=0).isoformat())
        for name in ("hens", "roosters", "chicks", "brooding"):
            if getattr(merged, name) < 0:
                raise ValidationError(f"{name.capitalize()} must be >= 0.")

        payload = merged.to_wire()
        payload.pop("events", None)
        self._submit(lambda: self.gateway.save("flockProfile", payload))
        if self.cache is None:
            self._profile_fallback.invalidate()
        return merged

    def add_event(self, event: FlockEvent) -> FlockEvent:
        if self.profile is None:
            raise ValidationError("Create a flock profile before logging events.")
        return self.add(event)

    def update_event(self, event_id: str, changes: dict) -> FlockEvent:
        return self.update(event_id, changes)

    def delete_event(self, event_id: str) -> None:
        self.delete(event_id)

    def statistics(self) -> FlockStatistics:
        return flock_statistics(self.profile, self.entries, self.batches, self.death_records)

    def _validate(self, record: FlockEvent) -> None:
        if parse_day(record.date) is None:
            raise ValidationError("Date is required (YYYY-MM-DD).")
        if record.type not in FLOCK_EVENT_TYPES:
            raise ValidationError(f"Event type must be one of: {', '.join(FLOCK_EVENT_TYPES)}.")
        if not record.description.strip():
            raise ValidationError("Description is required.")
        if record.affected_birds is not None and record.affected_birds < 0:
            raise ValidationError("Affected birds must be >= 0.")

    # -------- batches --------

    def add_batch(self, batch: FlockBatch) -> FlockBatch:
        if not batch.batch_name.strip():
            raise ValidationError("Batch name is required.")
        if parse_day(batch.acquisition_date) is None:
            raise ValidationError("Acquisition date is required (YYYY-MM-DD).")
        if batch.initial_count <= 0:
            raise ValidationError("Initial count must be > 0.")
        if not 0 <= batch.current_count <= batch.initial_count:
            raise ValidationError("Current count must be between 0 and the initial count.")
        payload = replace(batch, id=None).to_wire()
        response = self._submit(lambda: self.gateway.save_flock_batch(payload))
        if self.cache is None:
            self._batch_fallback.invalidate()
        return saved_record(FlockBatch, response, batch)

    def record_deaths(self, record: DeathRecord) -> DeathRecord:
        batch = self.find_batch(record.batch_id)
        if parse_day(record.date) is None:
            raise ValidationError("Date is required (YYYY-MM-DD).")
        if record.count <= 0:
            raise ValidationError("Death count must be > 0.")
        if record.count > batch.current_count:
            raise ValidationError(f"Batch {batch.batch_name} has only {batch.current_count} birds.")
        payload = replace(record, id=None).to_wire()
        response = self._submit(lambda: self.gateway.save_death_record(payload))
        if self.cache is None:
            self._death_fallback.invalidate()
        return saved_record(DeathRecord, response, record)
