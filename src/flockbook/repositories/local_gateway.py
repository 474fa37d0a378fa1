from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from flockbook.domain.errors import NotFoundError, ValidationError
from flockbook.domain.models import ApiResponse, is_temp_id

log = logging.getLogger("flockbook.gateway")

# crud operation name -> storage key
OPERATION_KEYS = {
    "eggs": "eggEntries",
    "eggEntries": "eggEntries",
    "expenses": "expenses",
    "feed": "feedInventory",
    "feedInventory": "feedInventory",
    "flockProfile": "flockProfile",
    "flockEvents": "flockEvents",
}

LIST_KEYS = (
    "eggEntries",
    "expenses",
    "feedInventory",
    "flockEvents",
    "customers",
    "sales",
    "flockBatches",
    "deathRecords",
)


class LocalStoreGateway:
    """Gateway for running without a backend.

    Collections live as JSON under fixed keys in the local sqlite store and are
    written the way the server writes them: upsert by id, placeholder ids
    swapped for generated ones.
    """

    def __init__(self, repo):
        self.repo = repo

    def fetch_all(self) -> ApiResponse:
        data: dict[str, Any] = {key: self.repo.get_value(key, []) for key in LIST_KEYS}
        profile = self.repo.get_value("flockProfile")
        if profile is not None:
            profile = {**profile, "events": data["flockEvents"]}
        data["flockProfile"] = profile
        return ApiResponse(success=True, data=data, message="Data loaded from local store")

    def fetch_collection(self, kind: str) -> Any:
        if kind == "flockProfile":
            return self.repo.get_value("flockProfile")
        if kind not in LIST_KEYS:
            raise ValueError(f"Unknown collection: {kind}")
        return self.repo.get_value(kind, [])

    def save(self, operation: str, payload: Any) -> ApiResponse:
        key = OPERATION_KEYS.get(operation)
        if key is None:
            raise ValidationError(f"Invalid operation: {operation}")

        if key == "flockProfile":
            if not isinstance(payload, dict):
                raise ValidationError("Flock profile must be a single object.")
            profile = self._with_id(payload)
            profile.pop("events", None)
            self.repo.set_value(key, profile)
            log.info("local_saved key=%s id=%s", key, profile["id"])
            return ApiResponse(success=True, data={"profileId": profile["id"], "updated": True}, message="Flock profile saved locally")

        records = payload if isinstance(payload, list) else [payload]
        ids = self._upsert(key, records)
        log.info("local_saved key=%s count=%s", key, len(ids))
        return ApiResponse(success=True, data={"saved": len(ids), "ids": ids}, message=f"{key} saved locally")

    def delete_record(self, operation: str, record_id: str) -> ApiResponse:
        key = OPERATION_KEYS.get(operation)
        if key is None or key == "flockProfile":
            raise ValidationError(f"Invalid delete operation: {operation}")
        current = self.repo.get_value(key, [])
        remaining = [r for r in current if str(r.get("id")) != str(record_id)]
        self.repo.set_value(key, remaining)
        deleted = len(remaining) != len(current)
        log.info("local_deleted key=%s id=%s deleted=%s", key, record_id, deleted)
        return ApiResponse(success=True, data={"deleted": deleted, "id": record_id}, message=f"{key} entry deleted")

    def save_customer(self, payload: dict) -> ApiResponse:
        record = {"is_active": True, **payload, "created_at": payload.get("created_at") or _now_iso()}
        ids = self._upsert("customers", [record])
        return ApiResponse(success=True, data={**record, "id": ids[0]}, message="Customer saved locally")

    def update_customer(self, customer_id: str, payload: dict) -> ApiResponse:
        merged = self._merge_existing("customers", customer_id, payload)
        return ApiResponse(success=True, data=merged, message="Customer updated locally")

    def save_sale(self, payload: dict) -> ApiResponse:
        record = {**payload, "created_at": payload.get("created_at") or _now_iso()}
        record["customer_name"] = self._customer_name(record.get("customer_id"))
        ids = self._upsert("sales", [record])
        return ApiResponse(success=True, data={**record, "id": ids[0]}, message="Sale saved locally")

    def update_sale(self, sale_id: str, payload: dict) -> ApiResponse:
        merged = self._merge_existing("sales", sale_id, payload)
        return ApiResponse(success=True, data=merged, message="Sale updated locally")

    def save_flock_batch(self, payload: dict) -> ApiResponse:
        ids = self._upsert("flockBatches", [payload])
        return ApiResponse(success=True, data={**payload, "id": ids[0]}, message="Flock batch saved locally")

    def save_death_record(self, payload: dict) -> ApiResponse:
        ids = self._upsert("deathRecords", [payload])
        return ApiResponse(success=True, data={**payload, "id": ids[0]}, message="Death record saved locally")

    def _upsert(self, key: str, records: list[dict]) -> list[str]:
        current = list(self.repo.get_value(key, []))
        index = {str(r.get("id")): i for i, r in enumerate(current)}
        ids = []
        for record in records:
            rec = self._with_id(record)
            pos = index.get(rec["id"])
            if pos is None:
                index[rec["id"]] = len(current)
                current.append(rec)
            else:
                current[pos] = rec
            ids.append(rec["id"])
        self.repo.set_value(key, current)
        return ids

    def _merge_existing(self, key: str, record_id: str, payload: dict) -> dict:
        current = list(self.repo.get_value(key, []))
        for i, rec in enumerate(current):
            if str(rec.get("id")) == str(record_id):
                current[i] = {**rec, **payload, "id": rec["id"]}
                self.repo.set_value(key, current)
                return current[i]
        raise NotFoundError(f"{key} record {record_id} not found.")

    def _customer_name(self, customer_id: Any) -> str | None:
        for customer in self.repo.get_value("customers", []):
            if str(customer.get("id")) == str(customer_id):
                return customer.get("name")
        return None

    @staticmethod
    def _with_id(record: dict) -> dict:
        rec = dict(record)
        if not rec.get("id") or is_temp_id(rec["id"]):
            rec["id"] = str(uuid.uuid4())
        rec["id"] = str(rec["id"])
        return rec


def _now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat()
