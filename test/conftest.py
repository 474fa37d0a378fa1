import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from flockbook.domain.models import ApiResponse, Session, is_temp_id  # noqa: E402

_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=_NO_JSON, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = "" if payload is _NO_JSON else str(payload)
        self.text = text

    def json(self):
        if self._payload is _NO_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload

    def raise_for_status(self):
        import requests

        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def ok(data=None, message: str = "ok") -> FakeResponse:
    return FakeResponse(200, {"success": True, "data": data, "message": message})


class FakeHttp:
    """Stands in for requests.Session; replies from a queue and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self):
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "json": json, "params": params, "timeout": timeout})
        return self._next()

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"method": "POST", "url": url, "headers": None, "json": json, "params": params, "timeout": timeout})
        return self._next()


class FakeSessions:
    def __init__(self, token: str | None = "token-1", refreshed: str | None = None, refresh_error: Exception | None = None):
        self.session = Session(access_token=token) if token else None
        self.refreshed = refreshed
        self.refresh_error = refresh_error
        self.get_calls = 0
        self.refresh_calls = 0
        self.sign_outs = 0

    def get_session(self):
        self.get_calls += 1
        return self.session

    def refresh_session(self):
        self.refresh_calls += 1
        if self.refresh_error is not None:
            raise self.refresh_error
        if self.refreshed is None:
            return None
        self.session = Session(access_token=self.refreshed)
        return self.session

    def sign_out(self):
        self.sign_outs += 1
        self.session = None


class FakeGateway:
    """In-memory backend with the server's write semantics (upsert by id, temp ids replaced)."""

    LISTS = ("eggEntries", "expenses", "feedInventory", "flockEvents", "customers", "sales", "flockBatches", "deathRecords")
    OPERATIONS = {"eggs": "eggEntries", "expenses": "expenses", "feed": "feedInventory", "flockEvents": "flockEvents"}

    def __init__(self, **collections):
        self.data = {key: [dict(r) for r in collections.get(key, [])] for key in self.LISTS}
        self.data["flockProfile"] = collections.get("flockProfile")
        self.fetch_all_calls = 0
        self.fetch_collection_calls = []
        self.saves = []
        self.deletes = []
        self.fail_with = None
        self._next_id = 0

    def _server_id(self):
        self._next_id += 1
        return f"srv-{self._next_id}"

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def fetch_all(self):
        self.fetch_all_calls += 1
        self._check()
        return ApiResponse(success=True, data={k: v for k, v in self.data.items()})

    def fetch_collection(self, kind):
        self.fetch_collection_calls.append(kind)
        self._check()
        return self.data.get(kind)

    def _upsert(self, key, record):
        record = dict(record)
        if not record.get("id") or is_temp_id(record["id"]):
            record["id"] = self._server_id()
        rows = self.data[key]
        for i, row in enumerate(rows):
            if row["id"] == record["id"]:
                rows[i] = record
                return record
        rows.append(record)
        return record

    def save(self, operation, payload):
        self.saves.append((operation, payload))
        self._check()
        if operation == "flockProfile":
            self.data["flockProfile"] = {**payload, "id": payload.get("id") or self._server_id()}
            return ApiResponse(success=True, data={"profileId": self.data["flockProfile"]["id"]})
        saved = [self._upsert(self.OPERATIONS[operation], r) for r in payload]
        return ApiResponse(success=True, data={"saved": len(saved)})

    def delete_record(self, operation, record_id):
        self.deletes.append((operation, record_id))
        self._check()
        key = self.OPERATIONS[operation]
        self.data[key] = [r for r in self.data[key] if r["id"] != record_id]
        return ApiResponse(success=True, data={"deleted": True})

    def save_customer(self, payload):
        self.saves.append(("customers", payload))
        self._check()
        return ApiResponse(success=True, data=self._upsert("customers", payload))

    def update_customer(self, customer_id, payload):
        self.saves.append(("customers", {**payload, "id": customer_id}))
        self._check()
        return ApiResponse(success=True, data=self._upsert("customers", {**payload, "id": customer_id}))

    def save_sale(self, payload):
        self.saves.append(("sales", payload))
        self._check()
        return ApiResponse(success=True, data=self._upsert("sales", payload))

    def update_sale(self, sale_id, payload):
        self.saves.append(("sales", {**payload, "id": sale_id}))
        self._check()
        return ApiResponse(success=True, data=self._upsert("sales", {**payload, "id": sale_id}))

    def save_flock_batch(self, payload):
        self.saves.append(("flockBatches", payload))
        self._check()
        return ApiResponse(success=True, data=self._upsert("flockBatches", payload))

    def save_death_record(self, payload):
        self.saves.append(("deathRecords", payload))
        self._check()
        return ApiResponse(success=True, data=self._upsert("deathRecords", payload))


class Clock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
