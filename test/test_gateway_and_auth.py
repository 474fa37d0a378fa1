import pytest
import requests

from conftest import FakeHttp, FakeResponse, FakeSessions, ok
from flockbook.domain.errors import AuthenticationError, NetworkError, ServerError
from flockbook.domain.models import Expense
from flockbook.repositories.http_gateway import RemoteDataGateway, normalize_envelope
from flockbook.services.cache_service import DataCache
from flockbook.services.expense_service import ExpenseService
from flockbook.services.feed_service import FeedService


def _gateway(http, sessions=None):
    return RemoteDataGateway("https://farm.example/", sessions or FakeSessions(), timeout=5, http=http)


def test_envelope_accepts_current_and_legacy_shapes():
    current = normalize_envelope({"success": False, "data": None, "message": "nope"})
    legacy = normalize_envelope({"message": "Data fetched", "data": {"eggEntries": []}, "timestamp": "2025-01-01T00:00:00Z"})

    assert (current.success, current.message) == (False, "nope")
    assert legacy.success is True
    assert legacy.data == {"eggEntries": []}


@pytest.mark.parametrize("raw", [{"data": []}, ["not", "an", "object"], "text", {"success": "yes"}])
def test_envelope_rejects_unknown_shapes(raw):
    with pytest.raises(ServerError, match="invalid response format"):
        normalize_envelope(raw)


def test_fetch_all_sends_bearer_token_and_type_param():
    http = FakeHttp(ok({"eggEntries": [{"id": "e1", "date": "2025-01-01", "count": 3}]}))
    response = _gateway(http).fetch_all()

    call = http.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://farm.example/api/data"
    assert call["params"] == {"type": "all"}
    assert call["headers"]["Authorization"] == "Bearer token-1"
    assert call["timeout"] == 5
    assert response.data["eggEntries"][0]["count"] == 3


def test_unauthorized_response_signs_out_once_and_raises():
    sessions = FakeSessions()
    http = FakeHttp(FakeResponse(401, text="expired"))
    expenses = ExpenseService(_gateway(http, sessions))

    with pytest.raises(AuthenticationError):
        expenses.add(Expense(id=None, date="2025-01-02", category="Feed", description="Layer pellets", amount=20.0))

    assert sessions.sign_outs == 1
    assert expenses.state == "idle"
    assert isinstance(expenses.last_error, AuthenticationError)


def test_server_error_carries_status_and_body():
    http = FakeHttp(FakeResponse(500, text="boom"))

    with pytest.raises(ServerError) as exc_info:
        _gateway(http).save("eggs", [{"date": "2025-01-01", "count": 1}])

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "boom"


def test_non_json_body_is_a_server_error():
    http = FakeHttp(FakeResponse(200, text="<html>"))
    with pytest.raises(ServerError, match="Invalid response format"):
        _gateway(http).fetch_all()


def test_unsuccessful_envelope_is_a_server_error():
    http = FakeHttp(FakeResponse(200, {"success": False, "message": "Invalid operation"}))
    with pytest.raises(ServerError, match="Invalid operation"):
        _gateway(http).save("bogus", [])


def test_transport_failure_becomes_network_error():
    http = FakeHttp(requests.ConnectionError("connection refused"))
    with pytest.raises(NetworkError) as exc_info:
        _gateway(http).fetch_all()
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


def test_missing_session_is_refreshed_once_per_request():
    sessions = FakeSessions(token=None, refreshed="token-2")
    http = FakeHttp(ok({}), ok({}))
    gateway = _gateway(http, sessions)

    gateway.fetch_all()
    gateway.fetch_all()

    assert sessions.refresh_calls == 1
    assert sessions.get_calls == 2
    assert all(c["headers"]["Authorization"] == "Bearer token-2" for c in http.calls)


def test_failed_refresh_signs_out_without_sending_request():
    sessions = FakeSessions(token=None, refreshed=None)
    http = FakeHttp()

    with pytest.raises(AuthenticationError, match="please log in again"):
        _gateway(http, sessions).fetch_all()

    assert http.calls == []
    assert sessions.sign_outs == 1


def test_refresh_error_is_reported_as_authentication_error():
    sessions = FakeSessions(token=None, refresh_error=AuthenticationError("Token refresh failed"))
    with pytest.raises(AuthenticationError, match="please log in again"):
        _gateway(FakeHttp(), sessions).fetch_all()
    assert sessions.refresh_calls == 1


def test_delete_feed_entry_sends_id_body_and_refreshes():
    feed = {"id": "feed-1", "brand": "Purina", "type": "Layer Feed", "quantity": 20, "unit": "kg", "openedDate": "2025-01-01", "pricePerUnit": 1.5}
    http = FakeHttp(
        ok({"feedInventory": [feed]}),
        ok({"deleted": True}),
        ok({"feedInventory": []}),
    )
    gateway = _gateway(http)
    cache = DataCache(gateway)
    cache.refresh()

    FeedService(gateway, cache).delete("feed-1")

    delete_call = http.calls[1]
    assert delete_call["method"] == "DELETE"
    assert delete_call["url"] == "https://farm.example/api/crud"
    assert delete_call["params"] == {"operation": "feed"}
    assert delete_call["json"] == {"id": "feed-1"}
    assert cache.snapshot.feed_inventory == []


def test_fetch_collection_reads_events_from_profile_when_not_listed():
    http = FakeHttp(ok({"flockProfile": {"hens": 4, "events": [{"id": "ev1", "date": "2025-01-03", "type": "broody", "description": "Hen 2"}]}}))
    events = _gateway(http).fetch_collection("flockEvents")

    assert http.calls[0]["params"] == {"type": "all"}
    assert events[0]["id"] == "ev1"


def test_crm_writes_use_dedicated_endpoints():
    http = FakeHttp(ok({"id": "c1", "name": "Ana"}), ok({"id": "c1", "name": "Ana B"}))
    gateway = _gateway(http)

    gateway.save_customer({"name": "Ana"})
    gateway.update_customer("c1", {"name": "Ana B"})

    assert [(c["method"], c["url"]) for c in http.calls] == [
        ("POST", "https://farm.example/api/customers"),
        ("PUT", "https://farm.example/api/customers"),
    ]
    assert http.calls[1]["json"] == {"name": "Ana B", "id": "c1"}


def test_generic_delete_verb_stays_available_next_to_delete_record():
    http = FakeHttp(ok({"deleted": True}), ok({"deleted": True}))
    gateway = _gateway(http)

    gateway.delete_record("eggs", "e1")
    gateway.delete("/api/customers", {"id": "c1"})

    assert [(c["method"], c["url"], c["json"], c["params"]) for c in http.calls] == [
        ("DELETE", "https://farm.example/api/crud", {"id": "e1"}, {"operation": "eggs"}),
        ("DELETE", "https://farm.example/api/customers", {"id": "c1"}, None),
    ]


def test_flock_batch_and_death_record_endpoints():
    http = FakeHttp(ok({"id": "b1"}), ok({"id": "d1"}))
    gateway = _gateway(http)

    gateway.save_flock_batch({"batchName": "Spring pullets", "initialCount": 10})
    gateway.save_death_record({"batchId": "b1", "count": 1})

    assert [(c["method"], c["url"]) for c in http.calls] == [
        ("POST", "https://farm.example/api/flockBatches"),
        ("POST", "https://farm.example/api/deathRecords"),
    ]
    assert http.calls[1]["json"] == {"batchId": "b1", "count": 1}
