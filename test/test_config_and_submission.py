import json
import logging
from pathlib import Path

import pytest

from conftest import Clock, FakeGateway
from flockbook.application.container import build_container
from flockbook.config import ApiSettings, load_api_settings
from flockbook.domain.errors import NetworkError, NotFoundError, ValidationError, user_message
from flockbook.domain.models import EggEntry
from flockbook.logging_config import JsonFormatter
from flockbook.services.egg_service import EggService
from flockbook.services.submission import Submission


def test_api_settings_defaults():
    settings = load_api_settings({})
    assert settings == ApiSettings(base_url="http://localhost:3000", auth_url="http://localhost:3000")


def test_api_settings_from_environment():
    settings = load_api_settings({
        "FLOCKBOOK_API_URL": "https://farm.example/",
        "FLOCKBOOK_AUTH_URL": "https://auth.example",
        "FLOCKBOOK_API_TIMEOUT": "2.5",
        "FLOCKBOOK_LOCAL_MODE": "yes",
        "FLOCKBOOK_SNAPSHOT_TTL_MINUTES": "30",
    })
    assert settings == ApiSettings("https://farm.example", "https://auth.example", 2.5, True, 30)


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_api_settings_reject_bad_timeout(value):
    with pytest.raises(ValidationError, match="FLOCKBOOK_API_TIMEOUT"):
        load_api_settings({"FLOCKBOOK_API_TIMEOUT": value})


@pytest.mark.parametrize("value", ["0.5", "0", "ten"])
def test_snapshot_ttl_must_be_whole_minutes(value):
    with pytest.raises(ValidationError, match="FLOCKBOOK_SNAPSHOT_TTL_MINUTES"):
        load_api_settings({"FLOCKBOOK_SNAPSHOT_TTL_MINUTES": value})


def test_user_messages_by_error_kind():
    assert user_message(NetworkError("x")) == "Unable to connect to server. Please check your internet connection."
    assert user_message(ValidationError("Amount must be > 0.")) == "Amount must be > 0."
    assert user_message(NotFoundError("gone")).startswith("That record no longer exists")
    assert user_message(RuntimeError("?")) == "An unexpected error occurred. Please try again."


def test_json_formatter_outputs_one_object_per_record():
    record = logging.LogRecord("flockbook.gateway", logging.INFO, __file__, 1, "request_done status=%s", (200,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["logger"] == "flockbook.gateway"
    assert payload["message"] == "request_done status=200"


def test_submission_clears_form_and_shows_success_briefly():
    clock = Clock()
    gateway = FakeGateway()
    eggs = EggService(gateway)
    form = Submission({"date": "", "count": 0}, clock=clock)
    form.set(date="2025-01-01", count=12)

    ok = form.submit(lambda data: eggs.add(EggEntry(id=None, **data)))

    assert ok is True
    assert form.form == {"date": "", "count": 0}
    assert form.show_success
    clock.advance(3)
    assert not form.show_success
    assert gateway.data["eggEntries"][0]["count"] == 12


def test_submission_keeps_form_and_reports_error():
    gateway = FakeGateway()
    gateway.fail_with = NetworkError("offline")
    eggs = EggService(gateway)
    form = Submission({"date": "", "count": 0})
    form.set(date="2025-01-01", count=12)

    ok = form.submit(lambda data: eggs.add(EggEntry(id=None, **data), allow_duplicate=True))

    assert ok is False
    assert form.state == "idle"
    assert form.form["count"] == 12
    assert form.error == "Unable to connect to server. Please check your internet connection."
    assert not form.show_success


def test_local_container_wires_services(tmp_path: Path):
    settings = ApiSettings("http://localhost:3000", "http://localhost:3000", local_mode=True)
    container = build_container(settings, tmp_path / "flockbook.db", user_id="u1")

    container.cache.start()
    container.eggs.add(EggEntry(id=None, date="2025-01-01", count=9))
    dashboard = container.reporting.dashboard()

    assert container.sessions is None
    assert dashboard.eggs.total == 9
    assert json.loads(json.dumps(dashboard.to_dict()))["eggs"]["total"] == 9


def test_remote_container_keys_snapshot_on_session_user(tmp_path: Path):
    settings = ApiSettings("https://farm.example", "https://auth.example")
    container = build_container(settings, tmp_path / "flockbook.db", access_token="a", refresh_token="r", user_id="u7")
    assert container.cache.user_key == "u7"

    anonymous = build_container(settings, tmp_path / "other.db", access_token="a", refresh_token="r")
    assert anonymous.cache.user_key is None
