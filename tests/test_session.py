from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from pyfoodime._storage import SessionStorage
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import FoodimeAuthError, FoodimeConfigError
from pyfoodime.session import Session, SessionGuard


def _session() -> Session:
    return Session(token="nonce-abc", user_id=12, username="rider", full_name="Rider One")


# ------------------------------------------------------------------
# Session / SessionGuard
# ------------------------------------------------------------------


def test_session_requires_token() -> None:
    with pytest.raises(ValidationError):
        Session(token="   ")


def test_display_name_falls_back_to_username() -> None:
    assert _session().display_name == "Rider One"
    assert Session(token="t", username="rider").display_name == "rider"


def test_token_requires_login() -> None:
    guard = SessionGuard()
    assert not guard.is_authenticated()
    with pytest.raises(FoodimeAuthError):
        _ = guard.token


def test_clear_runs_teardowns_once_in_order() -> None:
    guard = SessionGuard()
    calls: list[str] = []
    guard.add_teardown(lambda reason: calls.append(f"channel:{reason}"))
    guard.add_teardown(lambda reason: calls.append(f"reporter:{reason}"))
    guard.establish(_session())

    guard.clear("authorization failure")
    guard.clear("logout")

    assert calls == ["channel:authorization failure", "reporter:authorization failure"]
    assert guard.session is None


def test_reentrant_clear_is_a_no_op() -> None:
    guard = SessionGuard()
    calls: list[str] = []

    def reenter(reason: str) -> None:
        calls.append(reason)
        guard.clear("nested")

    guard.add_teardown(reenter)
    guard.establish(_session())
    guard.clear("logout")

    assert calls == ["logout"]


def test_failing_teardown_does_not_block_the_rest() -> None:
    guard = SessionGuard()
    calls: list[str] = []

    def boom(_reason: str) -> None:
        raise RuntimeError("teardown bug")

    guard.add_teardown(boom)
    guard.add_teardown(calls.append)
    guard.establish(_session())
    guard.clear()

    assert calls == ["logout"]


def test_removed_teardown_is_not_called() -> None:
    guard = SessionGuard()
    calls: list[str] = []
    remove = guard.add_teardown(calls.append)
    remove()
    guard.establish(_session())
    guard.clear()
    assert calls == []


def test_new_session_can_be_cleared_again() -> None:
    guard = SessionGuard()
    calls: list[str] = []
    guard.add_teardown(calls.append)

    guard.establish(_session())
    guard.clear("first")
    guard.establish(_session())
    guard.clear("second")

    assert calls == ["first", "second"]


# ------------------------------------------------------------------
# SessionStorage
# ------------------------------------------------------------------


def test_storage_round_trip_and_layout(tmp_path: Path) -> None:
    path = tmp_path / "state" / "session.json"
    storage = SessionStorage(path)

    storage.save(_session())

    document = json.loads(path.read_text(encoding="utf-8"))
    assert list(document) == ["foodimeDeliveryUser"]
    assert document["foodimeDeliveryUser"]["token"] == "nonce-abc"
    loaded = storage.load()
    assert loaded is not None
    assert loaded.username == "rider"


@pytest.mark.parametrize(
    "content",
    ["", "not json", "[]", '{"other": {}}', '{"foodimeDeliveryUser": {"token": ""}}'],
)
def test_storage_ignores_unusable_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "session.json"
    path.write_text(content, encoding="utf-8")
    assert SessionStorage(path).load() is None


def test_guard_persists_restores_and_removes(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    SessionGuard(SessionStorage(path)).establish(_session())
    assert path.exists()

    guard = SessionGuard(SessionStorage(path))
    assert guard.restore() is True
    assert guard.token == "nonce-abc"

    guard.clear()
    assert not path.exists()
    assert SessionGuard(SessionStorage(path)).restore() is False


def test_storage_remove_missing_file(tmp_path: Path) -> None:
    SessionStorage(tmp_path / "missing.json").remove()


# ------------------------------------------------------------------
# FoodimeConfig
# ------------------------------------------------------------------


def test_config_defaults() -> None:
    config = FoodimeConfig(base_url="https://example.com/wp-json/foodime/v1/")
    assert config.base_url == "https://example.com/wp-json/foodime/v1"
    assert config.location_interval == 15.0
    assert config.backoff_max == 30.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": ""},
        {"location_interval": 0},
        {"backoff_initial": 5.0, "backoff_max": 1.0},
        {"backoff_jitter": 1.5},
        {"degraded_after_failures": 0},
    ],
)
def test_config_rejects_invalid_values(kwargs: dict) -> None:
    with pytest.raises(FoodimeConfigError):
        FoodimeConfig(**kwargs)


def test_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("FOODIME_BASE_URL", "https://shop.example/wp-json/foodime/v1")
    monkeypatch.setenv("FOODIME_USERNAME", "rider")
    monkeypatch.setenv("FOODIME_LOCATION_INTERVAL", "20")
    monkeypatch.setenv("FOODIME_DEGRADED_AFTER_FAILURES", "3")
    monkeypatch.setenv("FOODIME_REALTIME_ENABLED", "off")
    monkeypatch.setenv("FOODIME_SESSION_FILE", str(tmp_path / "s.json"))

    config = FoodimeConfig.from_env(password="secret")

    assert config.base_url == "https://shop.example/wp-json/foodime/v1"
    assert config.username == "rider"
    assert config.password == "secret"
    assert config.location_interval == 20.0
    assert config.degraded_after_failures == 3
    assert config.realtime_enabled is False
    assert config.session_file == tmp_path / "s.json"


def test_config_from_env_empty_session_file_disables_persistence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOODIME_SESSION_FILE", "")
    assert FoodimeConfig.from_env().session_file is None


def test_config_from_env_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOODIME_BACKOFF_MAX", "soon")
    with pytest.raises(FoodimeConfigError):
        FoodimeConfig.from_env()
