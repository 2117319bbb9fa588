from __future__ import annotations

import pytest

from pyfoxhole._constants import BASE_URL, SHARD_URLS
from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "FOXHOLE_SHARD",
        "FOXHOLE_BASE_URL",
        "FOXHOLE_DATABASE_PATH",
        "FOXHOLE_OUTPUT_PATH",
        "FOXHOLE_REQUEST_TIMEOUT",
        "FOXHOLE_POLL_INTERVAL",
        "FOXHOLE_FALLBACK_INTERVAL",
        "FOXHOLE_MAX_CONCURRENT_FETCHES",
        "FOXHOLE_DISPLAY_WIDTH",
        "FOXHOLE_DISPLAY_HEIGHT",
        "FOXHOLE_GRAY_LEVELS",
        "FOXHOLE_RESET_ON_NEW_WAR",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = FoxholeConfig.from_env()

    assert config.base_url == BASE_URL
    assert config.poll_interval == 5.0
    assert config.fallback_interval == 300.0
    assert config.reset_on_new_war is True
    assert (config.display_width, config.display_height, config.gray_levels) == (800, 480, 16)


def test_env_values_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("FOXHOLE_MAX_CONCURRENT_FETCHES", "3")
    monkeypatch.setenv("FOXHOLE_DATABASE_PATH", "/var/lib/foxhole/state.db")
    monkeypatch.setenv("FOXHOLE_RESET_ON_NEW_WAR", "off")

    config = FoxholeConfig.from_env()

    assert config.poll_interval == 2.5
    assert config.max_concurrent_fetches == 3
    assert config.database_url == "sqlite:////var/lib/foxhole/state.db"
    assert config.reset_on_new_war is False


def test_shard_selects_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_SHARD", "Live-2")

    assert FoxholeConfig.from_env().base_url == SHARD_URLS["live-2"]


def test_explicit_base_url_beats_shard(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_SHARD", "live-3")
    monkeypatch.setenv("FOXHOLE_BASE_URL", "http://localhost:8080/api")

    assert FoxholeConfig.from_env().base_url == "http://localhost:8080/api"


def test_unknown_shard_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_SHARD", "devbranch")

    with pytest.raises(FoxholeConfigError, match="devbranch"):
        FoxholeConfig.from_env()


def test_non_numeric_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_POLL_INTERVAL", "often")

    with pytest.raises(FoxholeConfigError, match="FOXHOLE_POLL_INTERVAL"):
        FoxholeConfig.from_env()


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOXHOLE_POLL_INTERVAL", "often")
    monkeypatch.setenv("FOXHOLE_OUTPUT_PATH", "/tmp/env.png")

    config = FoxholeConfig.from_env(poll_interval=1.0, output_path="/tmp/cli.png")

    assert config.poll_interval == 1.0
    assert config.output_path == "/tmp/cli.png"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"request_timeout": 0},
        {"request_timeout": float("inf")},
        {"request_timeout": float("nan")},
        {"poll_interval": 0},
        {"fallback_interval": -1},
        {"max_concurrent_fetches": 0},
        {"gray_levels": 1},
        {"display_width": 0},
    ],
)
def test_invalid_values_raise(kwargs: dict[str, float]) -> None:
    with pytest.raises(FoxholeConfigError):
        FoxholeConfig(**kwargs)  # type: ignore[arg-type]


def test_memory_database_url() -> None:
    assert FoxholeConfig(database_path=":memory:").database_url == "sqlite://"
