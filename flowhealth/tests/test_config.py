from flowhealth.config import (
    CacheConfig,
    PollConfig,
    ViewConfig,
    load_cache_config,
    load_poll_config,
    load_view_config,
)


def test_poll_config_defaults(monkeypatch):
    for name in (
        "FLOWHEALTH_MAX_ATTEMPTS",
        "FLOWHEALTH_INITIAL_DELAY_SECONDS",
        "FLOWHEALTH_BACKOFF_MULTIPLIER",
        "FLOWHEALTH_MAX_DELAY_SECONDS",
        "FLOWHEALTH_SETTLE_DELAY_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    assert load_poll_config() == PollConfig()
    assert PollConfig().max_attempts == 30


def test_poll_config_from_env(monkeypatch):
    monkeypatch.setenv("FLOWHEALTH_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("FLOWHEALTH_INITIAL_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("FLOWHEALTH_MAX_DELAY_SECONDS", " 2 ")
    cfg = load_poll_config()
    assert cfg.max_attempts == 5
    assert cfg.initial_delay_seconds == 0.25
    assert cfg.max_delay_seconds == 2.0


def test_invalid_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("FLOWHEALTH_MAX_ATTEMPTS", "many")
    monkeypatch.setenv("FLOWHEALTH_BACKOFF_MULTIPLIER", "0.5")
    monkeypatch.setenv("FLOWHEALTH_SETTLE_DELAY_SECONDS", "-1")
    cfg = load_poll_config()
    assert cfg.max_attempts == 30
    assert cfg.backoff_multiplier == 1.5
    assert cfg.settle_delay_seconds == 1.0


def test_zero_attempts_rejected(monkeypatch):
    monkeypatch.setenv("FLOWHEALTH_MAX_ATTEMPTS", "0")
    assert load_poll_config().max_attempts == 30


def test_next_delay_is_capped():
    cfg = PollConfig()
    assert cfg.next_delay(0.5) == 0.75
    assert cfg.next_delay(2.5) == 3.0


def test_cache_config(monkeypatch, tmp_path):
    monkeypatch.delenv("FLOWHEALTH_CACHE_PATH", raising=False)
    monkeypatch.delenv("FLOWHEALTH_CACHE_TTL_SECONDS", raising=False)
    assert load_cache_config() == CacheConfig()

    monkeypatch.setenv("FLOWHEALTH_CACHE_PATH", str(tmp_path / "c.json"))
    monkeypatch.setenv("FLOWHEALTH_CACHE_TTL_SECONDS", "60")
    cfg = load_cache_config()
    assert cfg.path == str(tmp_path / "c.json")
    assert cfg.ttl_seconds == 60.0


def test_blank_cache_path_means_memory_only(monkeypatch):
    monkeypatch.setenv("FLOWHEALTH_CACHE_PATH", "   ")
    assert load_cache_config().path is None


def test_view_config(monkeypatch):
    monkeypatch.setenv("FLOWHEALTH_VIEW_TIMEOUT_SECONDS", "nope")
    assert load_view_config() == ViewConfig()
    monkeypatch.setenv("FLOWHEALTH_VIEW_TIMEOUT_SECONDS", "0.5")
    assert load_view_config().response_timeout_seconds == 0.5
