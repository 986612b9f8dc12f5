from pathlib import Path

import pytest

from tick_analyzer.infrastructure.utils.config import AnalyzerConfig, load_config

ENV_KEYS = ("DERIV__APP_ID", "DERIV__API_TOKEN", "FEED__SYMBOL", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_config_file() -> None:
    config = load_config()

    assert config.deriv.app_id == "1089"
    assert config.deriv.api_token == ""
    assert config.deriv.websocket_url == "wss://ws.derivws.com/websockets/v3"
    assert config.feed.symbol == "R_100"
    assert config.feed.window_capacity == 100
    assert config.feed.reconnect_delay_sec == 3.0
    assert config.analysis.min_ticks == 20
    assert config.analysis.rsi_period == 14


def test_yaml_values_are_loaded(tmp_path) -> None:
    path = _write(
        tmp_path / "analyzer.yaml",
        "log_level: debug\nfeed:\n  symbol: BOOM1000\n  window_capacity: 200\nanalysis:\n  rsi_period: 7\n",
    )

    config = load_config(path)

    assert config.log_level == "DEBUG"
    assert config.feed.symbol == "BOOM1000"
    assert config.feed.window_capacity == 200
    assert config.analysis.rsi_period == 7


def test_env_overrides_yaml_secrets(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path / "analyzer.yaml", "deriv:\n  app_id: '1089'\n  api_token: ''\n")
    monkeypatch.setenv("DERIV__API_TOKEN", "a1-secret-token")
    monkeypatch.setenv("FEED__SYMBOL", "R_25")

    config = load_config(path)

    assert config.deriv.api_token == "a1-secret-token"
    assert config.feed.symbol == "R_25"


def test_default_yaml_is_discovered(tmp_path) -> None:
    (tmp_path / "config").mkdir()
    _write(tmp_path / "config" / "default.yaml", "feed:\n  symbol: CRASH1000\n")

    assert load_config().feed.symbol == "CRASH1000"


def test_unknown_symbol_is_rejected(tmp_path) -> None:
    path = _write(tmp_path / "analyzer.yaml", "feed:\n  symbol: EURUSD\n")

    with pytest.raises(ValueError, match="symbol"):
        load_config(path)


def test_sma_periods_must_be_ordered() -> None:
    with pytest.raises(ValueError):
        AnalyzerConfig.model_validate({"analysis": {"sma_fast_period": 50, "sma_slow_period": 20}})


def test_rsi_levels_must_be_ordered() -> None:
    with pytest.raises(ValueError):
        AnalyzerConfig.model_validate({"analysis": {"rsi_overbought": 30, "rsi_oversold": 70}})


def test_non_numeric_app_id_is_rejected() -> None:
    with pytest.raises(ValueError):
        AnalyzerConfig.model_validate({"deriv": {"app_id": "abc"}})


def test_invalid_yaml(tmp_path) -> None:
    path = _write(tmp_path / "broken.yaml", "feed: [unclosed\n")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(path)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")
