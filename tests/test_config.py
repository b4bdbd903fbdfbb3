"""Tests for tradecore.config: environment variable loading and validation."""

import pytest

from tradecore.config import Config, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure tradecore env vars are cleared between tests.

    Setting before deleting makes monkeypatch restore the original state,
    which also undoes anything ``load_dotenv`` wrote.
    """
    for var in [
        "LOG_LEVEL",
        "INITIAL_CAPITAL",
        "LIVE_LOOKBACK_CANDLES",
        "BACKTEST_PREFILL_CANDLES",
        "AI_FILTER_ENABLED",
        "AI_MIN_CONFIDENCE",
        "PRICE_CACHE_TTL_SECONDS",
        "PRICE_API_URL",
    ]:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


@pytest.fixture
def env_path(tmp_path):
    """A non-existent .env so load_dotenv never picks up a real file."""
    return str(tmp_path / ".env")


class TestLoadConfig:
    def test_defaults(self, env_path):
        cfg = load_config(env_path)
        assert cfg.log_level == "INFO"
        assert cfg.initial_capital == 1000.0
        assert cfg.live_lookback_candles == 500
        assert cfg.backtest_prefill_candles == 200
        assert cfg.ai_filter_enabled is False
        assert cfg.ai_min_confidence == 0.7
        assert cfg.price_cache_ttl_seconds == 3600
        assert cfg.price_api_url.startswith("https://")

    def test_overrides(self, monkeypatch, env_path):
        monkeypatch.setenv("INITIAL_CAPITAL", "2500")
        monkeypatch.setenv("BACKTEST_PREFILL_CANDLES", "50")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        cfg = load_config(env_path)
        assert cfg.initial_capital == 2500.0
        assert cfg.backtest_prefill_candles == 50
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["-0.1", "1.5"])
    def test_min_confidence_out_of_range(self, monkeypatch, env_path, value):
        monkeypatch.setenv("AI_MIN_CONFIDENCE", value)
        with pytest.raises(ValueError, match="AI_MIN_CONFIDENCE"):
            load_config(env_path)

    def test_min_confidence_override(self, monkeypatch, env_path):
        monkeypatch.setenv("AI_MIN_CONFIDENCE", "0.55")
        assert load_config(env_path).ai_min_confidence == 0.55

    @pytest.mark.parametrize("flag", ["1", "TRUE", "yes", " on "])
    def test_ai_filter_truthy_values(self, monkeypatch, env_path, flag):
        monkeypatch.setenv("AI_FILTER_ENABLED", flag)
        cfg = load_config(env_path)
        assert cfg.ai_filter_enabled is True

    def test_reads_env_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("INITIAL_CAPITAL=750\nLIVE_LOOKBACK_CANDLES=300\n")
        cfg = load_config(str(path))
        assert cfg.initial_capital == 750.0
        assert cfg.live_lookback_candles == 300

    def test_config_is_frozen(self, env_path):
        cfg = load_config(env_path)
        assert isinstance(cfg, Config)
        with pytest.raises(AttributeError):
            cfg.log_level = "DEBUG"
