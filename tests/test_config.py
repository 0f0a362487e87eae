from fxsim.market.config import FeedConfig


def test_from_env_defaults(monkeypatch):
    for key in ("FEED_BASE_PRICE", "FEED_INITIAL_PRICE", "FEED_VOLATILITY_FLOOR", "FEED_INTERVAL_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    config = FeedConfig.from_env()
    assert config.base_price == 1.08
    assert config.start_price == 1.08
    assert config.volatility_floor == 0.000005


def test_from_env_reads_feed_variables(monkeypatch):
    monkeypatch.setenv("FEED_BASE_PRICE", "1.1")
    monkeypatch.setenv("FEED_INITIAL_PRICE", "1.095")
    monkeypatch.setenv("FEED_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("FEED_VOLATILITY_FLOOR", "0.00001")
    config = FeedConfig.from_env()
    assert config.base_price == 1.1
    assert config.start_price == 1.095
    assert config.interval_seconds == 0.5
    assert config.volatility_floor == 0.00001
