import math

from fxsim.market.config import FeedConfig
from fxsim.market.models import Regime, RegimeKind
from fxsim.market.regime import PriceProcess, sample_regime, seeded_uniform, standard_normal, step
from fxsim.rounding import round_price


def _scripted(values):
    draws = iter(values)
    return lambda: next(draws)


def _z_draws(z: float) -> list[float]:
    """Uniform pair that Box-Muller maps to ``z`` (z >= 0)."""
    return [1.0 - math.exp(-(z * z) / 2.0), 0.0]


def test_sample_regime_range():
    config = FeedConfig()
    regime = sample_regime(_scripted([0.1, 0.9, 0.5, 0.5, 0.0]), config.regimes)
    assert regime.kind == RegimeKind.RANGE
    assert regime.drift == 0.0
    assert math.isclose(regime.volatility, 0.000020)
    assert regime.ticks_remaining == 60


def test_sample_regime_trend_negative_drift():
    config = FeedConfig()
    regime = sample_regime(_scripted([0.8, 0.2, 0.5, 0.0, 0.999]), config.regimes)
    assert regime.kind == RegimeKind.TREND
    assert math.isclose(regime.drift, -0.000005)
    assert math.isclose(regime.volatility, 0.000015)
    assert regime.ticks_remaining == 120


def test_sample_regime_spike():
    config = FeedConfig()
    regime = sample_regime(_scripted([0.97, 0.7, 1.0, 1.0, 0.5]), config.regimes)
    assert regime.kind == RegimeKind.SPIKE
    assert regime.drift > 0
    assert 3 <= regime.ticks_remaining <= 10


def test_standard_normal_box_muller():
    assert math.isclose(standard_normal(_scripted(_z_draws(1.0))), 1.0)
    assert math.isclose(standard_normal(_scripted(_z_draws(2.0))), 2.0)
    assert standard_normal(_scripted([0.0, 0.0])) == 0.0


def test_range_step_pulls_toward_base():
    config = FeedConfig(base_price=1.08, mean_reversion=0.1)
    regime = Regime(kind=RegimeKind.RANGE, drift=0.0, volatility=0.0, ticks_remaining=5)
    price = step(1.09, regime, config, _scripted(_z_draws(1.0)))
    assert price == 1.089
    assert regime.ticks_remaining == 4
    assert regime.volatility == config.volatility_floor


def test_trend_step_applies_drift_without_reversion():
    config = FeedConfig(mean_reversion=0.5)
    regime = Regime(kind=RegimeKind.TREND, drift=0.0001, volatility=0.0, ticks_remaining=5)
    assert step(1.08, regime, config, _scripted(_z_draws(1.0))) == 1.0801


def test_step_clamps_move_per_tick():
    config = FeedConfig(max_move_per_tick=0.0005)
    regime = Regime(kind=RegimeKind.SPIKE, drift=0.01, volatility=0.0, ticks_remaining=5)
    assert step(1.08, regime, config, _scripted(_z_draws(0.0))) == 1.0805


def test_volatility_clusters_toward_realized_noise():
    config = FeedConfig(volatility_floor=0.0)
    regime = Regime(kind=RegimeKind.TREND, drift=0.0, volatility=0.0001, ticks_remaining=5)
    step(1.08, regime, config, _scripted(_z_draws(2.0)))
    assert math.isclose(regime.volatility, 0.9 * 0.0001 + 0.1 * 0.0002)


def test_step_stays_within_bounds():
    config = FeedConfig(min_price=1.05, max_price=1.15, mean_reversion=0.0, max_move_per_tick=0.01)
    for seed in range(10):
        uniform = seeded_uniform(seed)
        for start in (1.05, 1.15):
            price = start
            regime = Regime(kind=RegimeKind.SPIKE, drift=0.002, volatility=0.005, ticks_remaining=10_000)
            for _ in range(500):
                price = step(price, regime, config, uniform)
                assert config.min_price <= price <= config.max_price


def test_prices_have_five_digits():
    process = PriceProcess(FeedConfig(), seeded_uniform(3))
    for _ in range(1000):
        price = process.advance()
        assert round_price(price) == price


def test_same_seed_same_path():
    first = PriceProcess(FeedConfig(), seeded_uniform(42))
    second = PriceProcess(FeedConfig(), seeded_uniform(42))
    assert [first.advance() for _ in range(2000)] == [second.advance() for _ in range(2000)]


def test_expired_regime_is_resampled():
    process = PriceProcess(FeedConfig(), seeded_uniform(1))
    process.regime.ticks_remaining = 1
    process.advance()
    expired = process.regime
    assert expired.expired
    process.advance()
    assert process.regime is not expired
    assert process.regime.ticks_remaining >= 2


def test_round_price_half_away_from_zero():
    assert round_price(1.000005) == 1.00001
    assert round_price(-1.000005) == -1.00001
    assert round_price(1.234564) == 1.23456
