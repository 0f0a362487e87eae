import asyncio

from fxsim.market.config import FeedConfig
from fxsim.market.generator import create_tick_generator
from fxsim.market.history import generate_bars
from fxsim.market.regime import PriceProcess, seeded_uniform


def _fast_config(**overrides) -> FeedConfig:
    values = {"interval_seconds": 0.001}
    values.update(overrides)
    return FeedConfig(**values)


def test_ticks_step_time_and_price():
    async def scenario():
        generator = create_tick_generator(_fast_config(), uniform=seeded_uniform(1), start_time=1_700_000_000)
        ticks = []
        generator.subscribe(ticks.append)
        while len(ticks) < 5:
            await asyncio.sleep(0.001)
        generator.stop()
        return ticks

    ticks = asyncio.run(scenario())
    assert [tick.time for tick in ticks[:5]] == [1_700_000_001 + i for i in range(5)]
    for tick in ticks:
        assert 1.05 <= tick.price <= 1.15


def test_stop_halts_delivery():
    async def scenario():
        generator = create_tick_generator(_fast_config(), uniform=seeded_uniform(2))
        ticks = []
        generator.subscribe(ticks.append)
        while len(ticks) < 3:
            await asyncio.sleep(0.001)
        generator.stop()
        seen = len(ticks)
        await asyncio.sleep(0.05)
        return seen, len(ticks), generator.running

    seen, after, running = asyncio.run(scenario())
    assert seen == after
    assert running is False


def test_stop_from_inside_callback():
    async def scenario():
        generator = create_tick_generator(_fast_config(), uniform=seeded_uniform(3))
        ticks = []

        def on_tick(tick):
            ticks.append(tick)
            generator.stop()

        generator.subscribe(on_tick)
        await asyncio.sleep(0.05)
        return ticks

    assert len(asyncio.run(scenario())) == 1


def test_stop_is_safe_without_subscribe_and_twice():
    generator = create_tick_generator(_fast_config())
    generator.stop()
    generator.stop()
    assert generator.running is False


def test_last_subscribe_wins(tmp_path):
    async def scenario():
        generator = create_tick_generator(
            _fast_config(), uniform=seeded_uniform(4), log_path=tmp_path / "feed.log"
        )
        first, second = [], []
        generator.subscribe(first.append)
        generator.subscribe(second.append)
        while len(second) < 3:
            await asyncio.sleep(0.001)
        generator.stop()
        return first, second

    first, second = asyncio.run(scenario())
    assert first == []
    assert [b.time - a.time for a, b in zip(second, second[1:])] == [1, 1]
    assert "subscriber replaced" in (tmp_path / "feed.log").read_text(encoding="utf-8")


def test_generator_continues_seeded_history():
    async def scenario(process):
        generator = create_tick_generator(process=process, start_time=1_700_000_000)
        ticks = []
        generator.subscribe(ticks.append)
        while not ticks:
            await asyncio.sleep(0.001)
        generator.stop()
        return ticks[0]

    process = PriceProcess(_fast_config(), seeded_uniform(6))
    bars = generate_bars(2, now=1_700_000_000, process=process)
    replay = PriceProcess(_fast_config(), seeded_uniform(6))
    for _ in range(2 * 300):
        replay.advance()
    assert replay.price == bars[-1].close

    first = asyncio.run(scenario(process))
    assert first.price == replay.advance()


def test_failing_subscriber_releases_the_timer(tmp_path):
    async def scenario():
        generator = create_tick_generator(
            _fast_config(), uniform=seeded_uniform(7), log_path=tmp_path / "feed.log"
        )

        def broken(tick):
            raise RuntimeError("chart gone")

        generator.subscribe(broken)
        while generator.running:
            await asyncio.sleep(0.001)

        ticks = []
        generator.subscribe(ticks.append)
        while len(ticks) < 2:
            await asyncio.sleep(0.001)
        generator.stop()
        return ticks

    ticks = asyncio.run(scenario())
    assert ticks[1].time == ticks[0].time + 1
    assert "subscriber failed" in (tmp_path / "feed.log").read_text(encoding="utf-8")
