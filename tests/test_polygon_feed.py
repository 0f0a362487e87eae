import asyncio
import json

import httpx
import pytest

from fxsim.market.feed import TransportFailure
from fxsim.market.models import Tick
from fxsim.market.polygon import PolygonForexFeed, fetch_polygon_m5_bars, parse_aggregate


class _FakeSocket:
    def __init__(self, messages):
        self.messages = list(messages)
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, data):
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


def _connect_to(socket):
    calls = []

    def connect(url):
        calls.append(url)
        return socket

    return connect, calls


def _run_feed(feed):
    async def scenario():
        ticks = []
        feed.subscribe(ticks.append)
        await asyncio.sleep(0.01)
        feed.stop()
        return ticks

    return asyncio.run(scenario())


def test_no_api_key_emits_nothing():
    connect, calls = _connect_to(_FakeSocket([]))
    feed = PolygonForexFeed("EUR-USD", None, connect=connect, log_path=None)
    assert feed.enabled is False
    assert _run_feed(feed) == []
    assert calls == []
    feed.stop()


def test_authenticates_subscribes_and_delivers_ticks():
    socket = _FakeSocket(
        [
            json.dumps([{"ev": "status", "status": "connected"}]),
            json.dumps([{"ev": "status", "status": "auth_success"}]),
            "not json",
            json.dumps([{"ev": "CAS", "pair": "EUR/USD", "s": 1_700_000_001_000, "c": 1.0812}]),
            json.dumps({"ev": "CAS", "s": "bad", "c": 1.0}),
            json.dumps([{"ev": "CAS", "s": 1_700_000_002_000, "c": 1.0813}, 42]),
        ]
    )
    connect, calls = _connect_to(socket)
    feed = PolygonForexFeed("EUR-USD", "key", url="wss://example.test/forex", connect=connect, log_path=None)
    ticks = _run_feed(feed)
    assert calls == ["wss://example.test/forex"]
    assert socket.sent == [
        {"action": "auth", "params": "key"},
        {"action": "subscribe", "params": "CAS.EUR-USD"},
    ]
    assert ticks == [Tick(time=1_700_000_001, price=1.0812), Tick(time=1_700_000_002, price=1.0813)]


def test_auth_failure_is_logged_not_raised(tmp_path):
    log_path = tmp_path / "feed.log"
    socket = _FakeSocket(
        [
            json.dumps([{"ev": "status", "status": "auth_failed", "message": "bad key"}]),
            json.dumps([{"ev": "CAS", "s": 1_700_000_001_000, "c": 1.08}]),
        ]
    )
    connect, _ = _connect_to(socket)
    feed = PolygonForexFeed("EUR-USD", "wrong", connect=connect, log_path=log_path)
    assert _run_feed(feed) == []
    assert "transport failure: bad key" in log_path.read_text(encoding="utf-8")


def test_connection_error_degrades_to_silence(tmp_path):
    log_path = tmp_path / "feed.log"

    def connect(url):
        raise OSError("unreachable")

    feed = PolygonForexFeed("EUR-USD", "key", connect=connect, log_path=log_path)
    assert _run_feed(feed) == []
    assert "connection lost" in log_path.read_text(encoding="utf-8")


def test_parse_aggregate_filters_messages():
    assert parse_aggregate({"ev": "CAS", "s": 1_700_000_000_500, "c": 1.1}) == Tick(1_700_000_000, 1.1)
    assert parse_aggregate({"ev": "CA", "s": 1, "c": 1.1}) is None
    assert parse_aggregate({"ev": "CAS", "s": True, "c": 1.1}) is None
    assert parse_aggregate({"ev": "CAS", "c": 1.1}) is None


def test_fetch_m5_bars_returns_oldest_first():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"t": 1_700_000_400_000, "o": 1.081, "h": 1.082, "l": 1.080, "c": 1.0815},
                    {"t": 1_700_000_100_000, "o": 1.080, "h": 1.081, "l": 1.079, "c": 1.081},
                    {"t": 1_700_000_100_000, "o": None},
                ]
            },
        )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_polygon_m5_bars("C:EURUSD", 2, "key", client=client, now=1_700_000_500)

    bars = asyncio.run(scenario())
    assert [bar.time for bar in bars] == [1_700_000_100, 1_700_000_400]
    assert bars[0].open == 1.080
    assert bars[-1].close == 1.0815
    assert seen["path"].startswith("/v2/aggs/ticker/")
    assert "/range/5/minute/" in seen["path"]
    assert seen["params"] == {"apiKey": "key", "sort": "desc", "limit": "2"}


def test_fetch_m5_bars_raises_on_http_error():
    def handler(request):
        return httpx.Response(500, json={"status": "ERROR"})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_polygon_m5_bars("C:EURUSD", 2, "key", client=client)

    with pytest.raises(TransportFailure):
        asyncio.run(scenario())
