"""Live EURUSD feed from Polygon.io.

Streams per-second forex aggregates (``CAS.<pair>``) over a websocket and
fetches recent 5-minute bars over REST. Without an API key the stream is
permanently empty; connection, authentication and parse failures degrade to
"no ticks" instead of reaching the subscriber.
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
import time
from typing import Any, Callable, Iterable

import httpx
import websockets
from websockets.exceptions import WebSocketException

from fxsim.logging_utils import log_line

from .feed import MarketFeed, TickCallback, TransportFailure
from .models import Bar, Tick, bucket_time

POLYGON_API_BASE = "https://api.polygon.io"
POLYGON_FOREX_WS_URL = "wss://socket.polygon.io/forex"
M5_LOOKBACK_SECONDS = 7 * 24 * 60 * 60


def _decode(raw: str | bytes) -> list[dict[str, Any]]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return []
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        return [data]
    return []


def parse_aggregate(msg: dict[str, Any]) -> Tick | None:
    """Turn a CAS message into a tick; anything else yields None."""
    if msg.get("ev") != "CAS":
        return None
    start_ms = msg.get("s")
    close = msg.get("c")
    if isinstance(start_ms, bool) or isinstance(close, bool):
        return None
    if not isinstance(start_ms, (int, float)) or not isinstance(close, (int, float)):
        return None
    return Tick(time=int(start_ms // 1000), price=float(close))


class PolygonForexFeed(MarketFeed):
    """Websocket adapter with the same subscribe/stop shape as the generator."""

    def __init__(
        self,
        pair: str,
        api_key: str | None = None,
        *,
        url: str = POLYGON_FOREX_WS_URL,
        connect: Callable[..., Any] = websockets.connect,
        log_path: str | Path | None = "logs/feed.log",
    ) -> None:
        self.pair = pair
        self.api_key = (api_key or "").strip()
        self.url = url
        self._connect = connect
        self._on_tick: TickCallback | None = None
        self._task: asyncio.Task | None = None
        self._log_path = log_path

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def subscribe(self, on_tick: TickCallback) -> None:
        self._on_tick = on_tick
        if not self.enabled:
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        self._on_tick = None
        task, self._task = self._task, None
        if task is not None:
            task.cancel()

    async def _run(self) -> None:
        try:
            await self._stream()
        except TransportFailure as exc:
            log_line(f"[polygon] {self.pair} transport failure: {exc}", self._log_path)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            log_line(f"[polygon] {self.pair} connection lost: {exc!r}", self._log_path)

    async def _stream(self) -> None:
        async with self._connect(self.url) as ws:
            await ws.send(json.dumps({"action": "auth", "params": self.api_key}))
            subscribed = False
            async for raw in ws:
                for msg in _decode(raw):
                    status = msg.get("status")
                    if status == "auth_success" and not subscribed:
                        subscribed = True
                        await ws.send(json.dumps({"action": "subscribe", "params": f"CAS.{self.pair}"}))
                        log_line(f"[polygon] subscribed CAS.{self.pair}", self._log_path)
                        continue
                    if status == "auth_failed":
                        raise TransportFailure(msg.get("message") or "authentication failed")
                    tick = parse_aggregate(msg)
                    on_tick = self._on_tick
                    if tick is not None and on_tick is not None:
                        on_tick(tick)


def create_live_feed(
    pair: str,
    api_key: str | None,
    *,
    log_path: str | Path | None = "logs/feed.log",
) -> PolygonForexFeed:
    return PolygonForexFeed(pair, api_key, log_path=log_path)


def _bars_from_results(results: Iterable[dict[str, Any]]) -> list[Bar]:
    bars: list[Bar] = []
    for row in results:
        try:
            bars.append(
                Bar(
                    time=bucket_time(int(row["t"]) // 1000),
                    open=float(row["o"]),
                    high=float(row["h"]),
                    low=float(row["l"]),
                    close=float(row["c"]),
                )
            )
        except (KeyError, TypeError, ValueError):
            continue
    return bars


async def fetch_polygon_m5_bars(
    ticker: str,
    count: int,
    api_key: str,
    *,
    client: httpx.AsyncClient | None = None,
    now: float | None = None,
) -> list[Bar]:
    """Fetch the last ``count`` 5-minute bars, oldest first.

    Looks back seven days and asks for the newest bars first, so closed
    markets still return the most recent quotes.
    """
    to_ms = int((now if now is not None else time.time()) * 1000)
    from_ms = to_ms - M5_LOOKBACK_SECONDS * 1000
    url = f"{POLYGON_API_BASE}/v2/aggs/ticker/{ticker}/range/5/minute/{from_ms}/{to_ms}"
    params = {"apiKey": api_key, "sort": "desc", "limit": count}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=10.0) as owned:
                response = await owned.get(url, params=params)
        else:
            response = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise TransportFailure(f"Polygon REST request failed: {exc}") from exc
    if response.status_code != 200:
        raise TransportFailure(f"Polygon REST {response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        raise TransportFailure("Polygon REST returned invalid JSON") from exc
    if not isinstance(data, dict):
        raise TransportFailure("Polygon REST returned an unexpected payload")
    results = data.get("results") or []
    return list(reversed(_bars_from_results(results)))
