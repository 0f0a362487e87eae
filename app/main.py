import asyncio

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from app.config import (
    DATA_SOURCE,
    DATA_SOURCES,
    DRAG_TOLERANCE,
    FOREX_PAIR,
    LOGS_DIR,
    MAX_SEED_BAR_COUNT,
    POLYGON_API_KEY,
    POLYGON_TICKER,
    SEED_BAR_COUNT,
)
from app.models import (
    DragHit,
    DragMove,
    DragTargetIn,
    LevelIn,
    LotsUpdate,
    OpenPositionRequest,
    PositionLock,
    PreviewRequest,
    PriceUpdate,
    bar_out,
    draft_out,
    position_out,
    tick_out,
    update_out,
)
from app.utils.time import unix_seconds
from fxsim.logging_utils import log_line
from fxsim.market import (
    BarAggregator,
    FeedConfig,
    MarketFeed,
    PriceProcess,
    Tick,
    TransportFailure,
    create_live_feed,
    create_tick_generator,
    fetch_polygon_m5_bars,
    generate_bars,
)
from fxsim.risk import DragResolver, DragTarget, PositionRiskManager

app = FastAPI()

FEED_CONFIG = FeedConfig.from_env()
FEED_LOG = LOGS_DIR / "feed.log"

manager = PositionRiskManager(log_dir=LOGS_DIR)
drag = DragResolver(manager)


@app.on_event("startup")
def _startup() -> None:
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


def _response(accepted: bool, reason: str, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {"ok": True, "accepted": accepted, "reason": reason}
    payload.update(extra)
    return payload


def _source(source: str | None) -> str:
    value = source or DATA_SOURCE
    if value not in DATA_SOURCES:
        raise HTTPException(status_code=400, detail="source must be simulated or live")
    return value


def _bar_count(count: int | None) -> int:
    value = SEED_BAR_COUNT if count is None else count
    if value < 0 or value > MAX_SEED_BAR_COUNT:
        raise HTTPException(status_code=400, detail=f"count must be within 0..{MAX_SEED_BAR_COUNT}")
    return value


@app.get("/status")
def status() -> dict[str, object]:
    return {
        "data_source": DATA_SOURCE,
        "live_configured": POLYGON_API_KEY is not None,
        "pair": FOREX_PAIR,
        "open_positions": len(manager.positions),
        "draft": manager.draft is not None,
        "dragging": drag.active,
    }


@app.get("/bars")
async def bars(count: int | None = None, source: str | None = None) -> dict[str, object]:
    count = _bar_count(count)
    if _source(source) == "live":
        if POLYGON_API_KEY is None:
            return _response(False, "live_not_configured", bars=[])
        try:
            history = await fetch_polygon_m5_bars(POLYGON_TICKER, count, POLYGON_API_KEY)
        except TransportFailure as exc:
            log_line(f"[api] live bars unavailable: {exc}", FEED_LOG)
            return _response(False, "transport_failure", bars=[])
        return _response(True, "live", bars=[bar_out(bar) for bar in history])
    history = generate_bars(count, FEED_CONFIG, now=unix_seconds())
    return _response(True, "simulated", bars=[bar_out(bar) for bar in history])


@app.websocket("/ws/ticks")
async def ticks(websocket: WebSocket, source: str | None = None, count: int | None = None) -> None:
    await websocket.accept()
    try:
        feed_source = _source(source)
        bar_count = _bar_count(count)
    except HTTPException as exc:
        await websocket.close(code=1008, reason=str(exc.detail))
        return

    aggregator = BarAggregator()
    feed: MarketFeed
    if feed_source == "live":
        feed = create_live_feed(FOREX_PAIR, POLYGON_API_KEY, log_path=FEED_LOG)
        await websocket.send_json({"type": "history", "bars": []})
    else:
        process = PriceProcess(FEED_CONFIG)
        history = generate_bars(bar_count, now=unix_seconds(), process=process)
        await websocket.send_json({"type": "history", "bars": [bar_out(bar) for bar in history]})
        feed = create_tick_generator(process=process, start_time=unix_seconds())

    latest: asyncio.Queue = asyncio.Queue(maxsize=1)

    def on_tick(tick: Tick) -> None:
        previous_time = aggregator.last_time
        bar = aggregator.apply_tick(tick)
        manager.reprice_draft(tick.price)
        message = {
            "type": "tick",
            "tick": tick_out(tick),
            "bar": bar_out(bar),
            "new_bar": previous_time is None or bar.time > previous_time,
        }
        if latest.full():
            latest.get_nowait()
        latest.put_nowait(message)

    async def _pump() -> None:
        while True:
            await websocket.send_json(await latest.get())

    feed.subscribe(on_tick)
    pump = asyncio.create_task(_pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        feed.stop()
        pump.cancel()


@app.post("/preview")
def preview(payload: PreviewRequest) -> dict[str, object]:
    draft = manager.preview(
        payload.side,
        payload.lots,
        payload.price,
        stop_loss_percents=payload.stop_loss_percents,
        take_profit_percents=payload.take_profit_percents,
    )
    return _response(True, "preview", draft=draft_out(draft, manager))


@app.post("/preview/place")
def place_preview() -> dict[str, object]:
    drag.cancel()
    placement = manager.place_draft()
    if placement is None:
        return _response(False, "no_preview")
    return _response(
        True,
        "placed" if placement.complete else "placed_partial",
        position=position_out(placement.position),
        skipped=[update_out(update) for update in placement.skipped],
    )


@app.post("/positions")
def open_position(payload: OpenPositionRequest) -> dict[str, object]:
    position = manager.open_position(
        payload.side,
        payload.lots,
        payload.entry_price,
        stop_loss=[(level.price, level.lots) for level in payload.stop_loss],
        take_profit=[(level.price, level.lots) for level in payload.take_profit],
    )
    return _response(True, "placed", position=position_out(position))


@app.get("/positions")
def positions() -> dict[str, object]:
    return {"positions": [position_out(position) for position in manager.open_positions()]}


@app.delete("/positions/{position_id}")
def close_position(position_id: str) -> dict[str, object]:
    return update_out(manager.close_position(position_id))


@app.post("/positions/{position_id}/lock")
def lock_position(position_id: str, payload: PositionLock) -> dict[str, object]:
    return update_out(manager.toggle_position_lock(position_id, payload.locked))


@app.post("/positions/{position_id}/{kind}")
def add_level(position_id: str, kind: str, payload: LevelIn) -> dict[str, object]:
    return update_out(manager.add_level(position_id, _kind(kind), payload.price, payload.lots))


@app.delete("/positions/{position_id}/{kind}/{level_id}")
def remove_level(position_id: str, kind: str, level_id: str) -> dict[str, object]:
    return update_out(manager.remove_level(position_id, _kind(kind), level_id))


@app.patch("/positions/{position_id}/{kind}/{level_id}/lots")
def update_lots(position_id: str, kind: str, level_id: str, payload: LotsUpdate) -> dict[str, object]:
    return update_out(manager.update_lots(position_id, _kind(kind), level_id, payload.lots))


@app.patch("/positions/{position_id}/{kind}/{level_id}/price")
def update_price(position_id: str, kind: str, level_id: str, payload: PriceUpdate) -> dict[str, object]:
    if payload.slider is not None:
        update = manager.update_price_from_slider(position_id, _kind(kind), level_id, payload.slider)
    elif payload.price is not None:
        update = manager.update_price(position_id, _kind(kind), level_id, payload.price)
    else:
        raise HTTPException(status_code=422, detail="price or slider required")
    return update_out(update)


@app.post("/positions/{position_id}/{kind}/{level_id}/lock")
def toggle_lock(position_id: str, kind: str, level_id: str) -> dict[str, object]:
    return update_out(manager.toggle_lock(position_id, _kind(kind), level_id))


@app.post("/drag/hit")
def drag_hit(payload: DragHit) -> dict[str, object]:
    target = drag.hit_test(payload.price, payload.tolerance or DRAG_TOLERANCE)
    if target is None:
        return _response(False, "no_target")
    return _response(True, "hit", target=_target_out(target))


@app.post("/drag/begin")
def drag_begin(payload: DragTargetIn) -> dict[str, object]:
    if payload.trade_id == "preview":
        if payload.level_index is None:
            raise HTTPException(status_code=422, detail="level_index required for preview targets")
        target = DragTarget.preview(payload.kind, payload.level_index)
    else:
        if payload.level_id is None:
            raise HTTPException(status_code=422, detail="level_id required for placed targets")
        target = DragTarget.placed(payload.trade_id, payload.kind, payload.level_id)
    if not drag.begin(target):
        return _response(False, "not_draggable")
    return _response(True, "dragging", target=_target_out(target))


@app.post("/drag/move")
def drag_move(payload: DragMove) -> dict[str, object]:
    moved = drag.move(payload.price)
    if moved is None:
        return _response(False, "not_dragging")
    return _response(True, "moved", target=_target_out(moved.target), price=moved.price, committed=moved.committed)


@app.post("/drag/end")
def drag_end() -> dict[str, object]:
    update = drag.end()
    if update is None:
        return _response(True, "released")
    return _response(update.ok, "committed" if update.ok else "rejected", update=update_out(update))


@app.post("/drag/cancel")
def drag_cancel() -> dict[str, object]:
    drag.cancel()
    return _response(True, "cancelled")


def _kind(kind: str) -> str:
    if kind not in {"sl", "tp", "stop_loss", "take_profit"}:
        raise HTTPException(status_code=404, detail="unknown level kind")
    return kind


def _target_out(target: DragTarget) -> dict[str, object]:
    return {
        "trade_id": target.trade_id,
        "kind": target.kind.value,
        "level_id": target.level_id,
        "level_index": target.level_index,
    }
