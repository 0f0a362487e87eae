from dataclasses import asdict
from typing import Literal, Optional

from pydantic import BaseModel, Field

from fxsim.market import Bar, Tick
from fxsim.risk import DraftPosition, LevelKind, Position, PositionRiskManager, RiskUpdate

KindName = Literal["sl", "tp", "stop_loss", "take_profit"]
SideName = Literal["buy", "sell", "long", "short"]


class PreviewRequest(BaseModel):
    side: SideName
    lots: float = Field(gt=0)
    price: float = Field(gt=0)
    stop_loss_percents: list[float] = Field(default_factory=list)
    take_profit_percents: list[float] = Field(default_factory=list)


class LevelIn(BaseModel):
    price: float
    lots: float


class OpenPositionRequest(BaseModel):
    side: SideName
    lots: float = Field(gt=0)
    entry_price: float = Field(gt=0)
    stop_loss: list[LevelIn] = Field(default_factory=list)
    take_profit: list[LevelIn] = Field(default_factory=list)


class LotsUpdate(BaseModel):
    lots: float


class PriceUpdate(BaseModel):
    price: Optional[float] = None
    slider: Optional[float] = Field(default=None, ge=0, le=100)


class PositionLock(BaseModel):
    locked: bool


class DragTargetIn(BaseModel):
    trade_id: str
    kind: KindName
    level_id: Optional[str] = None
    level_index: Optional[int] = None


class DragHit(BaseModel):
    price: float
    tolerance: Optional[float] = Field(default=None, gt=0)


class DragMove(BaseModel):
    price: float


def bar_out(bar: Bar) -> dict[str, object]:
    return asdict(bar)


def tick_out(tick: Tick) -> dict[str, object]:
    return asdict(tick)


def position_out(position: Position) -> dict[str, object]:
    data = asdict(position)
    data["side"] = position.side.value
    data["stop_loss"] = data["stop_loss"]["levels"]
    data["take_profit"] = data["take_profit"]["levels"]
    return data


def draft_out(draft: DraftPosition, manager: PositionRiskManager) -> dict[str, object]:
    def _levels(kind: LevelKind) -> list[dict[str, float]]:
        return [
            {"percent": level.percent, "price": manager.draft_level_price(kind, index)}
            for index, level in enumerate(draft.levels_for(kind))
        ]

    return {
        "side": draft.side.value,
        "lots": draft.lots,
        "entry_price": draft.entry_price,
        "stop_loss": _levels(LevelKind.STOP_LOSS),
        "take_profit": _levels(LevelKind.TAKE_PROFIT),
    }


def update_out(update: RiskUpdate) -> dict[str, object]:
    payload: dict[str, object] = {
        "ok": update.ok,
        "status": update.status.value,
        "reason": update.reason.code if update.reason else None,
    }
    if update.position is not None:
        payload["position"] = position_out(update.position)
    if update.level is not None:
        payload["level"] = asdict(update.level)
    return payload
