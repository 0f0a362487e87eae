"""Risk level models for simulated positions."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class LevelKind(str, Enum):
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


class MutationStatus(str, Enum):
    APPLIED = "APPLIED"
    REJECTED = "REJECTED"
    NO_OP = "NO_OP"


def normalize_side(side: str | Side) -> Side:
    if isinstance(side, Side):
        return side
    normalized = {
        "buy": Side.BUY,
        "long": Side.BUY,
        "sell": Side.SELL,
        "short": Side.SELL,
    }.get(str(side).strip().lower())
    if normalized is None:
        raise ValueError("side must be buy/long or sell/short")
    return normalized


def normalize_kind(kind: str | LevelKind) -> LevelKind:
    if isinstance(kind, LevelKind):
        return kind
    normalized = {
        "sl": LevelKind.STOP_LOSS,
        "stop_loss": LevelKind.STOP_LOSS,
        "tp": LevelKind.TAKE_PROFIT,
        "take_profit": LevelKind.TAKE_PROFIT,
    }.get(str(kind).strip().lower())
    if normalized is None:
        raise ValueError("kind must be sl/stop_loss or tp/take_profit")
    return normalized


@dataclass
class RiskLevel:
    id: str
    price: float
    lots: float
    locked: bool = False


@dataclass
class RiskLevelSet:
    kind: LevelKind
    levels: list[RiskLevel] = field(default_factory=list)

    def find(self, level_id: str) -> RiskLevel | None:
        for level in self.levels:
            if level.id == level_id:
                return level
        return None

    def total_lots(self, exclude: str | None = None) -> float:
        return sum(level.lots for level in self.levels if level.id != exclude)

    def __iter__(self):
        return iter(self.levels)

    def __len__(self) -> int:
        return len(self.levels)


@dataclass
class Position:
    id: str
    side: Side
    lots: float
    entry_price: float
    stop_loss: RiskLevelSet = field(default_factory=lambda: RiskLevelSet(LevelKind.STOP_LOSS))
    take_profit: RiskLevelSet = field(default_factory=lambda: RiskLevelSet(LevelKind.TAKE_PROFIT))
    position_locked: bool = False
    opened_at: str | None = None

    def levels_for(self, kind: LevelKind) -> RiskLevelSet:
        if kind == LevelKind.STOP_LOSS:
            return self.stop_loss
        return self.take_profit


@dataclass
class DraftLevel:
    """Preview level stored as a percent distance from the entry price."""

    percent: float


@dataclass
class DraftPosition:
    side: Side
    lots: float
    entry_price: float
    stop_loss: list[DraftLevel] = field(default_factory=list)
    take_profit: list[DraftLevel] = field(default_factory=list)

    def levels_for(self, kind: LevelKind) -> list[DraftLevel]:
        if kind == LevelKind.STOP_LOSS:
            return self.stop_loss
        return self.take_profit


@dataclass(frozen=True)
class RejectionReason:
    code: str
    message: str
    details: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class RiskUpdate:
    status: MutationStatus
    position: Position | None = None
    level: RiskLevel | None = None
    reason: RejectionReason | None = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED


@dataclass(frozen=True)
class DraftPlacement:
    """Outcome of placing the draft: the opened position and any level that did not attach."""

    position: Position
    skipped: list[RiskUpdate] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped
