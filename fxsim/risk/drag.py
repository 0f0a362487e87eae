"""Resolve chart drags of SL/TP lines into risk level updates.

The chart converts pointer coordinates to prices before anything reaches
this module. Draft (preview) levels follow the pointer with no validation;
placed levels move optimistically and only the released price is committed
through ``PositionRiskManager.update_price``.
"""
from __future__ import annotations

from dataclasses import dataclass

from .manager import PositionRiskManager
from .models import LevelKind, MutationStatus, RejectionReason, RiskUpdate, normalize_kind

PREVIEW = "preview"


@dataclass(frozen=True)
class DragTarget:
    kind: LevelKind
    trade_id: str
    level_id: str | None = None
    level_index: int | None = None

    @classmethod
    def preview(cls, kind: LevelKind | str, level_index: int) -> "DragTarget":
        return cls(kind=normalize_kind(kind), trade_id=PREVIEW, level_index=level_index)

    @classmethod
    def placed(cls, trade_id: str, kind: LevelKind | str, level_id: str) -> "DragTarget":
        return cls(kind=normalize_kind(kind), trade_id=trade_id, level_id=level_id)

    @property
    def is_preview(self) -> bool:
        return self.trade_id == PREVIEW


@dataclass(frozen=True)
class DragUpdate:
    target: DragTarget
    price: float
    committed: bool = False


class DragResolver:
    def __init__(self, manager: PositionRiskManager) -> None:
        self.manager = manager
        self.target: DragTarget | None = None
        self.pending_price: float | None = None

    @property
    def active(self) -> bool:
        return self.target is not None

    def _is_draggable(self, target: DragTarget) -> bool:
        if target.is_preview:
            if target.level_index is None:
                return False
            return self.manager.draft_level_price(target.kind, target.level_index) is not None
        position = self.manager.get(target.trade_id)
        if position is None or target.level_id is None:
            return False
        level = position.levels_for(target.kind).find(target.level_id)
        return level is not None and not level.locked

    def hit_test(self, price: float, tolerance: float) -> DragTarget | None:
        """Nearest draggable line within ``tolerance`` of ``price``; draft lines win ties."""
        best: DragTarget | None = None
        best_distance = tolerance
        draft = self.manager.draft
        if draft is not None:
            for kind in (LevelKind.STOP_LOSS, LevelKind.TAKE_PROFIT):
                for index in range(len(draft.levels_for(kind))):
                    distance = abs(self.manager.draft_level_price(kind, index) - price)
                    if distance <= best_distance and (best is None or distance < best_distance):
                        best, best_distance = DragTarget.preview(kind, index), distance
        for position in self.manager.open_positions():
            for kind in (LevelKind.STOP_LOSS, LevelKind.TAKE_PROFIT):
                for level in position.levels_for(kind):
                    if level.locked:
                        continue
                    distance = abs(level.price - price)
                    if distance <= best_distance and (best is None or distance < best_distance):
                        best, best_distance = DragTarget.placed(position.id, kind, level.id), distance
        return best

    def begin(self, target: DragTarget) -> bool:
        if not self._is_draggable(target):
            return False
        self.target = target
        self.pending_price = None
        return True

    def move(self, price: float) -> DragUpdate | None:
        target = self.target
        if target is None:
            return None
        if target.is_preview:
            applied = self.manager.set_draft_level_price(target.kind, target.level_index, price)
            if applied is None:
                self.cancel()
                return None
            return DragUpdate(target=target, price=applied)
        self.pending_price = price
        return DragUpdate(target=target, price=price)

    def end(self) -> RiskUpdate | None:
        """Release the drag; placed targets commit the last moved price."""
        target, price = self.target, self.pending_price
        self.cancel()
        if target is None or target.is_preview or price is None:
            return None
        position = self.manager.get(target.trade_id)
        level = position.levels_for(target.kind).find(target.level_id) if position is not None else None
        if level is not None and level.locked:
            return RiskUpdate(
                MutationStatus.NO_OP,
                position,
                level,
                RejectionReason(code="level_locked", message="Level was locked during the drag"),
            )
        return self.manager.update_price(target.trade_id, target.kind, target.level_id, price)

    def cancel(self) -> None:
        self.target = None
        self.pending_price = None
