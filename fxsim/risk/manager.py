"""Position risk manager: lot allocation and price validity for SL/TP levels."""
from __future__ import annotations

from datetime import datetime, timezone
import math
from pathlib import Path
from typing import Iterable

from fxsim.logging_utils import log_event
from fxsim.rounding import round_lots

from .models import (
    DraftLevel,
    DraftPlacement,
    DraftPosition,
    LevelKind,
    MutationStatus,
    Position,
    RejectionReason,
    RiskLevel,
    RiskUpdate,
    Side,
    normalize_kind,
    normalize_side,
)
from .pricing import (
    LEVEL_LOTS_MIN,
    clamp_percent,
    is_valid_level_price,
    level_price_from_percent,
    normalize_trade_lots,
    percent_from_level_price,
    slider_to_percent,
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _no_op(code: str, message: str, position: Position | None = None, **details: object) -> RiskUpdate:
    return RiskUpdate(
        status=MutationStatus.NO_OP,
        position=position,
        reason=RejectionReason(code=code, message=message, details=dict(details)),
    )


def _rejected(code: str, message: str, position: Position, **details: object) -> RiskUpdate:
    return RiskUpdate(
        status=MutationStatus.REJECTED,
        position=position,
        reason=RejectionReason(code=code, message=message, details=dict(details)),
    )


class PositionRiskManager:
    """Owns open positions and the stop-loss / take-profit levels attached to them.

    Every mutation returns a ``RiskUpdate``. Rejected and no-op updates leave
    state untouched; nothing here raises for a refused request.
    """

    def __init__(self, log_dir: Path | None = None) -> None:
        self.positions: dict[str, Position] = {}
        self.draft: DraftPosition | None = None
        self.log_dir = log_dir
        self._position_counter = 0
        self._level_counter = 0

    @property
    def events_log_path(self) -> Path | None:
        if self.log_dir is None:
            return None
        return self.log_dir / "risk_events.jsonl"

    def _next_position_id(self) -> str:
        self._position_counter += 1
        return f"trade-{self._position_counter:06d}"

    def _next_level_id(self, kind: LevelKind) -> str:
        self._level_counter += 1
        prefix = "sl" if kind == LevelKind.STOP_LOSS else "tp"
        return f"{prefix}-{self._level_counter:06d}"

    def _record(self, action: str, update: RiskUpdate, **extra: object) -> RiskUpdate:
        path = self.events_log_path
        if path is None:
            return update
        event: dict[str, object] = {
            "timestamp": _utc_now(),
            "action": action,
            "status": update.status.value,
            "position_id": update.position.id if update.position else None,
            "level_id": update.level.id if update.level else None,
        }
        if update.reason is not None:
            event["reason"] = {"code": update.reason.code, "message": update.reason.message}
        event.update(extra)
        log_event(event, path)
        return update

    def get(self, position_id: str) -> Position | None:
        return self.positions.get(position_id)

    def open_positions(self) -> list[Position]:
        return list(self.positions.values())

    def _lookup(
        self,
        position_id: str,
        kind: LevelKind | str,
        level_id: str,
    ) -> tuple[Position | None, RiskLevel | None, RiskUpdate | None]:
        position = self.positions.get(position_id)
        if position is None:
            return None, None, _no_op("unknown_position", "Position not found", position_id=position_id)
        level = position.levels_for(normalize_kind(kind)).find(level_id)
        if level is None:
            return position, None, _no_op("unknown_level", "Risk level not found", position, level_id=level_id)
        return position, level, None

    # Positions

    def open_position(
        self,
        side: Side | str,
        lots: float,
        entry_price: float,
        *,
        stop_loss: Iterable[tuple[float, float]] = (),
        take_profit: Iterable[tuple[float, float]] = (),
    ) -> Position:
        """Open a position, optionally attaching (price, lots) levels."""
        if not math.isfinite(lots) or round_lots(lots) < LEVEL_LOTS_MIN:
            raise ValueError("lots must be at least 0.01")
        size = round_lots(lots)
        if entry_price <= 0:
            raise ValueError("entry_price must be positive")
        position = Position(
            id=self._next_position_id(),
            side=normalize_side(side),
            lots=size,
            entry_price=entry_price,
            opened_at=_utc_now(),
        )
        self.positions[position.id] = position
        self._record("open_position", RiskUpdate(MutationStatus.APPLIED, position), lots=size)
        for price, level_lots in stop_loss:
            self.add_level(position.id, LevelKind.STOP_LOSS, price, level_lots)
        for price, level_lots in take_profit:
            self.add_level(position.id, LevelKind.TAKE_PROFIT, price, level_lots)
        return position

    def close_position(self, position_id: str) -> RiskUpdate:
        position = self.positions.pop(position_id, None)
        if position is None:
            return self._record(
                "close_position",
                _no_op("unknown_position", "Position not found", position_id=position_id),
            )
        return self._record("close_position", RiskUpdate(MutationStatus.APPLIED, position))

    # Levels

    def add_level(self, position_id: str, kind: LevelKind | str, price: float, lots: float) -> RiskUpdate:
        """Attach a level, clamping its lots to the unallocated remainder."""
        kind = normalize_kind(kind)
        position = self.positions.get(position_id)
        if position is None:
            return self._record(
                "add_level",
                _no_op("unknown_position", "Position not found", position_id=position_id),
            )
        if not is_valid_level_price(position.side, kind, position.entry_price, price):
            return self._record(
                "add_level",
                _rejected("invalid_price", "Price on the wrong side of entry", position, price=price),
            )
        if not math.isfinite(lots) or lots <= 0:
            return self._record(
                "add_level",
                _rejected("invalid_lots", "Lots must be positive", position, lots=lots),
            )
        levels = position.levels_for(kind)
        remaining = round_lots(position.lots - levels.total_lots())
        if remaining < LEVEL_LOTS_MIN:
            return self._record(
                "add_level",
                _no_op("no_capacity", "Position lots fully allocated", position),
            )
        allocated = min(max(round_lots(lots), LEVEL_LOTS_MIN), remaining)
        level = RiskLevel(
            id=self._next_level_id(kind),
            price=price,
            lots=allocated,
            locked=position.position_locked,
        )
        levels.levels.append(level)
        return self._record(
            "add_level",
            RiskUpdate(MutationStatus.APPLIED, position, level),
            requested_lots=lots,
            allocated_lots=allocated,
        )

    def remove_level(self, position_id: str, kind: LevelKind | str, level_id: str) -> RiskUpdate:
        position, level, miss = self._lookup(position_id, kind, level_id)
        if miss is not None:
            return self._record("remove_level", miss)
        position.levels_for(normalize_kind(kind)).levels.remove(level)
        return self._record("remove_level", RiskUpdate(MutationStatus.APPLIED, position, level))

    def update_lots(
        self,
        position_id: str,
        kind: LevelKind | str,
        level_id: str,
        new_lots: float,
    ) -> RiskUpdate:
        """Resize a level within [0.01, lots left by the other levels]."""
        position, level, miss = self._lookup(position_id, kind, level_id)
        if miss is not None:
            return self._record("update_lots", miss)
        if level.locked:
            return self._record(
                "update_lots",
                RiskUpdate(
                    MutationStatus.NO_OP,
                    position,
                    level,
                    RejectionReason(code="level_locked", message="Level lots are locked"),
                ),
            )
        if not math.isfinite(new_lots):
            return self._record(
                "update_lots",
                _rejected("invalid_lots", "Lots must be a finite number", position, lots=new_lots),
            )
        levels = position.levels_for(normalize_kind(kind))
        capacity = round_lots(position.lots - levels.total_lots(exclude=level.id))
        level.lots = min(max(round_lots(new_lots), LEVEL_LOTS_MIN), capacity)
        return self._record(
            "update_lots",
            RiskUpdate(MutationStatus.APPLIED, position, level),
            requested_lots=new_lots,
            lots=level.lots,
        )

    def update_price(
        self,
        position_id: str,
        kind: LevelKind | str,
        level_id: str,
        new_price: float,
    ) -> RiskUpdate:
        """Move a level. Applies to locked levels too; the lock guards lots and dragging."""
        position, level, miss = self._lookup(position_id, kind, level_id)
        if miss is not None:
            return self._record("update_price", miss)
        if not is_valid_level_price(position.side, normalize_kind(kind), position.entry_price, new_price):
            update = RiskUpdate(
                MutationStatus.REJECTED,
                position,
                level,
                RejectionReason(
                    code="invalid_price",
                    message="Price on the wrong side of entry",
                    details={"price": new_price, "entry_price": position.entry_price},
                ),
            )
            return self._record("update_price", update)
        level.price = new_price
        return self._record(
            "update_price",
            RiskUpdate(MutationStatus.APPLIED, position, level),
            price=new_price,
        )

    def update_price_from_slider(
        self,
        position_id: str,
        kind: LevelKind | str,
        level_id: str,
        slider_value: float,
    ) -> RiskUpdate:
        position = self.positions.get(position_id)
        if position is None:
            return self._record(
                "update_price",
                _no_op("unknown_position", "Position not found", position_id=position_id),
            )
        price = level_price_from_percent(
            position.entry_price,
            position.side,
            normalize_kind(kind),
            slider_to_percent(slider_value),
        )
        return self.update_price(position_id, kind, level_id, price)

    def toggle_lock(self, position_id: str, kind: LevelKind | str, level_id: str) -> RiskUpdate:
        position, level, miss = self._lookup(position_id, kind, level_id)
        if miss is not None:
            return self._record("toggle_lock", miss)
        level.locked = not level.locked
        return self._record(
            "toggle_lock",
            RiskUpdate(MutationStatus.APPLIED, position, level),
            locked=level.locked,
        )

    def toggle_position_lock(self, position_id: str, locked: bool) -> RiskUpdate:
        position = self.positions.get(position_id)
        if position is None:
            return self._record(
                "toggle_position_lock",
                _no_op("unknown_position", "Position not found", position_id=position_id),
            )
        position.position_locked = locked
        for level in [*position.stop_loss, *position.take_profit]:
            level.locked = locked
        return self._record(
            "toggle_position_lock",
            RiskUpdate(MutationStatus.APPLIED, position),
            locked=locked,
        )

    # Preview

    def preview(
        self,
        side: Side | str,
        lots: float,
        current_price: float,
        *,
        stop_loss_percents: Iterable[float] = (),
        take_profit_percents: Iterable[float] = (),
    ) -> DraftPosition:
        """Replace the unplaced draft trade, priced off ``current_price``."""
        self.draft = DraftPosition(
            side=normalize_side(side),
            lots=normalize_trade_lots(lots),
            entry_price=current_price,
            stop_loss=[DraftLevel(clamp_percent(p)) for p in stop_loss_percents],
            take_profit=[DraftLevel(clamp_percent(p)) for p in take_profit_percents],
        )
        return self.draft

    def reprice_draft(self, current_price: float) -> DraftPosition | None:
        if self.draft is not None:
            self.draft.entry_price = current_price
        return self.draft

    def draft_level_price(self, kind: LevelKind | str, index: int) -> float | None:
        draft = self.draft
        if draft is None:
            return None
        kind = normalize_kind(kind)
        levels = draft.levels_for(kind)
        if not 0 <= index < len(levels):
            return None
        return level_price_from_percent(draft.entry_price, draft.side, kind, levels[index].percent)

    def set_draft_level_price(self, kind: LevelKind | str, index: int, price: float) -> float | None:
        """Move a draft level toward ``price`` without validity checks."""
        draft = self.draft
        if draft is None:
            return None
        kind = normalize_kind(kind)
        levels = draft.levels_for(kind)
        if not 0 <= index < len(levels):
            return None
        levels[index].percent = percent_from_level_price(draft.entry_price, draft.side, kind, price)
        return self.draft_level_price(kind, index)

    def place_draft(self) -> DraftPlacement | None:
        """Open the draft as a position, splitting its lots across each side's levels.

        Levels that ``add_level`` refuses (no capacity left, invalid price) are
        returned in ``skipped`` rather than dropped silently.
        """
        draft = self.draft
        if draft is None:
            return None
        position = self.open_position(draft.side, draft.lots, draft.entry_price)
        skipped: list[RiskUpdate] = []
        for kind in (LevelKind.STOP_LOSS, LevelKind.TAKE_PROFIT):
            levels = draft.levels_for(kind)
            if not levels:
                continue
            share = max(LEVEL_LOTS_MIN, round_lots(position.lots / len(levels)))
            for index in range(len(levels)):
                price = self.draft_level_price(kind, index)
                last = index == len(levels) - 1
                update = self.add_level(position.id, kind, price, position.lots if last else share)
                if not update.ok:
                    skipped.append(update)
        self.draft = None
        return DraftPlacement(position=position, skipped=skipped)
