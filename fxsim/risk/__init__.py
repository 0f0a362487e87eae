"""Stop-loss / take-profit risk engine."""

from .drag import DragResolver, DragTarget, DragUpdate
from .manager import PositionRiskManager
from .models import (
    DraftLevel,
    DraftPlacement,
    DraftPosition,
    LevelKind,
    MutationStatus,
    Position,
    RejectionReason,
    RiskLevel,
    RiskLevelSet,
    RiskUpdate,
    Side,
    normalize_kind,
    normalize_side,
)
from .pricing import (
    is_valid_level_price,
    level_price_from_percent,
    normalize_trade_lots,
    percent_from_level_price,
    percent_to_slider,
    slider_to_percent,
)

__all__ = [
    "DragResolver",
    "DragTarget",
    "DragUpdate",
    "DraftLevel",
    "DraftPlacement",
    "DraftPosition",
    "LevelKind",
    "MutationStatus",
    "Position",
    "PositionRiskManager",
    "RejectionReason",
    "RiskLevel",
    "RiskLevelSet",
    "RiskUpdate",
    "Side",
    "is_valid_level_price",
    "level_price_from_percent",
    "normalize_kind",
    "normalize_side",
    "normalize_trade_lots",
    "percent_from_level_price",
    "percent_to_slider",
    "slider_to_percent",
]
