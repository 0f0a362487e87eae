"""Logging helpers for the feed and risk engine."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def log_line(msg: str, path: str | Path | None = "logs/fxsim.log") -> None:
    print(msg)
    if path is None:
        return
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(msg + "\n")


def log_event(event: dict[str, Any], path: str | Path) -> None:
    """Append one JSON event per line."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(event, ensure_ascii=False, default=str))
        handle.write("\n")
