from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def unix_seconds(now: datetime | None = None) -> int:
    current = now or utc_now()
    return int(current.timestamp())
