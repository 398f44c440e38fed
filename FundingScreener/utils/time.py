from __future__ import annotations

from datetime import datetime, timezone

from .parse import safe_float

ISO_FMT = "%Y-%m-%dT%H:%M:%SZ"
MISSING = "-"


def now_utc(fmt: str | None = None):
    """
    Return a timezone-aware UTC timestamp.
    * If `fmt` is None      → `datetime` object.
    * If `fmt == "ms"`      → Unix epoch in **milliseconds** (int).
    * Otherwise             → formatted string via `strftime(fmt)`.
    """
    dt = datetime.now(timezone.utc)

    if fmt is None:
        return dt
    if fmt.lower() == "ms":
        return int(dt.timestamp() * 1_000)
    return dt.strftime(fmt)


def iso_utc(dt: datetime) -> str:
    """ISO-8601 UTC with second precision and a `Z` suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FMT)


def iso_from_ms(ms) -> str:
    """Millisecond epoch → ISO-8601 UTC (sub-second digits dropped), `-` if unusable."""
    n = safe_float(ms)
    if n is None:
        return MISSING
    try:
        dt = datetime.fromtimestamp(n / 1_000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return MISSING
    return dt.strftime(ISO_FMT)
