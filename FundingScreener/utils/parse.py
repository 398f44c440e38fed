import math
from typing import Optional


def safe_float(x) -> Optional[float]:
    """Upstream numbers arrive as str, int, float or not at all; anything non-finite is None."""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, str):
        x = x.strip()
        if not x:
            return None
    try:
        n = float(x)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def safe_str(x) -> str:
    if x is None:
        return ""
    return str(x).strip()


def field(item, key, default=None):
    # payload items are not guaranteed to be dicts
    if isinstance(item, dict):
        return item.get(key, default)
    return default
