import time

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


def now_ms() -> int:
    """Current time as integer epoch milliseconds, the unit every stored timestamp uses."""
    return int(time.time() * 1000)
