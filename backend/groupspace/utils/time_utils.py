"""Time utilities."""

import time


def get_timestamp_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)
