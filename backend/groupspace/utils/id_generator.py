"""ID generation utilities."""

import random
import string
import time


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix.

    Format: {prefix}-{epoch_ms}-{random_6chars}
    Example: folder-1718000000000-k3f9a1
    """
    timestamp = int(time.time() * 1000)
    random_part = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))

    if prefix:
        return f"{prefix}-{timestamp}-{random_part}"
    return f"{timestamp}-{random_part}"
