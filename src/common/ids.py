import time


def generate_id() -> str:
    """Millisecond wall-clock id, unique enough for a single local writer."""
    return str(time.time_ns() // 1_000_000)
