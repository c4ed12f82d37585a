"""Request pacing: humanized delays and progressive backoff on rate limiting."""

import math
import random
import time

MIN_DELAY_MS = 200
# ±40% of the base; the Gaussian is scaled so this is two standard deviations
VARIANCE_FACTOR = 0.4
MAX_BACKOFF_MULTIPLIER = 8


def compute_delay(base_ms: int, randomize: bool, *, rng: random.Random | None = None) -> int:
    """
    Delay in milliseconds before the next request.

    Fixed mode returns base_ms unchanged. Randomized mode adds bell-curve jitter
    (Box-Muller from two uniform draws, stddev 0.2 * base), clamped to ±40% of
    base_ms and floored at MIN_DELAY_MS.
    """
    if not randomize:
        return base_ms
    rng = rng or random
    variance = int(base_ms * VARIANCE_FACTOR)
    # 1 - random() is in (0, 1], so log() never sees zero
    u1 = 1.0 - rng.random()
    u2 = rng.random()
    gaussian = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    jitter = int(gaussian * variance / 2)
    jitter = max(-variance, min(variance, jitter))
    return max(MIN_DELAY_MS, base_ms + jitter)


def polite_sleep(delay_ms: int) -> None:
    """Sleep for delay_ms milliseconds (no-op for non-positive values)."""
    if delay_ms > 0:
        time.sleep(delay_ms / 1000.0)


class Backoff:
    """Consecutive rate-limit counter and the multiplier it implies for the base delay."""

    def __init__(self, base_ms: int) -> None:
        self.base_ms = base_ms
        self.consecutive_errors = 0
        self.multiplier = 1

    def record_rate_limit(self) -> int:
        """Register one rate-limit response; return the escalated wait in milliseconds."""
        self.consecutive_errors += 1
        self.multiplier = min(self.consecutive_errors * 2, MAX_BACKOFF_MULTIPLIER)
        return self.base_ms * self.multiplier

    def reset(self) -> None:
        self.consecutive_errors = 0
        self.multiplier = 1
