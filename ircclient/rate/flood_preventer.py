"""Token-bucket limiter for outbound protocol lines."""

from __future__ import annotations

import time
from collections.abc import Callable

from ..constants import FLOOD_COUNTER_PERIOD, FLOOD_MAX_BURST

# Float slack so a refill landing exactly on the period boundary counts
_EPSILON = 1e-9


class FloodPreventer:
    """Allows ``max_burst`` lines back-to-back, then one per ``counter_period``.

    The bucket starts full and regains one token every ``counter_period``
    seconds up to ``max_burst``. ``clock`` must be monotonic.
    """

    def __init__(
        self,
        max_burst: int = FLOOD_MAX_BURST,
        counter_period: float = FLOOD_COUNTER_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_burst < 1:
            raise ValueError("max_burst must be at least 1")
        if counter_period < 0:
            raise ValueError("counter_period must not be negative")
        self.max_burst = max_burst
        self.counter_period = counter_period
        self._clock = clock
        self._tokens = float(max_burst)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._last_refill = now
        if self.counter_period == 0:
            self._tokens = float(self.max_burst)
            return
        self._tokens = min(
            float(self.max_burst), self._tokens + elapsed / self.counter_period
        )

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def get_send_delay(self) -> float:
        """Seconds to wait before the next line may be written (0 if now)."""
        self._refill()
        if self._tokens >= 1.0 - _EPSILON:
            return 0.0
        return (1.0 - self._tokens) * self.counter_period

    def message_sent(self) -> None:
        self._refill()
        self._tokens = max(0.0, self._tokens - 1.0)

    def reset(self) -> None:
        self._tokens = float(self.max_burst)
        self._last_refill = self._clock()

    def snapshot(self) -> dict[str, object]:
        """Return a serializable snapshot of limiter state for debugging."""
        return {
            "max_burst": self.max_burst,
            "counter_period": self.counter_period,
            "tokens": round(self.tokens, 3),
        }
