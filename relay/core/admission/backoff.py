"""
Backoff policy for LLM retries.

Exponential backoff with an explicit cap and an auditable retry budget:
the delay before retry k (1-based) is base * multiplier ** (k - 1),
never more than base * multiplier ** retries. Jitter only lengthens delays,
so the sum of delays is a hard lower bound on time spent retrying.
"""
import random
from dataclasses import dataclass
from typing import Callable, Iterator

from ..config import DispatchConfig


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry budget and delay schedule."""
    retries: int = 3
    base: float = 1.0
    multiplier: float = 2.0
    jitter: float = 0.0

    @classmethod
    def from_config(cls, cfg: DispatchConfig) -> "BackoffPolicy":
        return cls(
            retries=cfg.retries,
            base=cfg.backoff_base,
            multiplier=cfg.backoff_multiplier,
            jitter=cfg.jitter,
        )

    @property
    def cap(self) -> float:
        return self.base * (self.multiplier ** self.retries)

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay(self, retry: int, rand: Callable[[], float] = random.random) -> float:
        """Seconds to wait before retry number `retry` (1-based)."""
        if retry < 1 or retry > self.retries:
            raise ValueError(f"retry must be in 1..{self.retries}, got {retry}")
        delay = min(self.base * (self.multiplier ** (retry - 1)), self.cap)
        if self.jitter:
            delay *= 1 + self.jitter * rand()
        return delay

    def schedule(self) -> Iterator[float]:
        """Jitter-free delays for every retry, in order."""
        for retry in range(1, self.retries + 1):
            yield min(self.base * (self.multiplier ** (retry - 1)), self.cap)
