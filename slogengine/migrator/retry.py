import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet


@dataclass(frozen=True)
class RetryPolicy:
    """How image downloads are retried: linear backoff, bounded attempts."""

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    non_retryable_statuses: FrozenSet[int] = frozenset({403, 404})
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed ``attempt`` (1-based): 1s, 2s, 3s, ..."""
        return self.backoff_seconds * attempt

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code not in self.non_retryable_statuses

    def wait(self, attempt: int) -> None:
        self.sleep(self.delay_for(attempt))
