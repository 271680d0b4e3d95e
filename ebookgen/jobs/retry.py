"""
Retry classification and backoff for page generation failures.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

# Case-sensitive substrings that mark a failure as transient
TRANSIENT_ERROR_MARKERS: Tuple[str, ...] = (
    "timeout",
    "rate limit",
    "temporary",
    "network",
)


@dataclass
class RetryPolicy:
    """
    Decides whether a failed generation is retried and how long to wait.

    The delay grows linearly with the attempt number: attempt 0 is retried
    after 5s, attempt 1 after 10s, attempt 2 after 15s.
    """
    max_retries: int = 3
    base_delay_seconds: float = 5.0

    @staticmethod
    def is_transient(error: BaseException) -> bool:
        message = str(error)
        return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)

    def should_retry(
        self,
        error: BaseException,
        attempt_number: int,
        max_retries: Optional[int] = None
    ) -> bool:
        """
        Args:
            error: The failure raised by the attempt
            attempt_number: Zero-based number of the attempt that failed
            max_retries: Retry ceiling, defaults to the policy's own
        """
        ceiling = self.max_retries if max_retries is None else max_retries
        return attempt_number < ceiling and self.is_transient(error)

    def backoff_delay(self, attempt_number: int) -> float:
        """Seconds to wait before retrying after attempt `attempt_number` failed."""
        return self.base_delay_seconds * (attempt_number + 1)
