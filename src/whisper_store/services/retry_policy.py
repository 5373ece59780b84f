"""Exponential backoff for queued outbound messages.

Delays double from the base delay and are capped: with the defaults the
sequence is 1s, 2s, 4s, 8s, 16s, 32s, 32s, ... A message that has failed
``max_attempts`` times is exhausted and never eligible again; what happens
to it afterwards is the queue processor's decision.
"""

from __future__ import annotations

from dataclasses import dataclass

from whisper_store.core.settings import settings
from whisper_store.db.time import now_ms
from whisper_store.schemas.queue import QueuedMessage


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters, all in milliseconds except ``max_attempts``."""

    base_delay_ms: int = 1000
    max_delay_ms: int = 32_000
    max_attempts: int = 6

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            max_attempts=settings.retry_max_attempts,
        )

    def calculate_retry_delay(self, retry_count: int) -> int:
        """Return the delay required after ``retry_count`` failed attempts."""
        exponent = max(0, retry_count)
        # Past this point the doubled delay is always above the cap.
        if exponent >= 64:
            return self.max_delay_ms
        return min(self.base_delay_ms * 2**exponent, self.max_delay_ms)

    def is_exhausted(self, message: QueuedMessage) -> bool:
        return message.retry_count >= self.max_attempts

    def should_retry_message(self, message: QueuedMessage, now: int | None = None) -> bool:
        """Return True if ``message`` may be sent now."""
        if self.is_exhausted(message):
            return False

        if message.last_retry_at is None:
            return True

        current = now_ms() if now is None else now
        elapsed = current - message.last_retry_at
        return elapsed >= self.calculate_retry_delay(message.retry_count)


DEFAULT_RETRY_POLICY = RetryPolicy()


def calculate_retry_delay(retry_count: int) -> int:
    """Backoff delay in ms for ``retry_count`` under the default policy."""
    return DEFAULT_RETRY_POLICY.calculate_retry_delay(retry_count)


def should_retry_message(message: QueuedMessage, now: int | None = None) -> bool:
    """Eligibility of ``message`` for another send under the default policy."""
    return DEFAULT_RETRY_POLICY.should_retry_message(message, now)


__all__ = [
    "DEFAULT_RETRY_POLICY",
    "RetryPolicy",
    "calculate_retry_delay",
    "should_retry_message",
]
