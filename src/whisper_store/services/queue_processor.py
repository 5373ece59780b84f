"""Background delivery of the outbound queue.

``QueueProcessor`` walks the queue in FIFO order, hands every eligible
message to an injected ``send`` coroutine and records the outcome: success
removes the entry, failure bumps its retry counter and timestamp so the
backoff policy can hold it back until its next slot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from whisper_store.core.settings import settings
from whisper_store.db.time import now_ms
from whisper_store.schemas.queue import QueuedMessage, QueueRunResult, QueueStatus
from whisper_store.services.json_slot import STORE_ERRORS
from whisper_store.services.outbound_queue import OutboundQueue
from whisper_store.services.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

SendMessage = Callable[[QueuedMessage], Awaitable[None]]


class QueueProcessor:
    """Retries queued messages until they are delivered or exhausted.

    An exhausted message stays queued, is never sent again and is counted
    in ``QueueStatus.failed_messages`` until ``discard_failed`` removes it,
    unless ``drop_exhausted`` is set, in which case it is removed as soon
    as its final attempt fails.
    """

    def __init__(
        self,
        queue: OutboundQueue,
        send: SendMessage,
        *,
        policy: RetryPolicy | None = None,
        interval_seconds: float | None = None,
        drop_exhausted: bool | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.queue = queue
        self._send = send
        self.policy = policy or RetryPolicy.from_settings()
        self.interval_seconds = (
            settings.queue_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.drop_exhausted = (
            settings.queue_drop_exhausted if drop_exhausted is None else drop_exhausted
        )
        self._clock = clock
        self._processing = False
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop; the first pass runs immediately."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop and wait for the current pass to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(self.interval_seconds))

        while not self._stopping.is_set():
            try:
                await self.process_once()
            except STORE_ERRORS as exc:
                logger.warning("QueueProcessor encountered storage error: %s", exc)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue

    async def process_once(self) -> QueueRunResult:
        """Make one delivery pass over the queue.

        A call made while another pass is in progress returns an empty
        result without touching the queue.
        """
        result = QueueRunResult()
        if self._processing:
            logger.debug("Queue pass already in progress; skipping")
            return result

        self._processing = True
        try:
            pending = await self.queue.get_queue()
            logger.debug("Processing %d queued messages", len(pending))
            for message in pending:
                result.processed += 1
                await self._process_message(message, result)
        finally:
            self._processing = False

        if result.delivered or result.failed or result.dropped:
            logger.info(
                "Queue pass: %d delivered, %d failed, %d dropped, %d skipped",
                result.delivered,
                result.failed,
                result.dropped,
                result.skipped,
            )
        return result

    async def _process_message(self, message: QueuedMessage, result: QueueRunResult) -> None:
        now = self._clock()
        if not self.policy.should_retry_message(message, now):
            result.skipped += 1
            return

        if not message.has_payload():
            logger.warning(
                "Dropping queued %s message %s with no payload", message.type, message.temp_id
            )
            await self.queue.remove_from_queue(message.temp_id)
            result.dropped += 1
            return

        try:
            await self._send(message)
        except Exception as exc:
            await self._record_failure(message, now, exc, result)
            return

        if await self.queue.remove_from_queue(message.temp_id):
            logger.debug("Delivered queued message %s", message.temp_id)
        else:
            logger.error("Delivered %s but could not remove it from the queue", message.temp_id)
        result.delivered += 1

    async def _record_failure(
        self,
        message: QueuedMessage,
        now: int,
        exc: Exception,
        result: QueueRunResult,
    ) -> None:
        retry_count = message.retry_count + 1
        result.failed += 1
        logger.warning(
            "Failed to send %s (attempt %d/%d): %s",
            message.temp_id,
            retry_count,
            self.policy.max_attempts,
            exc,
        )
        persisted = await self.queue.update_queue_item(
            message.temp_id, {"retry_count": retry_count, "last_retry_at": now}
        )
        if not persisted:
            logger.error("Could not record retry state for %s", message.temp_id)

        if retry_count < self.policy.max_attempts:
            return

        logger.error(
            "Giving up on %s after %d attempts", message.temp_id, self.policy.max_attempts
        )
        if self.drop_exhausted:
            await self.queue.remove_from_queue(message.temp_id)
            result.dropped += 1

    async def get_queue_status(self) -> QueueStatus:
        pending = await self.queue.get_queue()
        now = self._clock()
        return QueueStatus(
            total_messages=len(pending),
            ready_to_retry=sum(1 for m in pending if self.policy.should_retry_message(m, now)),
            failed_messages=sum(1 for m in pending if self.policy.is_exhausted(m)),
        )

    async def discard_failed(self) -> int:
        """Remove every exhausted message and return how many were removed."""
        removed = 0
        for message in await self.queue.get_queue():
            if self.policy.is_exhausted(message):
                if await self.queue.remove_from_queue(message.temp_id):
                    removed += 1
        if removed:
            logger.info("Discarded %d exhausted queued messages", removed)
        return removed


__all__ = ["QueueProcessor", "SendMessage"]
