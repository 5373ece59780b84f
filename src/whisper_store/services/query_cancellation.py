"""Cancellation of in-flight questions.

A running query cannot be interrupted mid-fetch; the tracker checks its
token before the fetch starts and again once it returns, and discards the
result if the query was cancelled in between.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_QUERY_LENGTH = 500
MIN_QUERY_LENGTH = 3


class QueryCancelledError(RuntimeError):
    """Raised when a tracked query was cancelled before its result was used."""


class CancellationToken:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def raise_if_cancelled(self, query_id: str) -> None:
        if self.cancelled:
            raise QueryCancelledError(f"Query {query_id} was cancelled")


class QueryTracker:
    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    @property
    def active_queries(self) -> list[str]:
        return list(self._tokens)

    async def run(self, query_id: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Await ``fetch()`` under a fresh token registered as ``query_id``.

        Raises:
            QueryCancelledError: If ``query_id`` was cancelled before the
                fetch started or before it returned.
        """
        token = CancellationToken()
        self._tokens[query_id] = token
        try:
            token.raise_if_cancelled(query_id)
            result = await fetch()
            token.raise_if_cancelled(query_id)
            return result
        finally:
            if self._tokens.get(query_id) is token:
                del self._tokens[query_id]

    def cancel_query(self, query_id: str) -> bool:
        token = self._tokens.get(query_id)
        if token is None:
            return False
        token.cancel()
        logger.debug("Cancelled query %s", query_id)
        return True

    def cancel_all(self) -> int:
        for token in self._tokens.values():
            token.cancel()
        return len(self._tokens)


def validate_query(text: str) -> str | None:
    """Return an error message for an unusable question, or None."""
    if not text or not text.strip():
        return "Question cannot be empty"
    if len(text) > MAX_QUERY_LENGTH:
        return f"Question is too long (max {MAX_QUERY_LENGTH} characters)"
    if len(text) < MIN_QUERY_LENGTH:
        return f"Question is too short (min {MIN_QUERY_LENGTH} characters)"
    return None


__all__ = [
    "CancellationToken",
    "MAX_QUERY_LENGTH",
    "MIN_QUERY_LENGTH",
    "QueryCancelledError",
    "QueryTracker",
    "validate_query",
]
