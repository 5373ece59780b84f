"""On-device schema versioning and migrations.

A single integer under ``@whisper:schema_version`` records the shape of the
locally persisted data. ``SchemaMigrator.run_migrations`` brings it up to
``CURRENT_SCHEMA_VERSION`` by applying every newer step in order and only
then writing the new version, so a failed step is retried from the same
starting point on the next launch. Steps must therefore be safe to re-run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from whisper_store.core import keys
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.services.json_slot import STORE_ERRORS, encode_json

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2


class MigrationError(RuntimeError):
    """Raised when the schema could not be brought to the current version."""


@dataclass(frozen=True)
class MigrationStep:
    """Transform that upgrades stored data to ``version``."""

    version: int
    description: str
    apply: Callable[[KeyValueStore], Awaitable[None]]


async def _initial_schema(store: KeyValueStore) -> None:
    # Version 1 is the first released layout; there is nothing to convert.
    return None


async def _normalize_outbound_queue(store: KeyValueStore) -> None:
    """Enforce unique ``tempId`` values and an explicit ``retryCount``."""
    raw = await store.get(keys.OUTBOUND_QUEUE)
    if raw is None:
        return
    try:
        items: Any = json.loads(raw)
    except ValueError:
        logger.warning("Outbound queue is unparsable; leaving it for the reader to discard")
        return
    if not isinstance(items, list):
        return

    seen: set[str] = set()
    normalized: list[dict[str, Any]] = []
    changed = False
    for item in items:
        temp_id = item.get("tempId") if isinstance(item, dict) else None
        if not temp_id or temp_id in seen:
            changed = True
            continue
        seen.add(temp_id)
        if "retryCount" not in item:
            item = {**item, "retryCount": 0}
            changed = True
        normalized.append(item)

    if changed:
        logger.info(
            "Normalized outbound queue: %d of %d entries kept", len(normalized), len(items)
        )
        await store.set(keys.OUTBOUND_QUEUE, encode_json(normalized))


DEFAULT_MIGRATIONS: tuple[MigrationStep, ...] = (
    MigrationStep(1, "initial schema", _initial_schema),
    MigrationStep(2, "normalize outbound queue entries", _normalize_outbound_queue),
)


class SchemaMigrator:
    """Runs ordered migration steps against one durable store."""

    def __init__(
        self,
        store: KeyValueStore,
        steps: Sequence[MigrationStep] = DEFAULT_MIGRATIONS,
        *,
        current_version: int = CURRENT_SCHEMA_VERSION,
    ) -> None:
        versions = [step.version for step in steps]
        if len(set(versions)) != len(versions):
            raise ValueError("Migration versions must be unique")
        if any(version > current_version or version < 1 for version in versions):
            raise ValueError(f"Migration versions must be within 1..{current_version}")
        self._store = store
        self._steps = sorted(steps, key=lambda step: step.version)
        self.current_version = current_version

    async def get_stored_version(self) -> int:
        """Return the stored version, 0 when absent or unparsable."""
        try:
            raw = await self._store.get(keys.SCHEMA_VERSION)
        except STORE_ERRORS as exc:
            raise MigrationError(f"Could not read schema version: {exc!s}") from exc

        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring unparsable schema version %r", raw)
            return 0

    async def run_migrations(self) -> int:
        """Migrate to the current version and return the version now stored.

        Raises:
            MigrationError: If a step or the version write fails. The stored
                version is left unchanged in that case.
        """
        stored = await self.get_stored_version()
        if stored == self.current_version:
            return stored
        if stored > self.current_version:
            logger.warning(
                "Stored schema version %d is newer than this build (%d); leaving it",
                stored,
                self.current_version,
            )
            return stored

        logger.info("Upgrading schema from version %d to %d", stored, self.current_version)
        for step in self._steps:
            if not stored < step.version <= self.current_version:
                continue
            logger.info("Applying migration %d: %s", step.version, step.description)
            try:
                await step.apply(self._store)
            except Exception as exc:
                logger.exception("Failed to apply migration to version %d", step.version)
                raise MigrationError(
                    f"Migration to version {step.version} failed: {exc!s}"
                ) from exc

        try:
            await self._store.set(keys.SCHEMA_VERSION, str(self.current_version))
        except STORE_ERRORS as exc:
            raise MigrationError(f"Could not write schema version: {exc!s}") from exc

        logger.info("Schema is at version %d", self.current_version)
        return self.current_version


async def run_migrations(store: KeyValueStore) -> int:
    """Run the default migrations against ``store``."""
    return await SchemaMigrator(store).run_migrations()


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_MIGRATIONS",
    "MigrationError",
    "MigrationStep",
    "SchemaMigrator",
    "run_migrations",
]
