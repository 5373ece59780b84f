"""Maintenance commands for a whisper-store database.

Typical usage:
  whisper-store migrate
  whisper-store queue-status
  WHISPER_STORE_BACKEND=redis whisper-store keys --prefix casper:
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from whisper_store.core.settings import settings
from whisper_store.db.factory import build_store
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.schemas.queue import QueuedMessage
from whisper_store.services.hygiene import SessionHygiene
from whisper_store.services.json_slot import STORE_ERRORS
from whisper_store.services.migrations import MigrationError, SchemaMigrator
from whisper_store.services.outbound_queue import OutboundQueue
from whisper_store.services.queue_processor import QueueProcessor

logger = logging.getLogger("whisper_store.admin")


async def _no_delivery(message: QueuedMessage) -> None:
    raise RuntimeError("Delivery is not available from the admin CLI")


def _processor(store: KeyValueStore) -> QueueProcessor:
    return QueueProcessor(OutboundQueue(store), _no_delivery)


async def cmd_migrate(store: KeyValueStore, args: argparse.Namespace) -> int:
    version = await SchemaMigrator(store).run_migrations()
    print(f"schema version: {version}")
    return 0


async def cmd_queue_status(store: KeyValueStore, args: argparse.Namespace) -> int:
    status = await _processor(store).get_queue_status()
    print(f"total:  {status.total_messages}")
    print(f"ready:  {status.ready_to_retry}")
    print(f"failed: {status.failed_messages}")
    return 0


async def cmd_discard_failed(store: KeyValueStore, args: argparse.Namespace) -> int:
    removed = await _processor(store).discard_failed()
    print(f"discarded {removed} exhausted messages")
    return 0


async def cmd_logout(store: KeyValueStore, args: argparse.Namespace) -> int:
    ok = await SessionHygiene(store).logout()
    print("logged out" if ok else "logout incomplete; see log")
    return 0 if ok else 1


async def cmd_keys(store: KeyValueStore, args: argparse.Namespace) -> int:
    for key in sorted(await store.get_all_keys()):
        if key.startswith(args.prefix):
            print(key)
    return 0


COMMANDS = {
    "migrate": cmd_migrate,
    "queue-status": cmd_queue_status,
    "discard-failed": cmd_discard_failed,
    "logout": cmd_logout,
    "keys": cmd_keys,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="whisper-store maintenance")
    p.add_argument("--backend", default=None, help="Override WHISPER_STORE_BACKEND")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("migrate", help="Bring the schema to the current version")
    sub.add_parser("queue-status", help="Summarize the outbound queue")
    sub.add_parser("discard-failed", help="Remove messages that exhausted their retries")
    sub.add_parser("logout", help="Clear all per-user data except theme preferences")
    keys_parser = sub.add_parser("keys", help="List stored keys")
    keys_parser.add_argument("--prefix", default="", help="Only list keys with this prefix")
    return p.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = settings
    if args.backend:
        config = settings.model_copy(update={"store_backend": args.backend})
    store = build_store(config)
    try:
        return await COMMANDS[args.command](store, args)
    except MigrationError as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    except STORE_ERRORS as exc:
        logger.error("Store unavailable: %s", exc)
        return 1
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            await close()


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
