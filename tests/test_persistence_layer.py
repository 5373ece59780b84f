from unittest.mock import AsyncMock

import pytest

from whisper_store.core import keys
from whisper_store.main import PersistenceLayer
from whisper_store.schemas.preferences import ThemePreferences
from whisper_store.scripts import store_admin
from whisper_store.services.migrations import CURRENT_SCHEMA_VERSION


@pytest.mark.asyncio
async def test_start_migrates_before_anything_else(store, test_settings):
    layer = PersistenceLayer(store, config=test_settings)

    assert await layer.start() == CURRENT_SCHEMA_VERSION
    assert await store.get(keys.SCHEMA_VERSION) == str(CURRENT_SCHEMA_VERSION)
    await layer.stop()


@pytest.mark.asyncio
async def test_logout_keeps_theme(store, test_settings):
    layer = PersistenceLayer(store, send=AsyncMock(), config=test_settings)
    await layer.start()
    await layer.drafts.save_draft("c1", "draft")
    await layer.theme.save_theme_preferences(ThemePreferences(dark_mode=False))

    assert await layer.logout()
    await layer.stop()

    assert await layer.drafts.get_draft("c1") == ""
    assert (await layer.theme.get_theme_preferences()).dark_mode is False


def test_cli_parses_commands():
    args = store_admin.parse_args(["--backend", "memory", "keys", "--prefix", "casper:"])

    assert args.command == "keys"
    assert args.prefix == "casper:"
    assert args.backend == "memory"


def test_cli_migrate_on_memory_backend(capsys):
    assert store_admin.main(["--backend", "memory", "migrate"]) == 0
    assert f"schema version: {CURRENT_SCHEMA_VERSION}" in capsys.readouterr().out


def test_cli_queue_status_on_empty_store(capsys):
    assert store_admin.main(["--backend", "memory", "queue-status"]) == 0
    assert "total:  0" in capsys.readouterr().out
