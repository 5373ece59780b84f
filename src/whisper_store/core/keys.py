"""Durable key layout shared by every persistence component.

These values are part of the on-device contract; changing one orphans the
data stored under the old key.
"""

from typing import Final

SCHEMA_VERSION: Final[str] = "@whisper:schema_version"
OUTBOUND_QUEUE: Final[str] = "@whisper:outbound_queue"
DRAFTS: Final[str] = "@whisper:drafts"
SCROLL_POSITIONS: Final[str] = "@whisper:scroll_positions"
SELECTED_CONVERSATION: Final[str] = "@whisper:selected_conversation"
THEME_PREFS: Final[str] = "@whisper:theme_prefs"
MESSAGE_CACHE: Final[str] = "@whisper:message_cache"
DISPLAY_NAME_CACHE: Final[str] = "@whisper:display_name_cache"
QA_SESSIONS: Final[str] = "@casper_qa_sessions"

CASPER_NAMESPACE: Final[str] = "casper:"

# Removed on logout by clear_all_caches_except_prefs, in this order.
SESSION_KEYS: Final[tuple[str, ...]] = (
    DRAFTS,
    SCROLL_POSITIONS,
    OUTBOUND_QUEUE,
    SELECTED_CONVERSATION,
)
