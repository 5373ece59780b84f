# src/whisper_store/models/kv_entry.py
"""Model backing the SQL key-value store."""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from whisper_store.db.session import Base
from whisper_store.db.time import utcnow


class KeyValueEntry(Base):
    """One durable slot: a string key and its serialized value."""

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)
