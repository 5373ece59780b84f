"""QA session log schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

QAMode = Literal["template", "llm"]


class QASession(BaseModel):
    """One answered question, logged locally only."""

    id: str
    conversation_id: str = Field(..., alias="conversationId")
    question: str
    answer: str
    mode: QAMode
    source_count: int = Field(..., ge=0, alias="sourceCount")
    timestamp: int
    duration: int | None = Field(default=None, description="Milliseconds")

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class SessionStats:
    """Aggregate counters over the whole session log."""

    total: int
    template_count: int
    llm_count: int
    avg_duration: float
