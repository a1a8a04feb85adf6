"""Transcript data records."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class BlockType(StrEnum):
    NORMAL = "Normal"
    ERROR = "Error"
    STACK_TRACE = "StackTrace"
    STRUCTURED_DATA = "StructuredData"
    OVERSIZED = "Oversized"


class Category(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    STATUS = "status"


@dataclass
class Block:
    """One command's output, positioned in the transcript text.

    ``start``/``end`` are offsets into the linear transcript text and are
    rewritten on every rebuild.
    """

    start: int
    end: int
    command: str
    content: str
    block_type: BlockType = BlockType.NORMAL
    is_error: bool = False
    folded: bool = False
    block_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_error_like(self) -> bool:
        return self.is_error or self.block_type in (BlockType.ERROR, BlockType.STACK_TRACE)


@dataclass(frozen=True)
class Bookmark:
    position: int
    label: str
    context: str
    created: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class CategorizedItem:
    content: str
    position: int
    command: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
