"""Shared core dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CommandKind = Literal["internal", "builtin", "shell"]


@dataclass(frozen=True)
class DetectedCommand:
    """Detected command parsed from a line."""

    kind: CommandKind
    raw: str
    name: str
    args_tokens: list[str] = field(default_factory=list)
