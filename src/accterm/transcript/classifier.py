"""Content-type detection for finished output blocks."""

from __future__ import annotations

import re

from accterm.shell.output_filter import split_lines

from .models import BlockType

DEFAULT_FOLD_THRESHOLD = 50

STACK_FRAME_RE = re.compile(
    r"^\s+at\s+\S"  # .NET, Java, JavaScript
    r"|\.cs:line\s+\d+"
    r"|:line\s+\d+\)?\s*$"
    r'|^\s*File\s+".+",\s+line\s+\d+',  # Python
    re.MULTILINE,
)
EXCEPTION_RE = re.compile(r"Exception|Traceback \(most recent call last\)|\w+Error\b")
ERROR_MARKERS = ("ERROR:", "Error:", "error:")
_ENVELOPES = (("{", "}"), ("[", "]"))


def count_lines(text: str) -> int:
    """Number of non-empty lines."""
    return len(split_lines(text))


def is_stack_trace(text: str) -> bool:
    if "\n" not in text.strip():
        return False
    return STACK_FRAME_RE.search(text) is not None and EXCEPTION_RE.search(text) is not None


def is_structured_data(text: str) -> bool:
    trimmed = text.strip()
    if not trimmed:
        return False
    if not any(trimmed.startswith(opening) and trimmed.endswith(closing) for opening, closing in _ENVELOPES):
        return False
    return trimmed.count("{") == trimmed.count("}") and trimmed.count("[") == trimmed.count("]")


def has_error_marker(text: str) -> bool:
    return any(marker in text for marker in ERROR_MARKERS)


def classify(text: str, *, fold_threshold: int = DEFAULT_FOLD_THRESHOLD) -> BlockType:
    if not text.strip():
        return BlockType.NORMAL
    if is_stack_trace(text):
        return BlockType.STACK_TRACE
    if is_structured_data(text):
        return BlockType.STRUCTURED_DATA
    if has_error_marker(text):
        return BlockType.ERROR
    if len(text.split("\n")) > fold_threshold:
        return BlockType.OVERSIZED
    return BlockType.NORMAL


def summarize(text: str, block_type: BlockType) -> str:
    """Short one-line description used by folded placeholders."""
    lines = split_lines(text)
    if not lines:
        return "empty"
    first = lines[0]
    if block_type is BlockType.STACK_TRACE:
        return f"Stack trace: {first[:50]}..."
    if block_type is BlockType.STRUCTURED_DATA:
        return f"Structured data: {len(lines)} lines"
    if block_type is BlockType.ERROR:
        first_error = next((line for line in lines if "ERROR" in line or "Error" in line), first)
        return first_error[:80]
    if block_type is BlockType.OVERSIZED:
        return f"First line: {first[:60]}..."
    return first[:60]
