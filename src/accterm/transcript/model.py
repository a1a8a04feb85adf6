"""Transcript model: linear text plus the positioned blocks cut from it."""

from __future__ import annotations

import threading
from collections import deque

from loguru import logger

from accterm.announce import AnnouncementChannel, AnnouncerProtocol
from accterm.config import Settings
from accterm.errors import StalePositionError

from .classifier import classify, count_lines, summarize
from .keywords import KeywordMonitor
from .models import Block, BlockType, Bookmark, CategorizedItem, Category

TRUNCATION_MARKER = "... (output truncated for memory)\n"
FOLD_HINT = "(use ,fold to expand)"
BOOKMARK_CONTEXT_CHARS = 50
AUTO_FOLD_TYPES = (BlockType.STACK_TRACE, BlockType.OVERSIZED)

ERROR_WORDS = ("error", "exception", "failed")
WARNING_WORDS = ("warning", "warn")
STATUS_WORDS = ("success", "completed", "connected", "ready", "started", "finished")


def categorize(content: str, *, is_error: bool = False) -> Category | None:
    """File output under error, warning or status by content, or None."""
    lowered = content.lower()
    if is_error or any(word in lowered for word in ERROR_WORDS):
        return Category.ERROR
    if any(word in lowered for word in WARNING_WORDS):
        return Category.WARNING
    if any(word in lowered for word in STATUS_WORDS):
        return Category.STATUS
    return None


class TranscriptModel:
    """Ordered blocks, bookmarks and categorized items over one text buffer.

    Every public method takes ``lock``; callers that combine several reads
    (the navigator, renderers) hold it across the whole sequence. Offsets
    recorded anywhere are only valid until ``revision`` changes. ``cursor`` is
    the reading position: output and navigation move it, prompt editing does not.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        keywords: KeywordMonitor | None = None,
        announcer: AnnouncerProtocol | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)
        self.keywords = keywords if keywords is not None else KeywordMonitor()
        self.announcer: AnnouncerProtocol = announcer if announcer is not None else AnnouncementChannel()
        self.lock = threading.RLock()

        self._text = ""
        self._blocks: list[Block] = []
        self._fold_state: dict[str, bool] = {}
        self._bookmarks: list[Bookmark] = []
        self._categories: dict[Category, deque[CategorizedItem]] = {
            category: deque(maxlen=self._settings.max_categorized_items) for category in Category
        }
        self._prompt_start: int | None = None
        self._input_start = 0
        self._last_command = ""

        self.current_block_index = -1
        self.current_bookmark_index = -1
        self.cursor = 0
        self.revision = 0
        self.invalidated_bookmarks = 0

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    @property
    def fold_threshold(self) -> int:
        return self._settings.fold_threshold

    @property
    def blocks(self) -> list[Block]:
        with self.lock:
            return list(self._blocks)

    @property
    def bookmarks(self) -> list[Bookmark]:
        with self.lock:
            return list(self._bookmarks)

    def items(self, category: Category) -> list[CategorizedItem]:
        with self.lock:
            return list(self._categories[category])

    @property
    def errors(self) -> list[CategorizedItem]:
        return self.items(Category.ERROR)

    @property
    def warnings(self) -> list[CategorizedItem]:
        return self.items(Category.WARNING)

    @property
    def status_messages(self) -> list[CategorizedItem]:
        return self.items(Category.STATUS)

    @property
    def prompt_active(self) -> bool:
        return self._prompt_start is not None

    @property
    def body_end(self) -> int:
        """End of the transcript proper, excluding the prompt and pending input."""
        return self._prompt_start if self._prompt_start is not None else len(self._text)

    @property
    def pending_input(self) -> str:
        if self._prompt_start is None:
            return ""
        return self._text[self._input_start :]

    @property
    def last_command(self) -> str:
        return self._last_command

    def show_prompt(self) -> None:
        with self.lock:
            if self._prompt_start is not None:
                return
            self._prompt_start = len(self._text)
            self._text += f"{self._settings.prompt} "
            self._input_start = len(self._text)

    def set_pending_input(self, value: str) -> None:
        with self.lock:
            self.show_prompt()
            self._text = self._text[: self._input_start] + value

    def commit_input(self) -> str:
        """Finish the prompt line and return the trimmed command typed on it."""
        with self.lock:
            command = self.pending_input.strip()
            if self._prompt_start is not None:
                self._text += "\n"
                self._prompt_start = None
            if command:
                self._last_command = command
            return command

    def _close_prompt(self) -> None:
        if self._prompt_start is not None:
            self.commit_input()

    def write(self, text: str) -> None:
        """Append text that is not part of any block (notices, help)."""
        if not text:
            return
        with self.lock:
            self._close_prompt()
            self._text += text if text.endswith("\n") else text + "\n"
            self.cursor = len(self._text)
            self._enforce_ceiling()

    def append_block(self, output: str, *, command: str | None = None, is_error: bool = False) -> Block | None:
        """Record one command's output as a new block; blank output adds nothing."""
        content = output.strip()
        if not content:
            return None
        with self.lock:
            self._close_prompt()
            block_type = classify(content, fold_threshold=self.fold_threshold)
            line_count = count_lines(content)
            start = len(self._text)
            block = Block(
                start=start,
                end=start,
                command=self._last_command if command is None else command,
                content=content,
                block_type=block_type,
                is_error=is_error,
            )
            if line_count > self.fold_threshold or block_type in AUTO_FOLD_TYPES:
                block.folded = True
                self._fold_state[block.block_id] = True

            self._text += self.render_block(block)
            block.end = len(self._text)
            self._blocks.append(block)
            self.cursor = block.end

            if block.folded:
                summary = summarize(content, block_type)
                self.announcer.announce(
                    f"Output folded: {line_count} lines of {block_type}. {summary}", kind="output"
                )
            else:
                self._monitor(content)
                self._categorize(block)
                self.announcer.announce(content, kind="output")
            if is_error:
                self.announcer.announce("Command failed", kind="error")

            self._enforce_ceiling()
            return block

    def render_block(self, block: Block) -> str:
        if block.folded:
            line_count = count_lines(block.content)
            summary = summarize(block.content, block.block_type)
            return f"[Folded {line_count} lines - {block.block_type}] {summary}\n{FOLD_HINT}\n"
        return block.content + "\n"

    def _monitor(self, content: str) -> None:
        matched = self.keywords.scan(content)
        if matched:
            self.announcer.announce(f"Keywords detected: {', '.join(sorted(matched))}", kind="keyword")

    def _categorize(self, block: Block) -> None:
        category = categorize(block.content, is_error=block.is_error)
        if category is None:
            return
        limit = self._settings.categorized_snippet_chars
        content = block.content if len(block.content) <= limit else block.content[:limit] + "..."
        item = CategorizedItem(content=content, position=block.start, command=block.command)
        self._categories[category].append(item)

    def set_folded(self, index: int, folded: bool) -> Block:
        """Fold or unfold one block; rebuilds only when the flag changes."""
        with self.lock:
            block = self._blocks[index]
            if block.folded == folded:
                return block
            block.folded = folded
            if folded:
                self._fold_state[block.block_id] = True
            else:
                self._fold_state.pop(block.block_id, None)
            self.rebuild()
            return block

    def toggle_fold(self, index: int) -> Block:
        with self.lock:
            block = self.set_folded(index, not self._blocks[index].folded)
            if block.folded:
                self.announcer.announce(
                    f"Block folded. {count_lines(block.content)} lines of {block.block_type} output collapsed.",
                    kind="navigation",
                )
            else:
                self.announcer.announce(f"Block expanded. {block.block_type} output is now visible.", kind="navigation")
            return block

    def unfold_all(self) -> int:
        with self.lock:
            folded = [block for block in self._blocks if block.folded]
            if not folded:
                self.announcer.announce("No folded blocks. All output is already expanded.", kind="navigation")
                return 0
            for block in folded:
                block.folded = False
            self._fold_state.clear()
            self.rebuild()
            self.announcer.announce(
                f"All blocks expanded. {len(folded)} folded blocks are now visible. Total {len(self._blocks)} blocks.",
                kind="navigation",
            )
            return len(folded)

    def is_folded(self, block_id: str) -> bool:
        return self._fold_state.get(block_id, False)

    def rebuild(self) -> None:
        """Regenerate the text from the block list and recompute every offset.

        Text that belongs to no block is dropped; pending prompt input survives.
        """
        with self.lock:
            pending = self.pending_input
            had_prompt = self._prompt_start is not None
            parts: list[str] = []
            position = 0
            for block in self._blocks:
                rendered = self.render_block(block)
                block.start = position
                position += len(rendered)
                block.end = position
                parts.append(rendered)
            self._text = "".join(parts)
            self._prompt_start = None
            if had_prompt:
                self.show_prompt()
                self._text += pending
            self.cursor = min(self.cursor, len(self._text))
            self.revision += 1
            logger.debug("transcript rebuilt: {} blocks, {} chars", len(self._blocks), len(self._text))

    def _enforce_ceiling(self) -> None:
        if len(self._text) > self._settings.max_transcript_chars:
            self.truncate()

    def truncate(self) -> None:
        """Keep the newest text and drop every position-dependent record."""
        with self.lock:
            pending = self.pending_input
            had_prompt = self._prompt_start is not None
            body = self._text[: self.body_end]
            prompt_area = f"{self._settings.prompt} {pending}" if had_prompt else ""
            keep = max(self._settings.truncate_keep_chars - len(TRUNCATION_MARKER) - len(prompt_area), 0)
            before = len(self._text)
            self._text = TRUNCATION_MARKER + (body[-keep:] if keep else "")
            self.invalidated_bookmarks += len(self._bookmarks)
            self._reset_positions()
            if had_prompt:
                self.show_prompt()
                self._text += pending
            self.cursor = len(self._text)
            logger.info("transcript truncated from {} to {} chars", before, len(self._text))

    def clear(self) -> None:
        with self.lock:
            had_prompt = self._prompt_start is not None
            self._text = ""
            self.invalidated_bookmarks = 0
            self._reset_positions()
            if had_prompt:
                self.show_prompt()
            self.cursor = len(self._text)
            self.announcer.announce("Screen cleared", kind="info")

    def _reset_positions(self) -> None:
        self._blocks.clear()
        self._bookmarks.clear()
        self._fold_state.clear()
        for items in self._categories.values():
            items.clear()
        self._prompt_start = None
        self._input_start = 0
        self.current_block_index = -1
        self.current_bookmark_index = -1
        self.revision += 1

    def add_bookmark(self, label: str | None = None, position: int | None = None) -> Bookmark:
        with self.lock:
            offset = self.cursor if position is None else position
            offset = max(0, min(offset, len(self._text)))
            name = (label or "").strip() or f"Bookmark {len(self._bookmarks) + 1}"
            bookmark = Bookmark(position=offset, label=name, context=self.context_at(offset))
            self._bookmarks.append(bookmark)
            self.invalidated_bookmarks = 0
            if len(self._bookmarks) > self._settings.max_bookmarks:
                self._bookmarks.pop(0)
            self.announcer.announce(
                f"Bookmark '{name}' added. Total bookmarks: {len(self._bookmarks)}", kind="navigation"
            )
            return bookmark

    def prune_bookmarks(self) -> int:
        """Drop bookmarks whose offset is past the end of the text."""
        with self.lock:
            length = len(self._text)
            kept = [bookmark for bookmark in self._bookmarks if bookmark.position <= length]
            removed = len(self._bookmarks) - len(kept)
            if removed:
                self._bookmarks = kept
                logger.debug("dropped {} stale bookmarks", removed)
            return removed

    def remove_bookmark(self, index: int) -> Bookmark:
        with self.lock:
            return self._bookmarks.pop(index)

    def context_at(self, position: int, max_length: int = BOOKMARK_CONTEXT_CHARS) -> str:
        start = max(0, position - max_length // 2)
        snippet = self._text[start : start + max_length]
        return snippet.replace("\r", "").replace("\n", " ").strip()

    def resolve_block(self, index: int) -> Block:
        """Return block ``index``; raises StalePositionError if its offset is gone."""
        with self.lock:
            block = self._blocks[index]
            if block.start > len(self._text):
                raise StalePositionError(block.start, len(self._text))
            return block

    def resolve_bookmark(self, index: int) -> Bookmark:
        with self.lock:
            bookmark = self._bookmarks[index]
            if bookmark.position > len(self._text):
                raise StalePositionError(bookmark.position, len(self._text))
            return bookmark
