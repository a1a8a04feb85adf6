"""Structural navigation over the transcript: blocks, errors, bookmarks."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from accterm.errors import StalePositionError

from .model import TranscriptModel
from .models import Block


@dataclass(frozen=True)
class NavigationResult:
    """Outcome of one navigation step."""

    moved: bool
    index: int | None = None
    position: int | None = None
    messages: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return " ".join(self.messages)


def describe_block(index: int, total: int, block: Block) -> str:
    fold = "folded" if block.folded else "expanded"
    status = "error" if block.is_error_like else "normal"
    return f"Block {index + 1} of {total}, {fold}, {status}, type: {block.block_type}"


class Navigator:
    """Wrap-around traversal. Moves only the selection and cursor, never the text."""

    def __init__(self, model: TranscriptModel) -> None:
        self._model = model

    def next_block(self) -> NavigationResult:
        with self._model.lock:
            total = len(self._model.blocks)
            if total == 0:
                return self._report("No output blocks to navigate")
            notes: list[str] = []
            index = self._model.current_block_index + 1
            if index >= total:
                index = 0
                notes.append("Wrapped to first block")
            return self._select_block(index, notes)

    def previous_block(self) -> NavigationResult:
        with self._model.lock:
            total = len(self._model.blocks)
            if total == 0:
                return self._report("No output blocks to navigate")
            notes: list[str] = []
            index = self._model.current_block_index - 1
            if index < 0:
                index = total - 1
                notes.append("Wrapped to last block")
            return self._select_block(index, notes)

    def next_error(self) -> NavigationResult:
        with self._model.lock:
            blocks = self._model.blocks
            if not blocks:
                return self._report("No output blocks")
            start = self._model.current_block_index + 1
            for offset in range(len(blocks)):
                index = (start + offset) % len(blocks)
                if blocks[index].is_error_like:
                    return self._select_block(index, [])
            return self._report("No error blocks found")

    def jump_to_block(self, index: int) -> NavigationResult:
        with self._model.lock:
            total = len(self._model.blocks)
            if not 0 <= index < total:
                return self._report(f"No block {index + 1}. There are {total} blocks.")
            return self._select_block(index, [])

    def toggle_current_fold(self) -> NavigationResult:
        with self._model.lock:
            index = self._model.current_block_index
            if not 0 <= index < len(self._model.blocks):
                return self._report("No block selected. Use ,next to navigate to a block first.")
            block = self._model.toggle_fold(index)
            self._model.cursor = block.start
            return NavigationResult(moved=True, index=index, position=block.start)

    def next_bookmark(self) -> NavigationResult:
        return self._step_bookmark(1)

    def previous_bookmark(self) -> NavigationResult:
        return self._step_bookmark(-1)

    def _step_bookmark(self, step: int) -> NavigationResult:
        with self._model.lock:
            if not self._model.bookmarks:
                if self._model.invalidated_bookmarks:
                    return self._report("All bookmarks are now invalid. Text has changed.")
                return self._report("No bookmarks set. Use ,bookmark to add a bookmark.")

            self._model.prune_bookmarks()
            total = len(self._model.bookmarks)
            if total == 0:
                self._model.current_bookmark_index = -1
                return self._report("All bookmarks are now invalid. Text has changed.")

            notes: list[str] = []
            index = self._model.current_bookmark_index + step
            if index >= total:
                index = 0
                notes.append("Wrapped to first bookmark")
            elif index < 0:
                index = total - 1
                notes.append("Wrapped to last bookmark")
            self._model.current_bookmark_index = index

            try:
                bookmark = self._model.resolve_bookmark(index)
            except StalePositionError as exc:
                logger.debug("stale bookmark: {}", exc)
                stale = self._model.remove_bookmark(index)
                self._model.current_bookmark_index = -1
                notes.append(f"Bookmark '{stale.label}' is invalid. Removing.")
                return self._report(*notes)

            self._model.cursor = bookmark.position
            notes.append(f"Bookmark {index + 1} of {total}: {bookmark.label}. {bookmark.context}")
            return self._report(*notes, moved=True, index=index, position=bookmark.position)

    def _select_block(self, index: int, notes: list[str]) -> NavigationResult:
        self._model.current_block_index = index
        total = len(self._model.blocks)
        try:
            block = self._model.resolve_block(index)
        except StalePositionError as exc:
            logger.debug("stale block {}: {}", index, exc)
            notes.append("Block position is invalid. Text has changed.")
            return self._report(*notes)
        self._model.cursor = block.start
        notes.append(describe_block(index, total, block))
        return self._report(*notes, moved=True, index=index, position=block.start)

    def _report(
        self,
        *messages: str,
        moved: bool = False,
        index: int | None = None,
        position: int | None = None,
    ) -> NavigationResult:
        for message in messages:
            self._model.announcer.announce(message, kind="navigation")
        return NavigationResult(moved=moved, index=index, position=position, messages=tuple(messages))
