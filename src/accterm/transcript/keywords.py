"""Keyword monitoring over finished output."""

from __future__ import annotations

import re
from collections.abc import Iterable

DEFAULT_KEYWORDS = ("error", "exception", "failed", "timeout", "warning", "success", "connected", "completed")
MONITOR_USAGE = "Usage: monitor add|remove|clear|list [keyword]"


def keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Lookarounds instead of \b so keywords with punctuation still match whole tokens.
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)


def scan(text: str, keywords: Iterable[str]) -> set[str]:
    """Return the keywords that occur in text as whole words, case-insensitively."""
    if not text:
        return set()
    return {keyword for keyword in keywords if keyword and keyword_pattern(keyword).search(text)}


class KeywordMonitor:
    """Mutable, case-insensitive keyword set."""

    def __init__(self, keywords: Iterable[str] = DEFAULT_KEYWORDS) -> None:
        self._keywords: set[str] = {keyword.lower() for keyword in keywords if keyword.strip()}

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and keyword.lower() in self._keywords

    def __len__(self) -> int:
        return len(self._keywords)

    @property
    def keywords(self) -> list[str]:
        return sorted(self._keywords)

    def add(self, keyword: str) -> bool:
        normalized = keyword.strip().lower()
        if not normalized or normalized in self._keywords:
            return False
        self._keywords.add(normalized)
        return True

    def remove(self, keyword: str) -> bool:
        normalized = keyword.strip().lower()
        if normalized not in self._keywords:
            return False
        self._keywords.discard(normalized)
        return True

    def clear(self) -> int:
        count = len(self._keywords)
        self._keywords.clear()
        return count

    def scan(self, text: str) -> set[str]:
        return scan(text, self._keywords)

    def handle_command(self, args: list[str]) -> str:
        """Run ``monitor <action> [keyword]`` and return the text to show."""
        if not args:
            return MONITOR_USAGE
        action = args[0].lower()
        keyword = args[1] if len(args) > 1 else ""
        if action == "add":
            if not keyword:
                return "Usage: monitor add <keyword>"
            self.add(keyword)
            return f"Now monitoring keyword: {keyword}"
        if action == "remove":
            if not keyword:
                return "Usage: monitor remove <keyword>"
            if self.remove(keyword):
                return f"Stopped monitoring keyword: {keyword}"
            return f"Keyword not found: {keyword}"
        if action == "clear":
            return f"Cleared {self.clear()} monitored keywords"
        if action == "list":
            lines = [f"Monitored keywords ({len(self)}):"]
            lines.extend(f"  - {item}" for item in self.keywords)
            return "\n".join(lines)
        return f"Unknown action: {action}. Use add, remove, clear, or list"
