"""Structured transcript: blocks, bookmarks, categories and navigation."""

from .classifier import classify, summarize
from .keywords import DEFAULT_KEYWORDS, KeywordMonitor
from .model import TRUNCATION_MARKER, TranscriptModel
from .models import Block, BlockType, Bookmark, CategorizedItem, Category
from .navigation import NavigationResult, Navigator

__all__ = [
    "DEFAULT_KEYWORDS",
    "TRUNCATION_MARKER",
    "Block",
    "BlockType",
    "Bookmark",
    "CategorizedItem",
    "Category",
    "KeywordMonitor",
    "NavigationResult",
    "Navigator",
    "TranscriptModel",
    "classify",
    "summarize",
]
