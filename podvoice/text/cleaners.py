"""Deterministic speech-text cleaning rules.

Responsibilities:
- Strip markup and symbols that synthesis voices would read aloud.
- Never shorten or summarize: every spoken word of the script survives, so
  audio length stays in step with the drafted text.
"""

from __future__ import annotations

import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class StripEmphasis:
    """Unwrap markdown bold/italic markers."""

    def apply(self, text: str) -> str:
        text = re.sub(r"\*\*\*(.+?)\*\*\*", r"\1", text)
        text = re.sub(r"\*\*(.+?)\*\*", r"\1", text)
        text = re.sub(r"__(.+?)__", r"\1", text)
        return re.sub(r"\*(.+?)\*", r"\1", text)


class StripHeadings:
    """Drop leading `#` heading markers."""

    def apply(self, text: str) -> str:
        return re.sub(r"(?m)^#{1,6}\s+", "", text)


class StripLinks:
    """Keep link labels and drop their targets."""

    def apply(self, text: str) -> str:
        return re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)


class StripCode:
    """Remove fenced code blocks and unwrap inline code."""

    def apply(self, text: str) -> str:
        text = re.sub(r"```[\s\S]*?```", "", text)
        return re.sub(r"`([^`]+)`", r"\1", text)


class StripListMarkers:
    """Remove bullet, numbered-list, and blockquote prefixes."""

    def apply(self, text: str) -> str:
        text = re.sub(r"(?m)^\s*[-*+•]\s+", "", text)
        text = re.sub(r"(?m)^\s*\d+\.\s+", "", text)
        return re.sub(r"(?m)^>\s+", "", text)


class StripEmoji:
    """Remove emoji and pictographic symbols."""

    _EMOJI_RE = re.compile("[\U0001F000-\U0001FAFF\u2600-\u27BF\uFE0F\u200D]")

    def apply(self, text: str) -> str:
        return self._EMOJI_RE.sub("", text)


class SoftenPunctuation:
    """Turn dashes and clause separators into comma pauses."""

    def apply(self, text: str) -> str:
        text = re.sub(r"\s*[—–]\s*", ", ", text)
        text = re.sub(r"\s*;\s*", ", ", text)
        # Clock times and ratios keep their colon.
        return re.sub(r"(?<!\d)\s*:\s*|\s*:\s+", ", ", text)


class CollapseWhitespace:
    """Collapse whitespace runs to one space and trim."""

    def apply(self, text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()


class SpeechTextCleaner:
    """Apply a sequence of deterministic speech cleaner rules."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or the default rule sequence."""

        self.rules = rules or [
            StripCode(),
            StripListMarkers(),
            StripEmphasis(),
            StripHeadings(),
            StripLinks(),
            StripEmoji(),
            SoftenPunctuation(),
            CollapseWhitespace(),
        ]

    def clean(self, text: str) -> str:
        """Apply all configured rules in order."""

        current = text or ""
        for rule in self.rules:
            current = rule.apply(current)
        return current


def count_words(text: str) -> int:
    """Return the whitespace-delimited word count of `text`."""

    return len(text.split())
