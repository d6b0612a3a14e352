"""Playable timeline derivation from per-turn durations.

Timestamps are never authored: they are the running sum of preceding turn
durations, recomputed whenever any duration changes. Chapter spans are derived
from their member turns.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ..models.datatypes import Chapter, Turn


def _effective_duration(turn: Turn) -> float:
    """Return a turn duration usable for timeline math (never negative)."""

    try:
        duration = float(turn.duration)
    except (TypeError, ValueError):
        return 0.0
    if duration != duration or duration < 0.0:
        return 0.0
    return duration


class SegmentTimeline:
    """Pure time model over ordered dialogue turns."""

    def recompute(self, turns: Sequence[Turn]) -> list[Turn]:
        """Return turns with `timestamp[i] == sum(duration[0..i-1])`."""

        elapsed = 0.0
        updated: list[Turn] = []
        for turn in turns:
            updated.append(turn if turn.timestamp == elapsed else replace(turn, timestamp=elapsed))
            elapsed += _effective_duration(turn)
        return updated

    def total_duration(self, turns: Sequence[Turn]) -> float:
        """Return the summed duration of all turns."""

        return sum(_effective_duration(turn) for turn in turns)

    def recompute_chapters(
        self, chapters: Sequence[Chapter], turns: Sequence[Turn]
    ) -> list[Chapter]:
        """Derive chapter spans from member turns; empty chapters keep their span."""

        members: dict[str, list[Turn]] = {}
        for turn in turns:
            members.setdefault(turn.chapter_id, []).append(turn)

        updated: list[Chapter] = []
        for chapter in chapters:
            chapter_turns = members.get(chapter.chapter_id)
            if not chapter_turns:
                updated.append(chapter)
                continue
            start = min(turn.timestamp for turn in chapter_turns)
            end = max(turn.timestamp + _effective_duration(turn) for turn in chapter_turns)
            updated.append(replace(chapter, start_time=start, end_time=end))
        return updated
