"""Speaker-constrained batching of dialogue turns for synthesis.

Responsibilities:
- Group consecutive turns into multi-speaker dialogue batches that respect the
  provider's speaker-count, size, and turn-count limits.
- Leave turns that cannot be batched as single-speaker batches.

The scan is greedy left to right. A window grows from the current turn while
every limit holds; the longest extension that contains at least two distinct
roles becomes one dialogue batch. When no such extension exists the current
turn becomes a single batch and the scan resumes at the next turn.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models.datatypes import SynthesisBatch, Turn


@dataclass(frozen=True, slots=True)
class ChunkPlanner:
    """Plan synthesis batches for an ordered list of turns.

    Attributes:
        char_budget: Maximum combined size of one dialogue batch.
        max_turns: Maximum turns in one dialogue batch.
        max_speakers: Maximum distinct roles in one dialogue batch.
        turn_char_ceiling: Turns longer than this are always single batches.
        label_overhead_chars: Size added per turn for its speaker label.
    """

    char_budget: int = 3000
    max_turns: int = 4
    max_speakers: int = 2
    turn_char_ceiling: int = 1500
    label_overhead_chars: int = 16

    def plan(self, turns: Sequence[Turn]) -> list[SynthesisBatch]:
        """Partition `turns` into ordered batches, each turn exactly once."""

        batches: list[SynthesisBatch] = []
        index = 0
        while index < len(turns):
            dialogue_end = self._longest_dialogue_end(turns, index)
            if dialogue_end is None:
                batches.append(SynthesisBatch(turns=(turns[index],), mode="single"))
                index += 1
                continue
            batches.append(SynthesisBatch(turns=tuple(turns[index:dialogue_end]), mode="dialogue"))
            index = dialogue_end
        return batches

    def batch_size(self, turns: Sequence[Turn]) -> int:
        """Return the projected request size of a group of turns."""

        return sum(len(turn.text) + self.label_overhead_chars for turn in turns)

    def _longest_dialogue_end(self, turns: Sequence[Turn], start: int) -> int | None:
        """Return the exclusive end of the longest valid dialogue window at `start`."""

        roles: set[str] = set()
        size = 0
        best_end: int | None = None
        cursor = start
        while cursor < len(turns):
            candidate = turns[cursor]
            if len(candidate.text) > self.turn_char_ceiling:
                break
            next_roles = roles | {candidate.speaker}
            next_size = size + len(candidate.text) + self.label_overhead_chars
            if (
                len(next_roles) > self.max_speakers
                or next_size > self.char_budget
                or cursor - start + 1 > self.max_turns
            ):
                break
            roles = next_roles
            size = next_size
            cursor += 1
            if len(roles) >= 2 and cursor - start >= 2:
                best_end = cursor
        return best_end
