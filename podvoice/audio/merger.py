"""Program export by concatenating per-turn clips.

Responsibilities:
- Merge the WAV clips of a ready job into one program file in turn order.
- Reject clips whose sample layout differs from the first clip.
"""

from __future__ import annotations

import io
import wave
from pathlib import Path
from typing import Callable, Sequence

from ..models.datatypes import Turn


class ProgramMerger:
    """Merge ordered WAV turn clips into one WAV program."""

    def __init__(self, read_clip: Callable[[str], bytes]) -> None:
        """Initialize the merger with a reader resolving clip references to bytes."""

        self.read_clip = read_clip

    def merge(self, turns: Sequence[Turn], output_path: Path) -> Path:
        """Write all turn clips, in order, into `output_path`."""

        missing = [turn.turn_id for turn in turns if not turn.has_audio]
        if missing:
            raise ValueError(f"Turns without audio cannot be exported: {', '.join(missing)}")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        layout: tuple[int, int, int] | None = None
        with wave.open(str(output_path), "wb") as merged:
            if not turns:
                merged.setnchannels(1)
                merged.setsampwidth(2)
                merged.setframerate(24000)
            for turn in turns:
                with wave.open(io.BytesIO(self.read_clip(turn.audio)), "rb") as clip:
                    clip_layout = (clip.getnchannels(), clip.getsampwidth(), clip.getframerate())
                    if layout is None:
                        layout = clip_layout
                        merged.setnchannels(clip_layout[0])
                        merged.setsampwidth(clip_layout[1])
                        merged.setframerate(clip_layout[2])
                    elif clip_layout != layout:
                        raise ValueError(f"Incompatible WAV parameters for turn `{turn.turn_id}`.")
                    merged.writeframes(clip.readframes(clip.getnframes()))
        return output_path
