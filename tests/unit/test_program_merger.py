"""Unit tests for program export."""

from __future__ import annotations

import wave
from pathlib import Path

import pytest

from podvoice.audio.merger import ProgramMerger
from podvoice.models.datatypes import Turn

from tests.fixture_builders import wav_bytes


def _turn(index: int, audio: str) -> Turn:
    return Turn(turn_id=f"turn-{index:03d}", chapter_id="topic-1", speaker="host", text="Line.", audio=audio)


def test_merge_concatenates_clips_in_turn_order(tmp_path: Path) -> None:
    clips = {"a": wav_bytes(0.5), "b": wav_bytes(1.0)}
    merger = ProgramMerger(clips.__getitem__)

    output = merger.merge([_turn(0, "a"), _turn(1, "b")], tmp_path / "out" / "program.wav")

    with wave.open(str(output), "rb") as merged:
        assert merged.getframerate() == 24000
        assert merged.getnframes() == 36000


def test_merge_rejects_missing_audio_and_mismatched_layouts(tmp_path: Path) -> None:
    clips = {"a": wav_bytes(0.5), "b": wav_bytes(0.5, sample_rate=16000)}
    merger = ProgramMerger(clips.__getitem__)

    with pytest.raises(ValueError, match="turn-001"):
        merger.merge([_turn(0, "a"), _turn(1, "")], tmp_path / "missing.wav")
    with pytest.raises(ValueError, match="Incompatible WAV parameters"):
        merger.merge([_turn(0, "a"), _turn(1, "b")], tmp_path / "mixed.wav")
