"""Unit tests for PCM container helpers and dialogue buffer splitting."""

from __future__ import annotations

from podvoice.audio.pcm import MIN_CLIP_SECONDS, PcmSplitter, parse_pcm_mime_type, read_wav, wrap_wav
from podvoice.models.datatypes import PcmAudio, PcmFormat, Turn

from tests.fixture_builders import pcm_frames


def _turn(index: int, text: str) -> Turn:
    """Build one turn for splitting."""

    return Turn(
        turn_id=f"turn-{index:03d}",
        chapter_id="topic-1",
        speaker="host" if index % 2 == 0 else "expert",
        text=text,
    )


def test_split_allocates_samples_proportionally_to_word_counts() -> None:
    """Clip sample counts follow the turn word-count weights."""

    audio = PcmAudio(data=pcm_frames(240000))
    turns = [_turn(0, "one"), _turn(1, "two three"), _turn(2, "four")]

    clips = PcmSplitter().split(audio, turns)

    assert [clip.turn_id for clip in clips] == ["turn-000", "turn-001", "turn-002"]
    assert [clip.sample_count for clip in clips] == [60000, 120000, 60000]
    assert [clip.duration_seconds for clip in clips] == [2.5, 5.0, 2.5]


def test_split_is_lossless_and_last_clip_absorbs_remainder() -> None:
    """Clip payloads concatenate back to the original whole-frame buffer."""

    audio = PcmAudio(data=pcm_frames(10) + b"\x01")
    turns = [_turn(0, "alpha"), _turn(1, "beta"), _turn(2, "gamma")]

    clips = PcmSplitter().split(audio, turns)

    assert [clip.sample_count for clip in clips] == [3, 3, 4]
    rebuilt = b"".join(read_wav(clip.audio).data for clip in clips)
    assert rebuilt == pcm_frames(10)
    assert all(clip.duration_seconds == MIN_CLIP_SECONDS for clip in clips)


def test_split_treats_wordless_turns_as_one_word() -> None:
    """A turn with no words still receives a share of the buffer."""

    audio = PcmAudio(data=pcm_frames(300))
    turns = [_turn(0, ""), _turn(1, "two words")]

    clips = PcmSplitter().split(audio, turns)

    assert [clip.sample_count for clip in clips] == [100, 200]


def test_split_preserves_stereo_frame_boundaries() -> None:
    """Boundaries fall on whole frames for multi-channel layouts."""

    stereo = PcmFormat(sample_rate=8000, channels=2, sample_width=2)
    audio = PcmAudio(data=bytes(range(256)) * 5, format=stereo)
    turns = [_turn(0, "a b"), _turn(1, "c")]

    clips = PcmSplitter().split(audio, turns)

    assert sum(clip.sample_count for clip in clips) == audio.sample_count
    for clip in clips:
        decoded = read_wav(clip.audio)
        assert decoded.format == stereo
        assert len(decoded.data) == clip.sample_count * stereo.frame_bytes


def test_split_without_turns_returns_no_clips() -> None:
    """Nothing to split yields nothing."""

    assert PcmSplitter().split(PcmAudio(data=pcm_frames(10)), []) == []


def test_wrap_wav_records_sample_layout() -> None:
    """WAV wrapping keeps the PCM layout readable from the container."""

    pcm_format = PcmFormat(sample_rate=16000, channels=1, sample_width=2)

    decoded = read_wav(wrap_wav(pcm_frames(1600), pcm_format))

    assert decoded.format == pcm_format
    assert decoded.duration_seconds == 0.1


def test_parse_pcm_mime_type_reads_width_and_rate() -> None:
    """Provider MIME parameters override the default PCM layout."""

    assert parse_pcm_mime_type("audio/L16;codec=pcm;rate=24000") == PcmFormat(24000, 1, 2)
    assert parse_pcm_mime_type("audio/L24; rate=16000; channels=2") == PcmFormat(16000, 2, 3)
    assert parse_pcm_mime_type("audio/pcm;rate=abc") == PcmFormat()
