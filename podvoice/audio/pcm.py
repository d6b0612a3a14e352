"""PCM container helpers and proportional dialogue splitting.

Responsibilities:
- Wrap raw PCM16 buffers into self-describing WAV containers.
- Split one combined multi-speaker buffer back into per-turn clips.

Splitting is proportional to word counts: speaking rate is not uniform across
turns, so clip boundaries are an estimate rather than a transcript-aligned
cut. Boundaries always fall on whole sample frames and the last clip absorbs
the rounding remainder, so the clips partition the buffer exactly.
"""

from __future__ import annotations

import io
import wave
from typing import Sequence

from ..models.datatypes import PcmAudio, PcmFormat, SplitClip, Turn
from ..text.cleaners import count_words

MIN_CLIP_SECONDS = 1.0


def wrap_wav(pcm: bytes, pcm_format: PcmFormat) -> bytes:
    """Return `pcm` wrapped in a WAV container described by `pcm_format`."""

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(pcm_format.channels)
        wav_file.setsampwidth(pcm_format.sample_width)
        wav_file.setframerate(pcm_format.sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def read_wav(payload: bytes) -> PcmAudio:
    """Decode a WAV container into raw PCM plus its sample layout."""

    with wave.open(io.BytesIO(payload), "rb") as wav_file:
        pcm_format = PcmFormat(
            sample_rate=wav_file.getframerate(),
            channels=wav_file.getnchannels(),
            sample_width=wav_file.getsampwidth(),
        )
        frames = wav_file.readframes(wav_file.getnframes())
    return PcmAudio(data=frames, format=pcm_format)


def parse_pcm_mime_type(mime_type: str, default: PcmFormat | None = None) -> PcmFormat:
    """Parse `audio/L16;codec=pcm;rate=24000`-style MIME types into a format."""

    resolved = default or PcmFormat()
    sample_rate = resolved.sample_rate
    channels = resolved.channels
    sample_width = resolved.sample_width
    parts = [part.strip().lower() for part in mime_type.split(";") if part.strip()]
    for part in parts:
        if part.startswith("audio/l"):
            bits = part[len("audio/l"):]
            if bits.isdigit() and int(bits) % 8 == 0:
                sample_width = int(bits) // 8
        elif part.startswith("rate="):
            value = part[len("rate="):]
            if value.isdigit() and int(value) > 0:
                sample_rate = int(value)
        elif part.startswith("channels="):
            value = part[len("channels="):]
            if value.isdigit() and int(value) > 0:
                channels = int(value)
    return PcmFormat(sample_rate=sample_rate, channels=channels, sample_width=sample_width)


class PcmSplitter:
    """Partition a combined dialogue buffer into per-turn WAV clips."""

    def split(self, audio: PcmAudio, turns: Sequence[Turn]) -> list[SplitClip]:
        """Split `audio` across `turns` in order, proportionally to word counts.

        Args:
            audio: Combined buffer synthesized from exactly these turns, in order.
            turns: Turns whose (cleaned) text produced `audio`.

        Returns:
            One clip per turn; PCM payload lengths sum to the buffer's whole-frame length.
        """

        if not turns:
            return []

        frame_bytes = audio.format.frame_bytes
        total_samples = audio.sample_count
        weights = [max(1, count_words(turn.text)) for turn in turns]
        total_weight = sum(weights)

        allocations: list[int] = []
        remaining = total_samples
        for weight in weights[:-1]:
            samples = min(round(total_samples * weight / total_weight), remaining)
            allocations.append(samples)
            remaining -= samples
        allocations.append(remaining)

        clips: list[SplitClip] = []
        offset = 0
        for turn, samples in zip(turns, allocations):
            payload = audio.data[offset * frame_bytes:(offset + samples) * frame_bytes]
            offset += samples
            clips.append(
                SplitClip(
                    turn_id=turn.turn_id,
                    audio=wrap_wav(payload, audio.format),
                    sample_count=samples,
                    duration_seconds=max(
                        MIN_CLIP_SECONDS, samples / float(audio.format.sample_rate)
                    ),
                )
            )
        return clips
